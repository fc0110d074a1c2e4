"""GET/POST /v1/rules - read and publish the grade waterfall"""

import logging
from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from arrearsflow.api.v1.schemas import RuleSetRequest, RuleSetResponse
from arrearsflow.api.dependencies import get_active_rule_set, get_request_id
from arrearsflow.domain.models import RuleSet
from arrearsflow.domain.rules import validate_rule_set
from arrearsflow.infrastructure.database.session import get_db
from arrearsflow.infrastructure.database.repositories import RuleSetRepository

router = APIRouter()


@router.get("/rules", response_model=RuleSetResponse)
def get_rules(rules: RuleSet = Depends(get_active_rule_set)):
    """Active rule set with any configuration warnings"""
    return RuleSetResponse.from_domain(rules, validate_rule_set(rules))


@router.post("/rules", response_model=RuleSetResponse, status_code=201)
def publish_rules(
    request_body: RuleSetRequest,
    request: Request,
    db: Session = Depends(get_db),
):
    """
    Publish a new rule-set version.

    An empty set is rejected; other problems (missing catch-all, duplicate
    grades) are accepted and returned as warnings. Losing a version race
    with a concurrent publish returns 409.
    """
    request_id = get_request_id(request)

    if not request_body.rules:
        raise HTTPException(status_code=422, detail="Rule set must contain at least one rule")

    try:
        rule_set = RuleSetRepository(db).publish([r.to_domain() for r in request_body.rules])
        db.commit()
    except IntegrityError as e:
        db.rollback()
        logging.warning(f"Rule set version conflict: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=409, detail="Another rule set was published concurrently; retry")
    except Exception as e:
        db.rollback()
        logging.error(f"Failed to publish rule set: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    warnings = validate_rule_set(rule_set)
    logging.info(
        "Rule set published",
        extra={"request_id": request_id, "rule_set_version": rule_set.version, "warnings": warnings},
    )

    return RuleSetResponse.from_domain(rule_set, warnings)
