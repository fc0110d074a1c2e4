"""Dependency injection for FastAPI endpoints"""

import logging
from fastapi import Depends, HTTPException, Request
from sqlalchemy.orm import Session

from arrearsflow.config import settings
from arrearsflow.domain.models import RuleSet
from arrearsflow.domain.rules import DEFAULT_GRADE_RULES, validate_rule_set
from arrearsflow.infrastructure.database.repositories import RuleSetRepository
from arrearsflow.infrastructure.database.session import get_db
from arrearsflow.infrastructure.observability.metrics import invalid_configuration_counter


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def load_active_rule_set(db: Session) -> RuleSet:
    """
    Read the published rule set, or the built-in one when seeding is enabled.

    Raises:
        HTTPException: 503 if no usable rule set is configured
    """
    rule_set = RuleSetRepository(db).get_active()

    if rule_set is None and settings.seed_default_rules:
        rule_set = DEFAULT_GRADE_RULES

    if rule_set is None or len(rule_set) == 0:
        invalid_configuration_counter.inc()
        logging.error("No usable grade rule set configured")
        raise HTTPException(status_code=503, detail="Grade rules not configured")

    for problem in validate_rule_set(rule_set):
        logging.warning(f"Rule set v{rule_set.version}: {problem}")

    return rule_set


def get_active_rule_set(db: Session = Depends(get_db)) -> RuleSet:
    """
    Read the rule set once per request.

    Every debtor evaluated while serving the request sees this same snapshot.
    """
    return load_active_rule_set(db)
