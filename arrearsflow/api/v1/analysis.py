"""POST /v1/analyze and POST /v1/simulate - grade a supplied or synthetic debtor"""

import time
import logging
from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from arrearsflow.api.v1.schemas import AnalyzeRequest, AnalysisResponse, SimulationRequest
from arrearsflow.api.dependencies import get_active_rule_set, get_request_id, load_active_rule_set
from arrearsflow.domain.grading import analyze_debtor
from arrearsflow.domain.portfolio import simulate
from arrearsflow.domain.exceptions import InvalidConfigurationError
from arrearsflow.domain.models import RuleSet
from arrearsflow.infrastructure.database.session import get_db
from arrearsflow.infrastructure.observability.metrics import (
    invalid_configuration_counter,
    record_analysis,
    record_simulation,
)
from arrearsflow.infrastructure.observability.logging import log_analysis

router = APIRouter()


@router.post("/analyze", response_model=AnalysisResponse)
def analyze(
    request_body: AnalyzeRequest,
    request: Request,
    db: Session = Depends(get_db),
):
    """
    Grade one debtor supplied inline.

    Flow:
    1. Use the request's rules when given, otherwise read the active published set
    2. Run the waterfall, anti-spam gate and health score at one instant
    3. Record metrics and an audit log line
    """
    start_time = time.time()
    request_id = get_request_id(request)

    if request_body.rules is not None:
        rules = RuleSet.of([r.to_domain() for r in request_body.rules])
    else:
        rules = load_active_rule_set(db)

    events = (
        [e.to_domain() for e in request_body.contact_events]
        if request_body.contact_events is not None
        else None
    )

    try:
        result = analyze_debtor(request_body.debtor.to_domain(), rules, request_body.now, events)
    except InvalidConfigurationError as e:
        invalid_configuration_counter.inc()
        logging.warning(f"Invalid rule set: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=422, detail=str(e))

    record_analysis(result)
    log_analysis(request_id, result, (time.time() - start_time) * 1000, source="inline")

    return AnalysisResponse.from_domain(result)


@router.post("/simulate", response_model=AnalysisResponse)
def run_simulation(
    request_body: SimulationRequest,
    request: Request,
    rules: RuleSet = Depends(get_active_rule_set),
):
    """
    What-if simulator against the active rule set.

    Builds a synthetic debtor and sends it through the same analysis path
    as stored debtors, so the grade shown here is the grade a real debtor
    with these figures would get. Runs are counted under
    arrearsflow_simulation_total, not the real-debtor grade metrics.
    """
    start_time = time.time()
    request_id = get_request_id(request)

    result = simulate(
        rules,
        balance=request_body.balance,
        days_since_payment=request_body.days_since_payment,
        days_since_contact=request_body.days_since_contact,
        now=request_body.now,
        commodity_balance=request_body.commodity_balance,
    )

    record_simulation(result)
    log_analysis(request_id, result, (time.time() - start_time) * 1000, source="simulator")

    return AnalysisResponse.from_domain(result)
