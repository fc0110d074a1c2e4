"""GET /v1/debtors and GET /v1/debtors/{debtor_id}/analysis - list and detail views"""

import time
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from arrearsflow.api.v1.schemas import AnalysisResponse, DebtorListResponse
from arrearsflow.api.dependencies import get_active_rule_set, get_request_id
from arrearsflow.config import settings
from arrearsflow.domain.grading import analyze_debtor
from arrearsflow.domain.portfolio import analyze_portfolio, filter_by_grade
from arrearsflow.domain.exceptions import DebtorNotFoundError
from arrearsflow.domain.models import RuleSet
from arrearsflow.infrastructure.database.session import get_db
from arrearsflow.infrastructure.database.repositories import ContactLogRepository, DebtorRepository
from arrearsflow.infrastructure.observability.metrics import record_analysis, record_batch
from arrearsflow.infrastructure.observability.logging import log_analysis, log_batch
from arrearsflow.utils.date_utils import utcnow

router = APIRouter()


@router.get("/debtors", response_model=DebtorListResponse)
def list_debtors(
    request: Request,
    grade: Optional[str] = Query(None, description="Only debtors currently in this grade"),
    offset: int = Query(0, ge=0),
    limit: Optional[int] = Query(None, ge=1, description="Page size, capped at the configured page limit"),
    db: Session = Depends(get_db),
    rules: RuleSet = Depends(get_active_rule_set),
):
    """
    List view with live grades.

    Debtors, contact log and rules are read once; every row is evaluated
    against that frozen snapshot at one instant. Grades are computed, not
    stored, so a grade filter evaluates every active debtor before paging.
    """
    start_time = time.time()
    now = utcnow()
    page_size = min(limit or settings.list_page_limit, settings.list_page_limit)
    filtering = bool(grade) and grade.upper() != "ALL"
    repo = DebtorRepository(db)

    if filtering:
        debtors = repo.list_snapshots()
    else:
        debtors = repo.list_snapshots(offset=offset, limit=page_size)
    events = ContactLogRepository(db).events_for(d.id for d in debtors)

    results = analyze_portfolio(debtors, rules, now, events)
    record_batch(results)
    log_batch(get_request_id(request), len(results), rules.version, (time.time() - start_time) * 1000, "list")

    if filtering:
        matching = filter_by_grade(results, grade)
        total = len(matching)
        page = matching[offset:offset + page_size]
    else:
        total = repo.count_active()
        page = results

    return DebtorListResponse(
        grade=grade,
        rule_set_version=rules.version,
        evaluated_at=now,
        offset=offset,
        limit=page_size,
        total=total,
        items=[AnalysisResponse.from_domain(r) for r in page],
    )


@router.get("/debtors/{debtor_id}/analysis", response_model=AnalysisResponse)
def get_debtor_analysis(
    debtor_id: str,
    request: Request,
    db: Session = Depends(get_db),
    rules: RuleSet = Depends(get_active_rule_set),
):
    """
    Per-debtor grade badge, gate state and next action.

    Returns:
        Analysis of the stored debtor against the active rule set
    """
    start_time = time.time()

    try:
        debtor = DebtorRepository(db).get_snapshot(debtor_id)
    except DebtorNotFoundError:
        raise HTTPException(status_code=404, detail="Debtor not found")

    events = ContactLogRepository(db).events_for([debtor.id])
    result = analyze_debtor(debtor, rules, utcnow(), events)

    record_analysis(result)
    log_analysis(get_request_id(request), result, (time.time() - start_time) * 1000)

    return AnalysisResponse.from_domain(result)
