"""GET /v1/portfolio/summary - dashboard rollup"""

import time
from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from arrearsflow.api.v1.schemas import PortfolioSummaryResponse
from arrearsflow.api.dependencies import get_active_rule_set, get_request_id
from arrearsflow.domain.portfolio import analyze_portfolio, summarize_results
from arrearsflow.domain.models import RuleSet
from arrearsflow.infrastructure.database.session import get_db
from arrearsflow.infrastructure.database.repositories import ContactLogRepository, DebtorRepository
from arrearsflow.infrastructure.observability.metrics import record_batch
from arrearsflow.infrastructure.observability.logging import log_batch
from arrearsflow.utils.date_utils import utcnow

router = APIRouter()


@router.get("/portfolio/summary", response_model=PortfolioSummaryResponse)
def get_portfolio_summary(
    request: Request,
    db: Session = Depends(get_db),
    rules: RuleSet = Depends(get_active_rule_set),
):
    """
    Dashboard totals.

    Grade counts come from the same per-debtor analyses the list and detail
    views return, so the dashboard never disagrees with a debtor's badge.
    Always covers every active debtor; the list page size does not apply.
    """
    start_time = time.time()
    now = utcnow()

    debtors = DebtorRepository(db).list_snapshots()
    events = ContactLogRepository(db).events_for(d.id for d in debtors)

    results = analyze_portfolio(debtors, rules, now, events)
    summary = summarize_results(results, rules, now)

    record_batch(results)
    log_batch(get_request_id(request), len(results), rules.version, (time.time() - start_time) * 1000, "dashboard")

    return PortfolioSummaryResponse.from_domain(summary)
