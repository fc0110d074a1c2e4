"""Batch evaluation for list views, dashboard rollups and the what-if simulator"""

from datetime import datetime, timedelta
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Sequence
from arrearsflow.domain.grading import analyze_debtor
from arrearsflow.domain.models import (
    AnalysisResult,
    ContactEvent,
    Debtor,
    EntryKind,
    LedgerEntry,
    LedgerUnit,
    PortfolioSummary,
    RuleSet,
)
from arrearsflow.domain.rules import RuleSource
from arrearsflow.utils.date_utils import as_utc, utcnow

SIMULATED_DEBTOR_ID = "sim_1"


def _freeze(rules: RuleSource) -> RuleSource:
    # Snapshot once so a rule list edited mid-batch cannot split the batch
    return rules if isinstance(rules, RuleSet) else RuleSet.of(rules, version=None)


def analyze_portfolio(
    debtors: Iterable[Debtor],
    rules: RuleSource,
    now: Optional[datetime] = None,
    events: Optional[Iterable[ContactEvent]] = None,
) -> List[AnalysisResult]:
    """
    Evaluate every debtor against one rule snapshot at one instant.

    The contact log is read once and shared; each debtor only sees its own
    events (or events with no debtor id).
    """
    now = as_utc(now) if now is not None else utcnow()
    rules = _freeze(rules)
    events = list(events) if events is not None else None

    return [analyze_debtor(debtor, rules, now, events) for debtor in debtors]


def filter_by_grade(results: Iterable[AnalysisResult], grade: Optional[str]) -> List[AnalysisResult]:
    """List-view filter. A falsy grade (or 'ALL') keeps everything."""
    if not grade or grade.upper() == "ALL":
        return list(results)
    return [r for r in results if r.assigned_grade == grade]


def summarize_results(
    results: Sequence[AnalysisResult],
    rules: RuleSource,
    evaluated_at: datetime,
) -> PortfolioSummary:
    """Roll up a batch already produced by analyze_portfolio"""
    grade_counts: Dict[str, int] = {rule.id: 0 for rule in rules}
    for result in results:
        grade_counts[result.assigned_grade] = grade_counts.get(result.assigned_grade, 0) + 1

    blocked = sum(1 for r in results if r.is_contact_blocked)
    ranking = sorted(results, key=lambda r: (r.health_score, r.debtor_id))

    return PortfolioSummary(
        debtor_count=len(results),
        total_liability=sum((r.current_balance for r in results), Decimal(0)),
        total_commodity=sum((r.current_commodity_balance for r in results), Decimal(0)),
        grade_counts=grade_counts,
        blocked_count=blocked,
        actionable_count=len(results) - blocked,
        fallback_count=sum(1 for r in results if r.fallback_applied),
        ranking=[r.debtor_id for r in ranking],
        rule_set_version=rules.version if isinstance(rules, RuleSet) else None,
        evaluated_at=evaluated_at,
    )


def summarize_portfolio(
    debtors: Iterable[Debtor],
    rules: RuleSource,
    now: Optional[datetime] = None,
    events: Optional[Iterable[ContactEvent]] = None,
) -> PortfolioSummary:
    """Dashboard totals. Grade counts agree with per-debtor badges by construction."""
    now = as_utc(now) if now is not None else utcnow()
    rules = _freeze(rules)
    results = analyze_portfolio(debtors, rules, now, events)
    return summarize_results(results, rules, now)


def build_synthetic_debtor(
    balance: Decimal,
    days_since_payment: Optional[int],
    days_since_contact: Optional[int],
    now: datetime,
    commodity_balance: Decimal = Decimal(0),
) -> Debtor:
    """
    Construct a what-if debtor.

    A single payment entry is placed `days_since_payment` days before `now`
    and a chat contact `days_since_contact` days before `now`; None leaves
    that history empty so the no-history sentinel applies.
    """
    now = as_utc(now)
    balance = Decimal(balance)
    transactions = []

    if days_since_payment is not None:
        transactions.append(
            LedgerEntry(
                kind=EntryKind.CREDIT,
                unit=LedgerUnit.CURRENCY,
                amount=Decimal(0),
                occurred_on=(now - timedelta(days=days_since_payment)).date(),
                balance_after=balance,
                entry_id="sim_payment",
                description="Simulated payment",
            )
        )

    last_chat_at = now - timedelta(days=days_since_contact) if days_since_contact is not None else None

    return Debtor(
        id=SIMULATED_DEBTOR_ID,
        current_balance=balance,
        current_commodity_balance=Decimal(commodity_balance),
        transactions=transactions,
        last_chat_at=last_chat_at,
        name="Simulated debtor",
    )


def simulate(
    rules: RuleSource,
    balance: Decimal,
    days_since_payment: Optional[int],
    days_since_contact: Optional[int] = None,
    now: Optional[datetime] = None,
    commodity_balance: Decimal = Decimal(0),
) -> AnalysisResult:
    """Run a synthetic debtor through the same analyze_debtor path as real debtors"""
    now = as_utc(now) if now is not None else utcnow()
    debtor = build_synthetic_debtor(balance, days_since_payment, days_since_contact, now, commodity_balance)
    return analyze_debtor(debtor, rules, now)
