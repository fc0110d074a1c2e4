"""Risk grading engine - rule waterfall, anti-spam gate and health score"""

from datetime import datetime, timedelta
from decimal import Decimal
from typing import Iterable, Optional, Tuple
from arrearsflow.domain.contact import last_contact_date
from arrearsflow.domain.exceptions import InvalidConfigurationError
from arrearsflow.domain.ledger import last_payment_date, summarize_ledger
from arrearsflow.domain.models import (
    ActionType,
    AnalysisResult,
    ContactEvent,
    CooldownUnit,
    Debtor,
    DebtorMetrics,
    GradeRule,
    NextAction,
    RuleSet,
)
from arrearsflow.domain.rules import RuleSource, sort_rules
from arrearsflow.utils.date_utils import as_utc, hours_between, utcnow, whole_days_since

# Days assumed when a debtor has never paid or never been contacted.
# Rule thresholds are tuned against this exact value.
NO_HISTORY_SENTINEL_DAYS = 365

HOURS_PER_DAY = 24


def compute_metrics(
    debtor: Debtor,
    now: datetime,
    events: Optional[Iterable[ContactEvent]] = None,
) -> DebtorMetrics:
    """
    Point-in-time inputs for the waterfall.

    Missing payment or contact history resolves to NO_HISTORY_SENTINEL_DAYS
    instead of failing, so a debtor with no history still gets a grade.
    """
    paid_on = last_payment_date(debtor)
    contacted_at = last_contact_date(debtor, events)

    return DebtorMetrics(
        balance=Decimal(debtor.current_balance),
        days_since_payment=whole_days_since(paid_on, now, NO_HISTORY_SENTINEL_DAYS),
        days_since_contact=whole_days_since(contacted_at, now, NO_HISTORY_SENTINEL_DAYS),
        last_payment_on=paid_on,
        last_contact_at=contacted_at,
    )


def rule_matches(rule: GradeRule, metrics: DebtorMetrics) -> bool:
    return (
        metrics.balance >= rule.min_balance
        and metrics.days_since_payment >= rule.min_days_since_payment
        and metrics.days_since_contact >= rule.min_days_since_contact
    )


def select_rule(metrics: DebtorMetrics, rules: RuleSource) -> Tuple[GradeRule, bool]:
    """
    Walk the waterfall and return (rule, matched).

    Requirements:
    - Rules evaluated by ascending priority, equal priorities in input order
    - First rule whose three thresholds all hold wins
    - No match falls back to the last rule regardless of its thresholds
      (matched=False); an empty rule set cannot resolve and raises

    Raises:
        InvalidConfigurationError: If `rules` is empty
    """
    ordered = sort_rules(rules)
    if not ordered:
        raise InvalidConfigurationError("Rule set is empty; no grade can be assigned")

    for rule in ordered:
        if rule_matches(rule, metrics):
            return rule, True

    return ordered[-1], False


def classify(
    debtor: Debtor,
    rules: RuleSource,
    now: Optional[datetime] = None,
    events: Optional[Iterable[ContactEvent]] = None,
) -> GradeRule:
    """Assign a grade. The returned rule's `id` is the grade label."""
    now = as_utc(now) if now is not None else utcnow()
    rule, _ = select_rule(compute_metrics(debtor, now, events), rules)
    return rule


def cooldown_hours(rule: GradeRule) -> Decimal:
    """Cooldown window normalised to hours"""
    amount = Decimal(rule.cooldown_amount)
    if rule.cooldown_unit == CooldownUnit.DAYS:
        return amount * HOURS_PER_DAY
    return amount


def cooldown_remaining(
    rule: GradeRule,
    last_contact_at: Optional[datetime],
    now: Optional[datetime] = None,
) -> Optional[timedelta]:
    """Time left before the next contact is allowed, None when the gate is open"""
    now = as_utc(now) if now is not None else utcnow()
    if not is_blocked(rule, last_contact_at, now):
        return None

    window = timedelta(hours=float(cooldown_hours(rule)))
    return window - (now - as_utc(last_contact_at))


def is_blocked(
    rule: GradeRule,
    last_contact_at: Optional[datetime],
    now: Optional[datetime] = None,
) -> bool:
    """
    Anti-spam gate against the matched rule's own cooldown.

    A debtor never contacted is never blocked. Otherwise blocked while
    elapsed hours since the last contact are below the cooldown in hours.
    """
    if last_contact_at is None:
        return False

    now = as_utc(now) if now is not None else utcnow()
    return Decimal(str(hours_between(last_contact_at, now))) < cooldown_hours(rule)


def format_cooldown(remaining: timedelta, unit: CooldownUnit) -> str:
    """Render remaining cooldown as '5h 12m' for hour rules or '2d 3h' for day rules"""
    total_minutes = int(remaining.total_seconds() // 60)
    if unit == CooldownUnit.HOURS:
        hours, minutes = divmod(total_minutes, 60)
        return f"{hours}h {minutes}m"
    days, rest = divmod(total_minutes, HOURS_PER_DAY * 60)
    return f"{days}d {rest // 60}h"


def next_action(rule: GradeRule, remaining: Optional[timedelta]) -> NextAction:
    """Pick the outbound step the dispatcher should take for this grade"""
    if remaining is not None:
        return NextAction(
            type=ActionType.COOLDOWN,
            label=f"COOLDOWN ({format_cooldown(remaining, rule.cooldown_unit)})",
        )
    if rule.chat_enabled:
        return NextAction(type=ActionType.CHAT, template_id=rule.chat_template_id, label="CHAT_PROTOCOL")
    if rule.sms_enabled:
        return NextAction(type=ActionType.SMS, template_id=rule.sms_template_id, label="SMS_FALLBACK")
    return NextAction(type=ActionType.NONE, label="NO_CHANNEL")


def health_score(debtor: Debtor, days_since_payment: int) -> float:
    """
    Advisory 0-100 display score. Never used for grading.

    Formula:
    - Start at 100
    - Minus half a point per day since the last payment
    - Minus one point per 10,000 of outstanding currency balance
    """
    score = Decimal(100) - Decimal(days_since_payment) / 2 - Decimal(debtor.current_balance) / 10_000
    score = min(max(score, Decimal(0)), Decimal(100))
    return float(score)


def analyze_debtor(
    debtor: Debtor,
    rules: RuleSource,
    now: Optional[datetime] = None,
    events: Optional[Iterable[ContactEvent]] = None,
) -> AnalysisResult:
    """
    Main entry point: grade, gate and score one debtor at one instant.

    Every surface (list, detail, dashboard, simulator) goes through here so
    that identical inputs always produce the identical result.
    """
    now = as_utc(now) if now is not None else utcnow()
    if events is not None:
        events = list(events)

    metrics = compute_metrics(debtor, now, events)
    rule, matched = select_rule(metrics, rules)
    remaining = cooldown_remaining(rule, metrics.last_contact_at, now)

    return AnalysisResult(
        debtor_id=debtor.id,
        assigned_grade=rule.id,
        matched_rule=rule,
        fallback_applied=not matched,
        days_since_last_payment=metrics.days_since_payment,
        days_since_contact=metrics.days_since_contact,
        last_contact_at=metrics.last_contact_at,
        is_contact_blocked=is_blocked(rule, metrics.last_contact_at, now),
        cooldown_remaining=remaining,
        next_action=next_action(rule, remaining),
        health_score=health_score(debtor, metrics.days_since_payment),
        ledger=summarize_ledger(debtor),
        current_balance=Decimal(debtor.current_balance),
        current_commodity_balance=Decimal(debtor.current_commodity_balance),
        rule_set_version=rules.version if isinstance(rules, RuleSet) else None,
        evaluated_at=now,
    )
