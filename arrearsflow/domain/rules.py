"""Grade rule set defaults, ordering and upstream validation"""

from decimal import Decimal
from typing import List, Sequence, Union
from arrearsflow.domain.models import CooldownUnit, GradeRule, RuleSet

RuleSource = Union[RuleSet, Sequence[GradeRule]]

# Four-grade waterfall shipped with the product. D is checked first, A is the catch-all.
DEFAULT_GRADE_RULES = RuleSet.of(
    [
        GradeRule(
            id="D",
            label="Critical / NPA",
            color="rose",
            priority=1,
            min_balance=Decimal("50000"),
            min_days_since_payment=90,
            min_days_since_contact=15,
            cooldown_amount=Decimal("48"),
            cooldown_unit=CooldownUnit.HOURS,
            chat_enabled=True,
            sms_enabled=True,
            chat_template_id="TPL_003",
            sms_template_id="TPL_002",
        ),
        GradeRule(
            id="C",
            label="High Risk",
            color="amber",
            priority=2,
            min_balance=Decimal("20000"),
            min_days_since_payment=45,
            min_days_since_contact=7,
            cooldown_amount=Decimal("3"),
            cooldown_unit=CooldownUnit.DAYS,
            chat_enabled=True,
            sms_enabled=True,
            chat_template_id="TPL_001",
            sms_template_id="TPL_002",
        ),
        GradeRule(
            id="B",
            label="Moderate Watch",
            color="blue",
            priority=3,
            min_balance=Decimal("5000"),
            min_days_since_payment=15,
            min_days_since_contact=30,
            cooldown_amount=Decimal("7"),
            cooldown_unit=CooldownUnit.DAYS,
            chat_enabled=True,
            sms_enabled=False,
            chat_template_id="TPL_001",
        ),
        GradeRule(
            id="A",
            label="Standard / Safe",
            color="emerald",
            priority=4,
            cooldown_amount=Decimal("15"),
            cooldown_unit=CooldownUnit.DAYS,
            chat_enabled=True,
            sms_enabled=False,
            chat_template_id="TPL_001",
        ),
    ],
    version=0,
)


def sort_rules(rules: RuleSource) -> List[GradeRule]:
    """Evaluation order: ascending priority, input order kept for equal priorities"""
    return sorted(rules, key=lambda r: r.priority)


def validate_rule_set(rules: RuleSource) -> List[str]:
    """
    Report configuration problems without rejecting the set.

    The evaluator still resolves a grade for anything but an empty set, so
    these are warnings for the administrator, not evaluation errors.
    """
    ordered = sort_rules(rules)
    if not ordered:
        return ["rule set is empty"]

    problems = []
    seen = set()
    for rule in ordered:
        if rule.id in seen:
            problems.append(f"duplicate grade id '{rule.id}'")
        seen.add(rule.id)

        if rule.min_balance < 0 or rule.min_days_since_payment < 0 or rule.min_days_since_contact < 0:
            problems.append(f"grade '{rule.id}' has a negative threshold")
        if rule.cooldown_amount < 0:
            problems.append(f"grade '{rule.id}' has a negative cooldown")

    if not ordered[-1].is_catch_all:
        problems.append(
            f"last grade '{ordered[-1].id}' is not a catch-all; unmatched debtors fall back to it anyway"
        )

    return problems
