"""Domain models - pure Python dataclasses representing debtors, ledgers and grade rules"""

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from decimal import Decimal
from enum import Enum
from typing import Dict, List, Optional, Tuple


class EntryKind(str, Enum):
    """Direction of a ledger movement"""

    DEBIT = "debit"  # increases liability
    CREDIT = "credit"  # decreases liability (payment received)


class LedgerUnit(str, Enum):
    """Unit a ledger entry is denominated in"""

    CURRENCY = "currency"
    COMMODITY = "commodity"  # e.g. grams of gold


class ContactChannel(str, Enum):
    CHAT = "chat"
    VOICE_CALL = "voice_call"
    SMS = "sms"
    OTHER = "other"


class CooldownUnit(str, Enum):
    HOURS = "hours"
    DAYS = "days"


class ActionType(str, Enum):
    """Recommended outbound step for the messaging dispatcher"""

    CHAT = "chat"
    SMS = "sms"
    COOLDOWN = "cooldown"
    NONE = "none"


@dataclass
class LedgerEntry:
    """One recorded movement on a debtor's ledger"""

    kind: EntryKind
    unit: LedgerUnit
    amount: Decimal
    occurred_on: date
    balance_after: Decimal
    entry_id: Optional[str] = None
    method: Optional[str] = None  # cash, upi, cheque, ornament...
    description: Optional[str] = None


@dataclass
class ContactEvent:
    """Outbound or inbound contact recorded by the communication log"""

    channel: ContactChannel
    occurred_at: datetime
    debtor_id: Optional[str] = None
    outcome: Optional[str] = None


@dataclass(frozen=True)
class GradeRule:
    """
    One row of the grading waterfall.

    Thresholds are inclusive minimums. The template references and channel
    flags are opaque to the evaluator and only travel with the matched rule.
    """

    id: str
    priority: int
    min_balance: Decimal = Decimal("0")
    min_days_since_payment: int = 0
    min_days_since_contact: int = 0
    cooldown_amount: Decimal = Decimal("0")
    cooldown_unit: CooldownUnit = CooldownUnit.HOURS
    label: Optional[str] = None
    color: Optional[str] = None
    chat_enabled: bool = True
    sms_enabled: bool = False
    chat_template_id: Optional[str] = None
    sms_template_id: Optional[str] = None

    @property
    def is_catch_all(self) -> bool:
        return (
            self.min_balance <= 0
            and self.min_days_since_payment <= 0
            and self.min_days_since_contact <= 0
        )


@dataclass(frozen=True)
class RuleSet:
    """Immutable, versioned snapshot of the grade rules"""

    version: Optional[int]
    rules: Tuple[GradeRule, ...]

    @classmethod
    def of(cls, rules, version: Optional[int] = None) -> "RuleSet":
        return cls(version=version, rules=tuple(rules))

    def __iter__(self):
        return iter(self.rules)

    def __len__(self) -> int:
        return len(self.rules)


@dataclass
class Debtor:
    """Debtor snapshot as supplied by the persistence layer"""

    id: str
    current_balance: Decimal = Decimal("0")
    current_commodity_balance: Decimal = Decimal("0")
    transactions: List[LedgerEntry] = field(default_factory=list)
    last_chat_at: Optional[datetime] = None
    last_call_at: Optional[datetime] = None
    last_sms_at: Optional[datetime] = None
    name: Optional[str] = None


@dataclass
class LedgerSummary:
    """Point-in-time reduction of a debtor's ledger, one figure per unit"""

    balances: Dict[LedgerUnit, Decimal]
    last_payment_on: Dict[LedgerUnit, Optional[date]]

    @property
    def last_payment_date(self) -> Optional[date]:
        dates = [d for d in self.last_payment_on.values() if d is not None]
        return max(dates) if dates else None


@dataclass
class DebtorMetrics:
    """Inputs to the rule waterfall, computed once per evaluation"""

    balance: Decimal
    days_since_payment: int
    days_since_contact: int
    last_payment_on: Optional[date]
    last_contact_at: Optional[datetime]


@dataclass
class NextAction:
    type: ActionType
    template_id: Optional[str] = None
    label: str = ""


@dataclass
class AnalysisResult:
    """Output of one engine evaluation. Recomputed on every call, never stored."""

    debtor_id: str
    assigned_grade: str
    matched_rule: GradeRule
    fallback_applied: bool
    days_since_last_payment: int
    days_since_contact: int
    last_contact_at: Optional[datetime]
    is_contact_blocked: bool
    cooldown_remaining: Optional[timedelta]
    next_action: NextAction
    health_score: float
    ledger: LedgerSummary
    current_balance: Decimal
    current_commodity_balance: Decimal
    rule_set_version: Optional[int]
    evaluated_at: datetime


@dataclass
class PortfolioSummary:
    """Dashboard rollup over one frozen batch of analyses"""

    debtor_count: int
    total_liability: Decimal
    total_commodity: Decimal
    grade_counts: Dict[str, int]
    blocked_count: int
    actionable_count: int
    fallback_count: int
    ranking: List[str]
    rule_set_version: Optional[int]
    evaluated_at: datetime
