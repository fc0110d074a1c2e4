"""Pydantic schemas for API request/response validation"""

from pydantic import BaseModel, Field
from datetime import date, datetime
from decimal import Decimal
from typing import Dict, List, Optional

from arrearsflow.domain.models import (
    ActionType,
    AnalysisResult,
    ContactChannel,
    ContactEvent,
    CooldownUnit,
    Debtor,
    EntryKind,
    GradeRule,
    LedgerEntry,
    LedgerUnit,
    PortfolioSummary,
    RuleSet,
)


class LedgerEntrySchema(BaseModel):
    """Single ledger movement"""

    kind: EntryKind
    unit: LedgerUnit = LedgerUnit.CURRENCY
    amount: Decimal = Field(..., ge=0)
    occurred_on: date
    balance_after: Decimal
    entry_id: Optional[str] = None
    method: Optional[str] = None
    description: Optional[str] = None

    def to_domain(self) -> LedgerEntry:
        return LedgerEntry(**self.model_dump())


class ContactEventSchema(BaseModel):
    channel: ContactChannel
    occurred_at: datetime
    debtor_id: Optional[str] = None
    outcome: Optional[str] = None

    def to_domain(self) -> ContactEvent:
        return ContactEvent(**self.model_dump())


class DebtorSchema(BaseModel):
    """Debtor snapshot supplied inline by the caller"""

    id: str = Field(..., min_length=1)
    name: Optional[str] = None
    current_balance: Decimal = Decimal(0)
    current_commodity_balance: Decimal = Decimal(0)
    transactions: List[LedgerEntrySchema] = Field(default_factory=list)
    last_chat_at: Optional[datetime] = None
    last_call_at: Optional[datetime] = None
    last_sms_at: Optional[datetime] = None

    def to_domain(self) -> Debtor:
        return Debtor(
            id=self.id,
            name=self.name,
            current_balance=self.current_balance,
            current_commodity_balance=self.current_commodity_balance,
            transactions=[t.to_domain() for t in self.transactions],
            last_chat_at=self.last_chat_at,
            last_call_at=self.last_call_at,
            last_sms_at=self.last_sms_at,
        )


class GradeRuleSchema(BaseModel):
    """One row of the grade waterfall"""

    id: str = Field(..., min_length=1, description="Grade label, e.g. A-D")
    priority: int
    min_balance: Decimal = Decimal(0)
    min_days_since_payment: int = 0
    min_days_since_contact: int = 0
    cooldown_amount: Decimal = Decimal(0)
    cooldown_unit: CooldownUnit = CooldownUnit.HOURS
    label: Optional[str] = None
    color: Optional[str] = None
    chat_enabled: bool = True
    sms_enabled: bool = False
    chat_template_id: Optional[str] = None
    sms_template_id: Optional[str] = None

    def to_domain(self) -> GradeRule:
        return GradeRule(**self.model_dump())

    @classmethod
    def from_domain(cls, rule: GradeRule) -> "GradeRuleSchema":
        return cls(
            id=rule.id,
            priority=rule.priority,
            min_balance=rule.min_balance,
            min_days_since_payment=rule.min_days_since_payment,
            min_days_since_contact=rule.min_days_since_contact,
            cooldown_amount=rule.cooldown_amount,
            cooldown_unit=rule.cooldown_unit,
            label=rule.label,
            color=rule.color,
            chat_enabled=rule.chat_enabled,
            sms_enabled=rule.sms_enabled,
            chat_template_id=rule.chat_template_id,
            sms_template_id=rule.sms_template_id,
        )


class AnalyzeRequest(BaseModel):
    """Request body for POST /v1/analyze"""

    debtor: DebtorSchema
    rules: Optional[List[GradeRuleSchema]] = Field(
        default=None, description="Rule set to evaluate against; defaults to the active published set"
    )
    contact_events: Optional[List[ContactEventSchema]] = None
    now: Optional[datetime] = Field(default=None, description="Evaluation instant; defaults to server time")


class SimulationRequest(BaseModel):
    """Request body for POST /v1/simulate"""

    balance: Decimal = Field(..., ge=0)
    days_since_payment: Optional[int] = Field(default=None, ge=0, description="None = never paid")
    days_since_contact: Optional[int] = Field(default=None, ge=0, description="None = never contacted")
    commodity_balance: Decimal = Decimal(0)
    now: Optional[datetime] = None


class NextActionSchema(BaseModel):
    type: ActionType
    template_id: Optional[str] = None
    label: str


class AnalysisResponse(BaseModel):
    """Engine output for one debtor"""

    debtor_id: str
    assigned_grade: str
    matched_rule: GradeRuleSchema
    fallback_applied: bool
    days_since_last_payment: int
    days_since_contact: int
    last_payment_on: Optional[date] = None
    last_contact_at: Optional[datetime] = None
    is_contact_blocked: bool
    cooldown_remaining_seconds: Optional[int] = None
    next_action: NextActionSchema
    health_score: float
    balances: Dict[LedgerUnit, Decimal]
    rule_set_version: Optional[int] = None
    evaluated_at: datetime

    @classmethod
    def from_domain(cls, result: AnalysisResult) -> "AnalysisResponse":
        remaining = result.cooldown_remaining
        return cls(
            debtor_id=result.debtor_id,
            assigned_grade=result.assigned_grade,
            matched_rule=GradeRuleSchema.from_domain(result.matched_rule),
            fallback_applied=result.fallback_applied,
            days_since_last_payment=result.days_since_last_payment,
            days_since_contact=result.days_since_contact,
            last_payment_on=result.ledger.last_payment_date,
            last_contact_at=result.last_contact_at,
            is_contact_blocked=result.is_contact_blocked,
            cooldown_remaining_seconds=int(remaining.total_seconds()) if remaining is not None else None,
            next_action=NextActionSchema(
                type=result.next_action.type,
                template_id=result.next_action.template_id,
                label=result.next_action.label,
            ),
            health_score=result.health_score,
            balances=result.ledger.balances,
            rule_set_version=result.rule_set_version,
            evaluated_at=result.evaluated_at,
        )


class DebtorListResponse(BaseModel):
    """Response for GET /v1/debtors"""

    grade: Optional[str] = None
    rule_set_version: Optional[int] = None
    evaluated_at: datetime
    offset: int = 0
    limit: int
    total: int = Field(..., description="Debtors matching the filter across all pages")
    items: List[AnalysisResponse]


class PortfolioSummaryResponse(BaseModel):
    """Response for GET /v1/portfolio/summary"""

    debtor_count: int
    total_liability: Decimal
    total_commodity: Decimal
    grade_counts: Dict[str, int]
    blocked_count: int
    actionable_count: int
    fallback_count: int
    ranking: List[str]
    rule_set_version: Optional[int] = None
    evaluated_at: datetime

    @classmethod
    def from_domain(cls, summary: PortfolioSummary) -> "PortfolioSummaryResponse":
        return cls(
            debtor_count=summary.debtor_count,
            total_liability=summary.total_liability,
            total_commodity=summary.total_commodity,
            grade_counts=summary.grade_counts,
            blocked_count=summary.blocked_count,
            actionable_count=summary.actionable_count,
            fallback_count=summary.fallback_count,
            ranking=summary.ranking,
            rule_set_version=summary.rule_set_version,
            evaluated_at=summary.evaluated_at,
        )


class RuleSetRequest(BaseModel):
    """Request body for POST /v1/rules"""

    rules: List[GradeRuleSchema]


class RuleSetResponse(BaseModel):
    """Active rule set with configuration warnings"""

    version: Optional[int] = None
    rules: List[GradeRuleSchema]
    warnings: List[str] = Field(default_factory=list)

    @classmethod
    def from_domain(cls, rule_set: RuleSet, warnings: List[str]) -> "RuleSetResponse":
        return cls(
            version=rule_set.version,
            rules=[GradeRuleSchema.from_domain(r) for r in rule_set.rules],
            warnings=warnings,
        )
