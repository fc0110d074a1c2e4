"""Data access layer - loads frozen debtor and rule-set snapshots for the engine"""

from decimal import Decimal
from typing import Iterable, List, Optional
from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload
from arrearsflow.infrastructure.database.models import (
    ContactEventRecord,
    DebtorRecord,
    GradeRuleRecord,
    GradeRuleSetRecord,
    LedgerEntryRecord,
)
from arrearsflow.domain.exceptions import DebtorNotFoundError
from arrearsflow.domain.models import (
    ContactChannel,
    ContactEvent,
    CooldownUnit,
    Debtor,
    EntryKind,
    GradeRule,
    LedgerEntry,
    LedgerUnit,
    RuleSet,
)


def _to_entry(row: LedgerEntryRecord) -> LedgerEntry:
    return LedgerEntry(
        kind=EntryKind(row.kind),
        unit=LedgerUnit(row.unit),
        amount=Decimal(row.amount),
        occurred_on=row.occurred_on,
        balance_after=Decimal(row.balance_after),
        entry_id=row.ref_no or str(row.id),
        method=row.method,
        description=row.description,
    )


def _to_debtor(row: DebtorRecord) -> Debtor:
    return Debtor(
        id=row.id,
        name=row.name,
        current_balance=Decimal(row.current_balance),
        current_commodity_balance=Decimal(row.current_commodity_balance),
        transactions=[_to_entry(e) for e in row.entries],
        last_chat_at=row.last_chat_at,
        last_call_at=row.last_call_at,
        last_sms_at=row.last_sms_at,
    )


def _to_rule(row: GradeRuleRecord) -> GradeRule:
    return GradeRule(
        id=row.grade,
        priority=row.priority,
        min_balance=Decimal(row.min_balance),
        min_days_since_payment=row.min_days_since_payment,
        min_days_since_contact=row.min_days_since_contact,
        cooldown_amount=Decimal(row.cooldown_amount),
        cooldown_unit=CooldownUnit(row.cooldown_unit),
        label=row.label,
        color=row.color,
        chat_enabled=row.chat_enabled,
        sms_enabled=row.sms_enabled,
        chat_template_id=row.chat_template_id,
        sms_template_id=row.sms_template_id,
    )


class DebtorRepository:
    """Read-only access to debtor snapshots"""

    def __init__(self, db: Session):
        self.db = db

    def get_snapshot(self, debtor_id: str) -> Debtor:
        """
        Load one debtor with its full ledger.

        Raises:
            DebtorNotFoundError: If no active debtor has this id
        """
        row = (
            self.db.query(DebtorRecord)
            .options(selectinload(DebtorRecord.entries))
            .filter(DebtorRecord.id == debtor_id, DebtorRecord.is_active.is_(True))
            .first()
        )
        if row is None:
            raise DebtorNotFoundError(f"Debtor '{debtor_id}' not found")
        return _to_debtor(row)

    def list_snapshots(self, offset: int = 0, limit: Optional[int] = None) -> List[Debtor]:
        """
        Load active debtors ordered by id.

        With no limit every active debtor is returned, as a dashboard pass needs.
        """
        query = (
            self.db.query(DebtorRecord)
            .options(selectinload(DebtorRecord.entries))
            .filter(DebtorRecord.is_active.is_(True))
            .order_by(DebtorRecord.id)
            .offset(offset)
        )
        if limit is not None:
            query = query.limit(limit)
        return [_to_debtor(r) for r in query.all()]

    def count_active(self) -> int:
        return self.db.query(func.count(DebtorRecord.id)).filter(DebtorRecord.is_active.is_(True)).scalar()


class ContactLogRepository:
    """Read-only access to the communication log"""

    def __init__(self, db: Session):
        self.db = db

    def events_for(self, debtor_ids: Iterable[str]) -> List[ContactEvent]:
        ids = list(debtor_ids)
        if not ids:
            return []
        rows = (
            self.db.query(ContactEventRecord)
            .filter(ContactEventRecord.debtor_id.in_(ids))
            .order_by(ContactEventRecord.occurred_at)
            .all()
        )
        return [
            ContactEvent(
                channel=ContactChannel(r.channel),
                occurred_at=r.occurred_at,
                debtor_id=r.debtor_id,
                outcome=r.outcome,
            )
            for r in rows
        ]


class RuleSetRepository:
    """Versioned grade rule sets. Publishing appends a version, nothing is edited in place."""

    def __init__(self, db: Session):
        self.db = db

    def get_active(self) -> Optional[RuleSet]:
        """Highest published version, or None if nothing was ever published"""
        row = (
            self.db.query(GradeRuleSetRecord)
            .options(selectinload(GradeRuleSetRecord.rules))
            .order_by(GradeRuleSetRecord.version.desc())
            .first()
        )
        if row is None:
            return None
        return RuleSet.of([_to_rule(r) for r in row.rules], version=row.version)

    def publish(self, rules: List[GradeRule]) -> RuleSet:
        """Store `rules` as the next version and return the frozen snapshot"""
        version = self._next_version()

        db_rule_set = GradeRuleSetRecord(version=version)
        self.db.add(db_rule_set)
        self.db.flush()  # Get ID without committing

        for position, rule in enumerate(rules):
            self.db.add(
                GradeRuleRecord(
                    rule_set_id=db_rule_set.id,
                    position=position,
                    grade=rule.id,
                    label=rule.label,
                    color=rule.color,
                    priority=rule.priority,
                    min_balance=rule.min_balance,
                    min_days_since_payment=rule.min_days_since_payment,
                    min_days_since_contact=rule.min_days_since_contact,
                    cooldown_amount=rule.cooldown_amount,
                    cooldown_unit=rule.cooldown_unit.value,
                    chat_enabled=rule.chat_enabled,
                    sms_enabled=rule.sms_enabled,
                    chat_template_id=rule.chat_template_id,
                    sms_template_id=rule.sms_template_id,
                )
            )

        return RuleSet.of(rules, version=version)

    def _next_version(self) -> int:
        current = self.db.query(func.max(GradeRuleSetRecord.version)).scalar()
        return (current or 0) + 1
