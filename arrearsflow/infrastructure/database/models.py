"""SQLAlchemy ORM models for debtors, ledgers, contact logs and versioned grade rules"""

from sqlalchemy import Column, String, Boolean, Numeric, DateTime, Date, Integer, ForeignKey, Text
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()


class DebtorRecord(Base):
    """Debtor master record"""

    __tablename__ = "debtor"

    id = Column(Text, primary_key=True)
    name = Column(Text, nullable=True)
    current_balance = Column(Numeric(14, 2), nullable=False, default=0)
    current_commodity_balance = Column(Numeric(14, 3), nullable=False, default=0)
    last_chat_at = Column(DateTime(timezone=True), nullable=True)
    last_call_at = Column(DateTime(timezone=True), nullable=True)
    last_sms_at = Column(DateTime(timezone=True), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    entries = relationship(
        "LedgerEntryRecord",
        back_populates="debtor",
        cascade="all, delete-orphan",
        order_by="LedgerEntryRecord.id",
    )


class LedgerEntryRecord(Base):
    """Single movement on a debtor's currency or commodity ledger"""

    __tablename__ = "ledger_entry"

    id = Column(Integer, primary_key=True, autoincrement=True)
    debtor_id = Column(Text, ForeignKey("debtor.id", ondelete="CASCADE"), nullable=False, index=True)
    ref_no = Column(Text, nullable=True)
    kind = Column(String(16), nullable=False)  # debit | credit
    unit = Column(String(16), nullable=False)  # currency | commodity
    amount = Column(Numeric(14, 3), nullable=False)
    balance_after = Column(Numeric(14, 3), nullable=False)
    occurred_on = Column(Date, nullable=False)
    method = Column(Text, nullable=True)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    debtor = relationship("DebtorRecord", back_populates="entries")


class ContactEventRecord(Base):
    """Communication log row (chat, call, SMS)"""

    __tablename__ = "contact_event"

    id = Column(Integer, primary_key=True, autoincrement=True)
    debtor_id = Column(Text, ForeignKey("debtor.id", ondelete="CASCADE"), nullable=False, index=True)
    channel = Column(String(16), nullable=False)
    occurred_at = Column(DateTime(timezone=True), nullable=False)
    outcome = Column(Text, nullable=True)


class GradeRuleSetRecord(Base):
    """Published version of the grade waterfall. Rows are never edited after publishing."""

    __tablename__ = "grade_rule_set"

    id = Column(Integer, primary_key=True, autoincrement=True)
    version = Column(Integer, nullable=False, unique=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    rules = relationship(
        "GradeRuleRecord",
        back_populates="rule_set",
        cascade="all, delete-orphan",
        order_by="GradeRuleRecord.position",
    )


class GradeRuleRecord(Base):
    """One grade rule within a published rule set"""

    __tablename__ = "grade_rule"

    id = Column(Integer, primary_key=True, autoincrement=True)
    rule_set_id = Column(Integer, ForeignKey("grade_rule_set.id", ondelete="CASCADE"), nullable=False)
    position = Column(Integer, nullable=False)  # input order, used for equal-priority ties
    grade = Column(Text, nullable=False)
    label = Column(Text, nullable=True)
    color = Column(Text, nullable=True)
    priority = Column(Integer, nullable=False)
    min_balance = Column(Numeric(14, 2), nullable=False, default=0)
    min_days_since_payment = Column(Integer, nullable=False, default=0)
    min_days_since_contact = Column(Integer, nullable=False, default=0)
    cooldown_amount = Column(Numeric(10, 2), nullable=False, default=0)
    cooldown_unit = Column(String(8), nullable=False, default="hours")
    chat_enabled = Column(Boolean, nullable=False, default=True)
    sms_enabled = Column(Boolean, nullable=False, default=False)
    chat_template_id = Column(Text, nullable=True)
    sms_template_id = Column(Text, nullable=True)

    rule_set = relationship("GradeRuleSetRecord", back_populates="rules")
