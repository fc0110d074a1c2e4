"""Pytest fixtures for testing"""

import pytest
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Generator
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from arrearsflow.api.main import create_app
from arrearsflow.infrastructure.database.models import Base, DebtorRecord, LedgerEntryRecord, ContactEventRecord
from arrearsflow.infrastructure.database.session import get_db
from arrearsflow.domain.models import Debtor, EntryKind, LedgerEntry, LedgerUnit
from arrearsflow.domain.rules import DEFAULT_GRADE_RULES


# Test database
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Fixed evaluation instant so day arithmetic is reproducible
NOW = datetime(2025, 12, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create test database and session"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db: Session) -> TestClient:
    """Create FastAPI test client with test database"""
    app = create_app()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    return TestClient(app)


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def rules():
    """Shipped four-grade waterfall (D, C, B, A)"""
    return DEFAULT_GRADE_RULES


def payment(days_ago: int, balance_after, unit: LedgerUnit = LedgerUnit.CURRENCY, amount="1000") -> LedgerEntry:
    """Credit entry `days_ago` days before NOW"""
    return LedgerEntry(
        kind=EntryKind.CREDIT,
        unit=unit,
        amount=Decimal(amount),
        occurred_on=(NOW - timedelta(days=days_ago)).date(),
        balance_after=Decimal(balance_after),
    )


def charge(days_ago: int, balance_after, unit: LedgerUnit = LedgerUnit.CURRENCY, amount="1000") -> LedgerEntry:
    """Debit entry `days_ago` days before NOW"""
    return LedgerEntry(
        kind=EntryKind.DEBIT,
        unit=unit,
        amount=Decimal(amount),
        occurred_on=(NOW - timedelta(days=days_ago)).date(),
        balance_after=Decimal(balance_after),
    )


@pytest.fixture
def scenario_a_debtor() -> Debtor:
    """60,000 outstanding, paid 120 days ago, contacted 60 days ago"""
    return Debtor(
        id="c1",
        name="Scenario A",
        current_balance=Decimal("60000"),
        transactions=[charge(150, "61000"), payment(120, "60000")],
        last_chat_at=NOW - timedelta(days=60),
    )


@pytest.fixture
def seeded_debtors(db: Session) -> Session:
    """Three stored debtors covering grades D, C and A.

    Dated against the wall clock because the API evaluates stored debtors at server time.
    """
    ref = datetime.now(timezone.utc)
    db.add_all(
        [
            DebtorRecord(
                id="c1",
                name="Critical Traders",
                current_balance=Decimal("60000"),
                current_commodity_balance=Decimal("12.500"),
                last_chat_at=ref - timedelta(days=60),
            ),
            DebtorRecord(
                id="c2",
                name="Watchlist Jewels",
                current_balance=Decimal("25000"),
                current_commodity_balance=Decimal("0"),
            ),
            DebtorRecord(
                id="c3",
                name="Settled Stores",
                current_balance=Decimal("0"),
                current_commodity_balance=Decimal("0"),
            ),
        ]
    )
    db.flush()

    db.add_all(
        [
            LedgerEntryRecord(
                debtor_id="c1", kind="debit", unit="currency", amount=Decimal("60000"),
                balance_after=Decimal("60000"), occurred_on=(ref - timedelta(days=200)).date(),
            ),
            LedgerEntryRecord(
                debtor_id="c1", kind="credit", unit="commodity", amount=Decimal("2.500"),
                balance_after=Decimal("12.500"), occurred_on=(ref - timedelta(days=120)).date(),
            ),
            LedgerEntryRecord(
                debtor_id="c2", kind="credit", unit="currency", amount=Decimal("5000"),
                balance_after=Decimal("25000"), occurred_on=(ref - timedelta(days=50)).date(),
            ),
            LedgerEntryRecord(
                debtor_id="c3", kind="credit", unit="currency", amount=Decimal("8000"),
                balance_after=Decimal("0"), occurred_on=ref.date(),
            ),
            ContactEventRecord(
                debtor_id="c2", channel="voice_call", occurred_at=ref - timedelta(days=10), outcome="No Answer",
            ),
        ]
    )
    db.commit()
    return db
