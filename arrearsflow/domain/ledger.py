"""Ledger aggregation - running balances and payment recency per unit"""

from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional
from arrearsflow.domain.models import Debtor, EntryKind, LedgerEntry, LedgerSummary, LedgerUnit


def last_payment_date(debtor: Debtor, unit: Optional[LedgerUnit] = None) -> Optional[date]:
    """
    Most recent date a payment (credit entry) was received.

    Both ledgers count unless `unit` narrows the scan. Returns None when no
    payment was ever recorded; callers treat that as maximally stale.
    """
    payments = [
        t.occurred_on
        for t in debtor.transactions
        if t.kind == EntryKind.CREDIT and (unit is None or t.unit == unit)
    ]
    return max(payments) if payments else None


def _entries_for(debtor: Debtor, unit: LedgerUnit) -> List[LedgerEntry]:
    # sorted() is stable: same-day entries keep their recorded order
    return sorted(
        (t for t in debtor.transactions if t.unit == unit),
        key=lambda t: t.occurred_on,
    )


def summarize_ledger(debtor: Debtor) -> LedgerSummary:
    """
    Reduce the ledger into one running balance and one last-payment date per unit.

    The stored running balance of the latest entry is trusted as-is. A unit
    with no entries falls back to the balance carried on the debtor record.
    """
    carried = {
        LedgerUnit.CURRENCY: debtor.current_balance,
        LedgerUnit.COMMODITY: debtor.current_commodity_balance,
    }

    balances: Dict[LedgerUnit, Decimal] = {}
    last_payment_on: Dict[LedgerUnit, Optional[date]] = {}

    for unit in LedgerUnit:
        entries = _entries_for(debtor, unit)
        balances[unit] = Decimal(entries[-1].balance_after) if entries else Decimal(carried[unit])
        last_payment_on[unit] = last_payment_date(debtor, unit)

    return LedgerSummary(balances=balances, last_payment_on=last_payment_on)
