"""Rebuild account figures from the ledger and compare with stored values."""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterable

from ledger_engine.models.ledger import (
    Account,
    Transaction,
    TransactionStatus,
    TransactionType,
)

T = TransactionType

# Request types count once approved; engine-created types are born completed.
_APPLIED = {
    T.DEPOSIT: {TransactionStatus.APPROVED, TransactionStatus.COMPLETED},
    T.WITHDRAWAL: {TransactionStatus.APPROVED, TransactionStatus.COMPLETED},
    T.INVESTMENT: {TransactionStatus.APPROVED, TransactionStatus.COMPLETED},
    T.INTEREST: {TransactionStatus.COMPLETED},
    T.ADMIN_CREDIT: {TransactionStatus.COMPLETED},
    T.ADMIN_DEBIT: {TransactionStatus.COMPLETED},
}

FIELDS = ("balance", "total_invested", "total_interest", "total_withdrawal")


@dataclass
class ReconciliationReport:
    """Stored account figures next to the figures implied by its ledger."""

    account_id: str
    stored: dict[str, Decimal]
    ledger: dict[str, Decimal]
    differences: dict[str, Decimal] = field(default_factory=dict)

    @property
    def balanced(self) -> bool:
        return not self.differences


def ledger_totals(transactions: Iterable[Transaction]) -> dict[str, Decimal]:
    """Sum the applied entries of one account."""
    sums = {t: Decimal("0") for t in T}
    for tx in transactions:
        if tx.status in _APPLIED[tx.transaction_type]:
            sums[tx.transaction_type] += tx.amount

    return {
        "balance": (
            sums[T.DEPOSIT]
            - sums[T.WITHDRAWAL]
            - sums[T.INVESTMENT]
            + sums[T.INTEREST]
            + sums[T.ADMIN_CREDIT]
            - sums[T.ADMIN_DEBIT]
        ),
        "total_invested": sums[T.INVESTMENT],
        "total_interest": sums[T.INTEREST],
        "total_withdrawal": sums[T.WITHDRAWAL],
    }


def reconcile_account(account: Account, transactions: Iterable[Transaction]) -> ReconciliationReport:
    """Compare ``account`` with the totals rebuilt from ``transactions``."""
    stored = {name: getattr(account, name) for name in FIELDS}
    ledger = ledger_totals(transactions)
    differences = {
        name: stored[name] - ledger[name]
        for name in FIELDS
        if stored[name] != ledger[name]
    }
    return ReconciliationReport(
        account_id=account.account_id,
        stored=stored,
        ledger=ledger,
        differences=differences,
    )
