"""Storage contract shared by the ledger backends."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Callable, Iterable

from ledger_engine.exceptions import AccountNotFoundError, TransactionNotFoundError
from ledger_engine.models.ledger import Account, Transaction, TransactionStatus


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


@dataclass
class Snapshot:
    """Fresh copies read at the start of one atomic attempt.

    Callers may modify these objects freely; nothing is persisted until
    they are returned in a :class:`Changes`.
    """

    account: Account
    transactions: dict[str, Transaction] = field(default_factory=dict)


@dataclass
class Changes:
    """Writes produced by one atomic unit.

    ``account`` replaces the stored account when set. ``transactions`` are
    upserted by id. Both are applied together or not at all.
    """

    account: Account | None = None
    transactions: list[Transaction] = field(default_factory=list)


CommitFn = Callable[[Snapshot], Changes]


class LedgerStore(ABC):
    """Account store and transaction log behind one atomic primitive.

    Every balance change goes through :meth:`commit`, which re-reads the
    account (and any named transactions), calls the caller's function on
    the fresh copies and writes the result atomically, retrying when a
    concurrent writer got there first.
    """

    max_retries: int

    # Accounts
    @abstractmethod
    def get_account(self, account_id: str) -> Account | None:
        """Return a copy of the account, or None."""

    @abstractmethod
    def create_account_if_absent(self, account_id: str) -> Account:
        """Create a zeroed account unless it exists; return the stored one."""

    @abstractmethod
    def delete_account(self, account_id: str) -> int:
        """Delete an account and its transactions; return transactions removed."""

    @abstractmethod
    def list_accounts(self) -> list[Account]:
        """Return all accounts."""

    # Transactions
    @abstractmethod
    def get_transaction(self, transaction_id: str) -> Transaction | None:
        """Return a copy of the transaction, or None."""

    @abstractmethod
    def append_transaction(self, transaction: Transaction) -> None:
        """Insert a new transaction for an existing account."""

    @abstractmethod
    def list_account_transactions(self, account_id: str) -> list[Transaction]:
        """Return an account's transactions in insertion order."""

    @abstractmethod
    def list_transactions_by_status(self, status: TransactionStatus) -> list[Transaction]:
        """Return all transactions currently in ``status``."""

    # Atomic unit
    @abstractmethod
    def commit(
        self,
        account_id: str,
        fn: CommitFn,
        transaction_ids: Iterable[str] = (),
    ) -> Changes:
        """Run ``fn`` on fresh copies and apply its changes atomically.

        ``fn`` may run more than once and must not have side effects outside
        the returned :class:`Changes`. The returned changes always carry the
        resulting account.

        Raises
        ------
        AccountNotFoundError
            If the account does not exist or vanished mid-operation.
        TransactionNotFoundError
            If one of ``transaction_ids`` does not exist.
        ConflictExhaustedError
            If concurrent writers won every attempt.
        """

    def mutate(self, account_id: str, fn: Callable[[Account], Account]) -> Account:
        """Read-modify-write a single account with conflict retry."""
        changes = self.commit(account_id, lambda snap: Changes(account=fn(snap.account)))
        return changes.account

    def require_account(self, account_id: str) -> Account:
        account = self.get_account(account_id)
        if account is None:
            raise AccountNotFoundError(f"Account {account_id} not found")
        return account

    def require_transaction(self, transaction_id: str) -> Transaction:
        transaction = self.get_transaction(transaction_id)
        if transaction is None:
            raise TransactionNotFoundError(f"Transaction {transaction_id} not found")
        return transaction

    def summary(self) -> dict[str, int | Decimal]:
        """Return platform-wide counts and totals."""
        accounts = self.list_accounts()
        return {
            "accounts": len(accounts),
            "active_accounts": sum(1 for a in accounts if a.is_active),
            "pending_approvals": len(self.list_transactions_by_status(TransactionStatus.PENDING)),
            "total_balance": sum((a.balance for a in accounts), Decimal("0")),
            "total_invested": sum((a.total_invested for a in accounts), Decimal("0")),
            "total_interest": sum((a.total_interest for a in accounts), Decimal("0")),
            "total_withdrawal": sum((a.total_withdrawal for a in accounts), Decimal("0")),
        }
