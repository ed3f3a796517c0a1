"""In-memory ledger store with optimistic concurrency."""

import logging
import threading
from dataclasses import dataclass, field, replace
from typing import Iterable

from ledger_engine.exceptions import (
    AccountNotFoundError,
    ConflictExhaustedError,
    TransactionNotFoundError,
)
from ledger_engine.models.ledger import Account, Transaction, TransactionStatus
from ledger_engine.store.base import Changes, CommitFn, LedgerStore, Snapshot, utc_now

logger = logging.getLogger(__name__)


def _account_key(account_id: str) -> str:
    return f"account:{account_id}"


def _transaction_key(transaction_id: str) -> str:
    return f"transaction:{transaction_id}"


@dataclass
class InMemoryLedgerStore(LedgerStore):
    """Dict-backed store for tests, simulations and single-process use.

    Each document carries a version counter. :meth:`commit` reads under the
    lock, runs the caller's function without holding it, then re-checks the
    versions it read before writing. A changed version means another writer
    committed in between and the attempt is retried.
    """

    max_retries: int = 5

    accounts: dict[str, Account] = field(default_factory=dict)
    transactions: dict[str, Transaction] = field(default_factory=dict)

    # Relationship indexes
    _account_transactions: dict[str, list[str]] = field(default_factory=dict)
    _versions: dict[str, int] = field(default_factory=dict)
    _lock: threading.RLock = field(default_factory=threading.RLock, repr=False)

    def get_account(self, account_id: str) -> Account | None:
        with self._lock:
            account = self.accounts.get(account_id)
            return replace(account) if account is not None else None

    def create_account_if_absent(self, account_id: str) -> Account:
        with self._lock:
            account = self.accounts.get(account_id)
            if account is None:
                now = utc_now()
                account = Account(account_id=account_id, created_at=now, updated_at=now)
                self.accounts[account_id] = account
                self._account_transactions[account_id] = []
                self._versions[_account_key(account_id)] = 0
                logger.debug("Created account %s", account_id)
            return replace(account)

    def delete_account(self, account_id: str) -> int:
        with self._lock:
            if account_id not in self.accounts:
                raise AccountNotFoundError(f"Account {account_id} not found")
            transaction_ids = self._account_transactions.pop(account_id, [])
            for transaction_id in transaction_ids:
                self.transactions.pop(transaction_id, None)
                self._versions.pop(_transaction_key(transaction_id), None)
            del self.accounts[account_id]
            self._versions.pop(_account_key(account_id), None)
            return len(transaction_ids)

    def list_accounts(self) -> list[Account]:
        with self._lock:
            return [replace(a) for a in self.accounts.values()]

    def get_transaction(self, transaction_id: str) -> Transaction | None:
        with self._lock:
            transaction = self.transactions.get(transaction_id)
            return replace(transaction) if transaction is not None else None

    def append_transaction(self, transaction: Transaction) -> None:
        with self._lock:
            if transaction.account_id not in self.accounts:
                raise AccountNotFoundError(f"Account {transaction.account_id} not found")
            self._upsert_transaction(transaction)

    def list_account_transactions(self, account_id: str) -> list[Transaction]:
        with self._lock:
            ids = self._account_transactions.get(account_id, [])
            return [replace(self.transactions[tid]) for tid in ids]

    def list_transactions_by_status(self, status: TransactionStatus) -> list[Transaction]:
        with self._lock:
            return [replace(t) for t in self.transactions.values() if t.status == status]

    def commit(
        self,
        account_id: str,
        fn: CommitFn,
        transaction_ids: Iterable[str] = (),
    ) -> Changes:
        transaction_ids = tuple(transaction_ids)

        for attempt in range(1, self.max_retries + 1):
            with self._lock:
                account = self.accounts.get(account_id)
                if account is None:
                    raise AccountNotFoundError(f"Account {account_id} not found")
                read_versions = {_account_key(account_id): self._versions.get(_account_key(account_id), 0)}
                transactions = {}
                for transaction_id in transaction_ids:
                    transaction = self.transactions.get(transaction_id)
                    if transaction is None:
                        raise TransactionNotFoundError(f"Transaction {transaction_id} not found")
                    key = _transaction_key(transaction_id)
                    read_versions[key] = self._versions.get(key, 0)
                    transactions[transaction_id] = replace(transaction)
                snapshot = Snapshot(account=replace(account), transactions=transactions)

            changes = fn(snapshot)

            with self._lock:
                if account_id not in self.accounts:
                    raise AccountNotFoundError(f"Account {account_id} was deleted")
                if any(self._versions.get(k, 0) != v for k, v in read_versions.items()):
                    logger.debug("Write conflict on account %s (attempt %d)", account_id, attempt)
                    continue
                self._apply(account_id, changes)
                if changes.account is None:
                    changes.account = replace(self.accounts[account_id])
                return changes

        raise ConflictExhaustedError(
            f"Account {account_id}: gave up after {self.max_retries} conflicting attempts"
        )

    def _apply(self, account_id: str, changes: Changes) -> None:
        """Write changes; caller holds the lock."""
        if changes.account is not None:
            self.accounts[account_id] = replace(changes.account)
            key = _account_key(account_id)
            self._versions[key] = self._versions.get(key, 0) + 1
        for transaction in changes.transactions:
            self._upsert_transaction(transaction)

    def _upsert_transaction(self, transaction: Transaction) -> None:
        """Insert or replace a transaction; caller holds the lock."""
        if transaction.created_at is None:
            transaction.created_at = utc_now()
        transaction_id = transaction.transaction_id
        if transaction_id not in self.transactions:
            self._account_transactions.setdefault(transaction.account_id, []).append(transaction_id)
        self.transactions[transaction_id] = replace(transaction)
        key = _transaction_key(transaction_id)
        self._versions[key] = self._versions.get(key, 0) + 1
