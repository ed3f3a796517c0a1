"""PostgreSQL ledger store using row locks."""

import logging
from typing import Any, Iterable

from ledger_engine.exceptions import (
    AccountNotFoundError,
    ConflictExhaustedError,
    LedgerError,
    TransactionNotFoundError,
)
from ledger_engine.models.ledger import (
    Account,
    Transaction,
    TransactionStatus,
    TransactionType,
)
from ledger_engine.store.base import Changes, CommitFn, LedgerStore, Snapshot, utc_now

logger = logging.getLogger(__name__)

ACCOUNT_COLUMNS = (
    "account_id",
    "balance",
    "total_invested",
    "total_interest",
    "total_withdrawal",
    "current_plan_id",
    "last_accrual_date",
    "created_at",
    "updated_at",
)

TRANSACTION_COLUMNS = (
    "transaction_id",
    "account_id",
    "transaction_type",
    "amount",
    "status",
    "plan_id",
    "description",
    "reference",
    "auto_generated",
    "processed_by",
    "created_at",
    "updated_at",
    "approved_at",
    "completed_at",
)

DDL = """
CREATE TABLE IF NOT EXISTS ledger_accounts (
    account_id VARCHAR(128) PRIMARY KEY,
    balance NUMERIC(20, 8) NOT NULL DEFAULT 0 CHECK (balance >= 0),
    total_invested NUMERIC(20, 8) NOT NULL DEFAULT 0,
    total_interest NUMERIC(20, 8) NOT NULL DEFAULT 0,
    total_withdrawal NUMERIC(20, 8) NOT NULL DEFAULT 0,
    current_plan_id VARCHAR(64),
    last_accrual_date DATE,
    created_at TIMESTAMPTZ NOT NULL,
    updated_at TIMESTAMPTZ
);

CREATE TABLE IF NOT EXISTS ledger_transactions (
    transaction_id VARCHAR(64) PRIMARY KEY,
    account_id VARCHAR(128) NOT NULL REFERENCES ledger_accounts(account_id) ON DELETE CASCADE,
    transaction_type VARCHAR(20) NOT NULL,
    amount NUMERIC(20, 8) NOT NULL CHECK (amount > 0),
    status VARCHAR(20) NOT NULL,
    plan_id VARCHAR(64),
    description TEXT NOT NULL DEFAULT '',
    reference VARCHAR(255),
    auto_generated BOOLEAN NOT NULL DEFAULT FALSE,
    processed_by VARCHAR(128),
    created_at TIMESTAMPTZ NOT NULL,
    updated_at TIMESTAMPTZ,
    approved_at TIMESTAMPTZ,
    completed_at TIMESTAMPTZ
);

CREATE INDEX IF NOT EXISTS idx_ledger_transactions_account ON ledger_transactions(account_id, created_at);
CREATE INDEX IF NOT EXISTS idx_ledger_transactions_status ON ledger_transactions(status);
"""

_SELECT_ACCOUNT = f"SELECT {', '.join(ACCOUNT_COLUMNS)} FROM ledger_accounts"
_SELECT_TRANSACTION = f"SELECT {', '.join(TRANSACTION_COLUMNS)} FROM ledger_transactions"

_UPDATE_ACCOUNT = (
    "UPDATE ledger_accounts SET "
    + ", ".join(f"{c} = %s" for c in ACCOUNT_COLUMNS[1:])
    + " WHERE account_id = %s"
)

# Type and amount are never overwritten on conflict.
_UPSERT_TRANSACTION = (
    f"INSERT INTO ledger_transactions ({', '.join(TRANSACTION_COLUMNS)}) "
    f"VALUES ({', '.join(['%s'] * len(TRANSACTION_COLUMNS))}) "
    "ON CONFLICT (transaction_id) DO UPDATE SET "
    "status = EXCLUDED.status, "
    "processed_by = EXCLUDED.processed_by, "
    "updated_at = EXCLUDED.updated_at, "
    "approved_at = EXCLUDED.approved_at, "
    "completed_at = EXCLUDED.completed_at"
)


def _row_to_account(row: tuple) -> Account:
    return Account(**dict(zip(ACCOUNT_COLUMNS, row)))


def _row_to_transaction(row: tuple) -> Transaction:
    data = dict(zip(TRANSACTION_COLUMNS, row))
    data["transaction_type"] = TransactionType(data["transaction_type"])
    data["status"] = TransactionStatus(data["status"])
    data["description"] = data["description"] or ""
    return Transaction(**data)


def _account_params(account: Account) -> tuple[Any, ...]:
    return tuple(getattr(account, c) for c in ACCOUNT_COLUMNS[1:]) + (account.account_id,)


def _transaction_params(transaction: Transaction) -> tuple[Any, ...]:
    values = []
    for column in TRANSACTION_COLUMNS:
        value = getattr(transaction, column)
        if column in ("transaction_type", "status"):
            value = value.value
        values.append(value)
    return tuple(values)


class PostgresLedgerStore(LedgerStore):
    """Ledger store backed by PostgreSQL.

    :meth:`commit` locks the account row (and any named transaction rows)
    with ``SELECT ... FOR UPDATE`` inside one database transaction, so
    concurrent writers to the same account queue behind each other.
    Serialization failures and deadlocks are retried.
    """

    def __init__(self, connection_string: str, max_retries: int = 5) -> None:
        """Initialize PostgreSQL store.

        Parameters
        ----------
        connection_string : str
            PostgreSQL connection string.
        max_retries : int
            Attempts per atomic unit before giving up.
        """
        try:
            import psycopg
        except ImportError:
            raise ImportError(
                "psycopg is required for PostgresLedgerStore. Install with: pip install psycopg"
            ) from None

        self._psycopg = psycopg
        self.conn = psycopg.connect(connection_string, autocommit=True)
        self.max_retries = max_retries

    def create_tables(self) -> None:
        """Create ledger tables if they don't exist."""
        with self.conn.transaction():
            with self.conn.cursor() as cur:
                cur.execute(DDL)
        logger.info("Ledger tables ready")

    def close(self) -> None:
        """Close the connection."""
        self.conn.close()

    def get_account(self, account_id: str) -> Account | None:
        with self.conn.cursor() as cur:
            cur.execute(f"{_SELECT_ACCOUNT} WHERE account_id = %s", (account_id,))
            row = cur.fetchone()
        return _row_to_account(row) if row is not None else None

    def create_account_if_absent(self, account_id: str) -> Account:
        now = utc_now()
        with self.conn.transaction():
            with self.conn.cursor() as cur:
                cur.execute(
                    "INSERT INTO ledger_accounts (account_id, created_at, updated_at) "
                    "VALUES (%s, %s, %s) ON CONFLICT (account_id) DO NOTHING",
                    (account_id, now, now),
                )
                cur.execute(f"{_SELECT_ACCOUNT} WHERE account_id = %s", (account_id,))
                row = cur.fetchone()
        return _row_to_account(row)

    def delete_account(self, account_id: str) -> int:
        with self.conn.transaction():
            with self.conn.cursor() as cur:
                cur.execute("DELETE FROM ledger_transactions WHERE account_id = %s", (account_id,))
                removed = cur.rowcount
                cur.execute("DELETE FROM ledger_accounts WHERE account_id = %s", (account_id,))
                if cur.rowcount == 0:
                    raise AccountNotFoundError(f"Account {account_id} not found")
        return removed

    def list_accounts(self) -> list[Account]:
        with self.conn.cursor() as cur:
            cur.execute(f"{_SELECT_ACCOUNT} ORDER BY created_at, account_id")
            return [_row_to_account(row) for row in cur.fetchall()]

    def get_transaction(self, transaction_id: str) -> Transaction | None:
        with self.conn.cursor() as cur:
            cur.execute(f"{_SELECT_TRANSACTION} WHERE transaction_id = %s", (transaction_id,))
            row = cur.fetchone()
        return _row_to_transaction(row) if row is not None else None

    def append_transaction(self, transaction: Transaction) -> None:
        if transaction.created_at is None:
            transaction.created_at = utc_now()
        with self.conn.transaction():
            with self.conn.cursor() as cur:
                cur.execute(
                    "SELECT 1 FROM ledger_accounts WHERE account_id = %s",
                    (transaction.account_id,),
                )
                if cur.fetchone() is None:
                    raise AccountNotFoundError(f"Account {transaction.account_id} not found")
                cur.execute(_UPSERT_TRANSACTION, _transaction_params(transaction))

    def list_account_transactions(self, account_id: str) -> list[Transaction]:
        with self.conn.cursor() as cur:
            cur.execute(
                f"{_SELECT_TRANSACTION} WHERE account_id = %s ORDER BY created_at, transaction_id",
                (account_id,),
            )
            return [_row_to_transaction(row) for row in cur.fetchall()]

    def list_transactions_by_status(self, status: TransactionStatus) -> list[Transaction]:
        with self.conn.cursor() as cur:
            cur.execute(
                f"{_SELECT_TRANSACTION} WHERE status = %s ORDER BY created_at, transaction_id",
                (status.value,),
            )
            return [_row_to_transaction(row) for row in cur.fetchall()]

    def commit(
        self,
        account_id: str,
        fn: CommitFn,
        transaction_ids: Iterable[str] = (),
    ) -> Changes:
        transaction_ids = tuple(transaction_ids)
        errors = self._psycopg.errors

        for attempt in range(1, self.max_retries + 1):
            try:
                return self._commit_once(account_id, fn, transaction_ids)
            except LedgerError:
                raise
            except (errors.SerializationFailure, errors.DeadlockDetected) as e:
                logger.warning(
                    "Write conflict on account %s (attempt %d/%d): %s",
                    account_id,
                    attempt,
                    self.max_retries,
                    e,
                )

        raise ConflictExhaustedError(
            f"Account {account_id}: gave up after {self.max_retries} conflicting attempts"
        )

    def _commit_once(
        self,
        account_id: str,
        fn: CommitFn,
        transaction_ids: tuple[str, ...],
    ) -> Changes:
        with self.conn.transaction():
            with self.conn.cursor() as cur:
                cur.execute(f"{_SELECT_ACCOUNT} WHERE account_id = %s FOR UPDATE", (account_id,))
                row = cur.fetchone()
                if row is None:
                    raise AccountNotFoundError(f"Account {account_id} not found")
                account = _row_to_account(row)

                transactions = {}
                for transaction_id in transaction_ids:
                    cur.execute(
                        f"{_SELECT_TRANSACTION} WHERE transaction_id = %s FOR UPDATE",
                        (transaction_id,),
                    )
                    tx_row = cur.fetchone()
                    if tx_row is None:
                        raise TransactionNotFoundError(f"Transaction {transaction_id} not found")
                    transactions[transaction_id] = _row_to_transaction(tx_row)

                changes = fn(Snapshot(account=account, transactions=transactions))

                if changes.account is not None:
                    cur.execute(_UPDATE_ACCOUNT, _account_params(changes.account))
                else:
                    changes.account = account
                for transaction in changes.transactions:
                    if transaction.created_at is None:
                        transaction.created_at = utc_now()
                    cur.execute(_UPSERT_TRANSACTION, _transaction_params(transaction))
        return changes
