"""Pytest configuration and fixtures."""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Callable

import pytest

from ledger_engine.models.ledger import Account, Actor, TransactionStatus, TransactionType
from ledger_engine.service import LedgerService
from ledger_engine.store import InMemoryLedgerStore


@pytest.fixture
def seed() -> int:
    """Fixed seed for reproducible tests."""
    return 42


@pytest.fixture
def sample_account_id() -> str:
    """Sample account ID."""
    return "acct-test-001"


@pytest.fixture
def now() -> datetime:
    """Fixed "now" used by the engine clock."""
    return datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def clock(now: datetime) -> Callable[[], datetime]:
    return lambda: now


@pytest.fixture
def store() -> InMemoryLedgerStore:
    """Create a fresh store for each test."""
    return InMemoryLedgerStore()


@pytest.fixture
def service(store: InMemoryLedgerStore, clock: Callable[[], datetime]) -> LedgerService:
    return LedgerService(store, clock=clock)


@pytest.fixture
def admin() -> Actor:
    return Actor(actor_id="admin-1", is_admin=True)


@pytest.fixture
def owner(sample_account_id: str) -> Actor:
    """The account owner, not an admin."""
    return Actor(actor_id=sample_account_id)


@pytest.fixture
def account(service: LedgerService, sample_account_id: str) -> Account:
    """Empty account."""
    return service.create_account(sample_account_id)


@pytest.fixture
def fund(service: LedgerService, admin: Actor) -> Callable[[str, str], None]:
    """Deposit an amount into an account and approve it."""

    def _fund(account_id: str, amount: str) -> None:
        tx = service.record_transaction(account_id, TransactionType.DEPOSIT, Decimal(amount))
        service.transition(tx.transaction_id, TransactionStatus.APPROVED, admin)

    return _fund


@pytest.fixture
def funded_account(service: LedgerService, account: Account, fund: Callable) -> Account:
    """Account with an approved 1000 deposit."""
    fund(account.account_id, "1000")
    return service.get_account(account.account_id)


@pytest.fixture
def invested_account(
    service: LedgerService,
    account: Account,
    admin: Actor,
    fund: Callable,
) -> Account:
    """Account with 500 invested in the basic plan and nothing spendable."""
    fund(account.account_id, "500")
    tx = service.record_transaction(
        account.account_id, TransactionType.INVESTMENT, Decimal("500"), plan_id="basic"
    )
    service.transition(tx.transaction_id, TransactionStatus.APPROVED, admin)
    return service.get_account(account.account_id)
