"""Investor activity scenario: many days of requests, approvals and accrual."""

import logging
import random
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from typing import Any

from faker import Faker

from ledger_engine.config import EngineConfig
from ledger_engine.engine import ReconciliationReport
from ledger_engine.events import EventPublisher
from ledger_engine.exceptions import InsufficientBalanceError, PlanNotFoundError
from ledger_engine.models.ledger import Actor, TransactionStatus, TransactionType
from ledger_engine.service import LedgerService
from ledger_engine.store import InMemoryLedgerStore, LedgerStore

logger = logging.getLogger(__name__)


class InvestorActivityScenario:
    """Drive the engine through realistic day-by-day platform activity.

    Each simulated day:
    - Some investors request deposits, withdrawals or investments
    - An operator works the pending queue, approving or rejecting requests
    - The daily accrual batch runs
    - Occasionally the operator makes a balance correction

    The clock handed to the service follows the simulated day, so stored
    timestamps line up with the accrual dates.
    """

    def __init__(
        self,
        num_accounts: int = 50,
        days: int = 30,
        start_date: date = date(2024, 1, 1),
        activity_rate: float = 0.35,
        approval_rate: float = 0.85,
        adjustment_rate: float = 0.02,
        store: LedgerStore | None = None,
        config: EngineConfig | None = None,
        publisher: EventPublisher | None = None,
        seed: int | None = None,
        locale: str = "en_US",
    ) -> None:
        """Initialize investor activity scenario.

        Parameters
        ----------
        num_accounts : int
            Number of investor accounts to create.
        days : int
            Number of simulated days.
        start_date : date
            First simulated day.
        activity_rate : float
            Chance that an investor submits a request on a given day.
        approval_rate : float
            Chance that the operator approves a pending request.
        adjustment_rate : float
            Chance per account per day of an operator correction.
        store : LedgerStore | None
            Backend; in-memory when omitted.
        config : EngineConfig | None
            Engine settings.
        publisher : EventPublisher | None
            Notification fan-out for the simulated changes.
        seed : int | None
            Random seed for reproducibility.
        locale : str
            Faker locale.
        """
        self.num_accounts = num_accounts
        self.days = days
        self.start_date = start_date
        self.activity_rate = activity_rate
        self.approval_rate = approval_rate
        self.adjustment_rate = adjustment_rate
        self.seed = seed

        self.fake = Faker(locale)
        if seed is not None:
            self.fake.seed_instance(seed)
            random.seed(seed)

        self._now = datetime.combine(start_date, time(9, 0), tzinfo=timezone.utc)
        self.store = store or InMemoryLedgerStore()
        self.service = LedgerService(
            self.store,
            config=config,
            publisher=publisher,
            clock=lambda: self._now,
        )
        self.admin = Actor(actor_id=f"ops-{self.fake.user_name()}", is_admin=True)
        self.account_ids: list[str] = []
        self.stats: dict[str, int] = {
            "requests": 0,
            "approved": 0,
            "rejected": 0,
            "declined_insufficient": 0,
            "adjustments": 0,
            "accruals": 0,
        }

    def generate(self) -> LedgerService:
        """Run the whole simulation.

        Returns
        -------
        LedgerService
            Service over the store holding the simulated ledger.
        """
        logger.info(
            "Starting investor activity scenario: %d accounts, %d days",
            self.num_accounts,
            self.days,
        )

        for _ in range(self.num_accounts):
            account = self.service.create_account(self.fake.uuid4())
            self.account_ids.append(account.account_id)

        for offset in range(self.days):
            day = self.start_date + timedelta(days=offset)
            self._simulate_day(day)

        summary = self.service.platform_summary()
        logger.info(
            "Scenario complete: %d requests, %d approved, %d rejected, "
            "%d accruals, total balance %s, total interest %s",
            self.stats["requests"],
            self.stats["approved"],
            self.stats["rejected"] + self.stats["declined_insufficient"],
            self.stats["accruals"],
            summary["total_balance"],
            summary["total_interest"],
        )
        return self.service

    def _simulate_day(self, day: date) -> None:
        self._set_clock(day, time(9, 0))
        for account_id in self.account_ids:
            if random.random() < self.activity_rate:
                self._submit_request(account_id)

        self._set_clock(day, time(14, 0))
        self._work_queue()

        for account_id in self.account_ids:
            if random.random() < self.adjustment_rate:
                self._make_adjustment(account_id)

        self._set_clock(day, time(23, 30))
        counts = self.service.accrue_all(day)
        self.stats["accruals"] += counts["accrued"]

    def _set_clock(self, day: date, at: time) -> None:
        self._now = datetime.combine(day, at, tzinfo=timezone.utc)

    def _submit_request(self, account_id: str) -> None:
        """Submit a deposit, withdrawal or investment request."""
        account = self.service.get_account(account_id)

        if account.balance >= Decimal("500") and random.random() < 0.4:
            amount = Decimal(random.randint(500, int(account.balance)))
            try:
                self.service.record_transaction(account_id, TransactionType.INVESTMENT, amount)
            except PlanNotFoundError:
                return
        elif account.balance > 0 and random.random() < 0.2:
            # Occasionally ask for more than is available
            amount = Decimal(random.randint(1, int(account.balance) + 200))
            self.service.record_transaction(account_id, TransactionType.WITHDRAWAL, amount)
        else:
            amount = Decimal(random.choice([100, 250, 500, 1000, 2500, 5000]))
            self.service.record_transaction(
                account_id,
                TransactionType.DEPOSIT,
                amount,
                reference=self.fake.sha256(),
            )
        self.stats["requests"] += 1

    def _work_queue(self) -> None:
        """Approve or reject everything pending, oldest first."""
        for tx in self.service.pending_transactions():
            if random.random() >= self.approval_rate:
                self.service.transition(tx.transaction_id, TransactionStatus.REJECTED, self.admin)
                self.stats["rejected"] += 1
                continue
            try:
                self.service.transition(tx.transaction_id, TransactionStatus.APPROVED, self.admin)
            except InsufficientBalanceError:
                self.service.transition(tx.transaction_id, TransactionStatus.DECLINED, self.admin)
                self.stats["declined_insufficient"] += 1
                continue
            self.stats["approved"] += 1
            if tx.transaction_type != TransactionType.INVESTMENT:
                self.service.transition(tx.transaction_id, TransactionStatus.COMPLETED, self.admin)

    def _make_adjustment(self, account_id: str) -> None:
        account = self.service.get_account(account_id)
        delta = Decimal(random.choice([-50, -10, 10, 25, 50]))
        if account.balance + delta < 0:
            delta = abs(delta)
        self.service.adjust(account_id, delta, self.fake.sentence(nb_words=4), self.admin)
        self.stats["adjustments"] += 1

    def check_consistency(self) -> list[ReconciliationReport]:
        """Return the accounts whose stored figures differ from their ledger.

        An empty list means the ledger explains every stored balance.
        """
        unbalanced = []
        for account_id in self.account_ids:
            report = self.service.reconcile(account_id)
            if not report.balanced:
                unbalanced.append(report)
        return unbalanced

    def export(self, sinks: list[Any]) -> None:
        """Send final accounts and the full ledger to sinks.

        Parameters
        ----------
        sinks : list[Any]
            Sink instances (ConsoleSink, JsonFileSink, KafkaSink).
        """
        prefix = self.service.config.topic_prefix
        for sink in sinks:
            for account in self.store.list_accounts():
                sink.send(f"{prefix}.accounts", account, key=account.account_id)
                for tx in self.store.list_account_transactions(account.account_id):
                    sink.send(f"{prefix}.ledger", tx, key=account.account_id)

        logger.info("Exported investor activity data to %d sinks", len(sinks))
