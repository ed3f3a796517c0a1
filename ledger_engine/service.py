"""Ledger service: the operations exposed to the web/API layer."""

import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Callable

from ledger_engine.config import EngineConfig
from ledger_engine.engine import (
    AccrualScheduler,
    AdminAdjustments,
    ReconciliationReport,
    TransitionEngine,
    reconcile_account,
)
from ledger_engine.engine.base import new_transaction_id, to_positive_amount
from ledger_engine.events import EventPublisher
from ledger_engine.exceptions import PermissionDeniedError, ValidationError
from ledger_engine.models.ledger import (
    REQUESTABLE_TYPES,
    Account,
    AccrualResult,
    Actor,
    Transaction,
    TransactionStatus,
    TransactionType,
)
from ledger_engine.plans import PlanCatalog
from ledger_engine.store.base import LedgerStore, utc_now

logger = logging.getLogger(__name__)


class LedgerService:
    """Single entry point over the store and the engine components.

    All components share one store, plan catalog, publisher and clock.

    Parameters
    ----------
    store : LedgerStore
        Account store and transaction log.
    config : EngineConfig | None
        Engine settings.
    catalog : PlanCatalog | None
        Plan table; built from ``config.plans`` when omitted.
    publisher : EventPublisher | None
        Notification fan-out.
    clock : Callable[[], datetime]
        Source of "now".
    """

    def __init__(
        self,
        store: LedgerStore,
        config: EngineConfig | None = None,
        catalog: PlanCatalog | None = None,
        publisher: EventPublisher | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.config = config or EngineConfig()
        self.store = store
        self.catalog = catalog or PlanCatalog(self.config.plans)
        self.publisher = publisher or EventPublisher(
            topic_prefix=self.config.topic_prefix,
            source=self.config.event_source,
            app_id=self.config.app_id,
        )
        self.clock = clock

        shared = dict(
            store=store,
            config=self.config,
            catalog=self.catalog,
            publisher=self.publisher,
            clock=clock,
        )
        self.transitions = TransitionEngine(**shared)
        self.accrual = AccrualScheduler(**shared)
        self.adjustments = AdminAdjustments(**shared)

    # Accounts

    def create_account(self, account_id: str) -> Account:
        """Create a zeroed account on first login; return the existing one otherwise."""
        if not account_id:
            raise ValidationError("account_id is required")
        return self.store.create_account_if_absent(account_id)

    def get_account(self, account_id: str) -> Account:
        return self.store.require_account(account_id)

    # Requests

    def record_transaction(
        self,
        account_id: str,
        transaction_type: TransactionType | str,
        amount: Decimal | int | str,
        plan_id: str | None = None,
        *,
        description: str = "",
        reference: str | None = None,
    ) -> Transaction:
        """Record a user request in ``pending`` status.

        No balance changes until an operator approves the request.

        Parameters
        ----------
        account_id : str
            Requesting account; must exist.
        transaction_type : TransactionType | str
            ``deposit``, ``withdrawal`` or ``investment``.
        amount : Decimal | int | str
            Positive amount.
        plan_id : str | None
            Investment plan; when omitted for an investment the plan is
            picked by principal range at approval.
        description : str
            Free text shown in the history.
        reference : str | None
            External reference such as a wallet transaction hash.

        Returns
        -------
        Transaction
            The stored pending transaction.
        """
        try:
            tx_type = TransactionType(transaction_type)
        except ValueError:
            raise ValidationError(f"Unknown transaction type {transaction_type!r}") from None
        if tx_type not in REQUESTABLE_TYPES:
            raise ValidationError(f"{tx_type.value} transactions cannot be requested")

        amount = to_positive_amount(amount, self.config.money_quantum)

        if tx_type == TransactionType.INVESTMENT:
            plan = self.catalog.resolve(plan_id, amount)
            description = description or f"Investment in {plan.name}"
        elif plan_id is not None:
            raise ValidationError("plan_id is only valid for investments")

        self.store.require_account(account_id)

        now = self.clock()
        transaction = Transaction(
            transaction_id=new_transaction_id(),
            account_id=account_id,
            transaction_type=tx_type,
            amount=amount,
            status=TransactionStatus.PENDING,
            plan_id=plan_id,
            description=description,
            reference=reference,
            created_at=now,
            updated_at=now,
        )
        self.store.append_transaction(transaction)

        logger.info(
            "Recorded %s request %s of %s for account %s",
            tx_type.value,
            transaction.transaction_id,
            amount,
            account_id,
        )
        self.publisher.publish_transaction(transaction, "requested")
        return transaction

    def transition(
        self,
        transaction_id: str,
        new_status: TransactionStatus | str,
        actor: Actor,
    ) -> Transaction:
        return self.transitions.transition(transaction_id, new_status, actor)

    # Accrual

    def maybe_accrue(self, account_id: str, today: date | datetime | str) -> AccrualResult:
        return self.accrual.maybe_accrue(account_id, today)

    def accrue_all(self, today: date | datetime | str) -> dict[str, int]:
        return self.accrual.accrue_all(today)

    # Admin

    def adjust(self, account_id: str, delta: Decimal | int | str, reason: str, actor: Actor) -> Transaction:
        return self.adjustments.adjust(account_id, delta, reason, actor)

    def update_account(self, account_id: str, actor: Actor, **fields: Any) -> Account:
        return self.adjustments.update_account(account_id, actor, **fields)

    def delete_account(self, account_id: str, actor: Actor) -> int:
        return self.adjustments.delete_account(account_id, actor)

    # Queries

    def account_history(self, account_id: str, actor: Actor | None = None) -> list[Transaction]:
        """Return an account's transactions, newest first.

        When ``actor`` is given, only the owner or an admin may read.
        """
        if actor is not None and not actor.is_admin and actor.actor_id != account_id:
            raise PermissionDeniedError(f"{actor.actor_id} may not read history of {account_id}")
        self.store.require_account(account_id)
        transactions = self.store.list_account_transactions(account_id)
        return list(reversed(transactions))

    def pending_transactions(self) -> list[Transaction]:
        """Return the admin approval queue, oldest first."""
        return self.store.list_transactions_by_status(TransactionStatus.PENDING)

    def platform_summary(self) -> dict[str, int | Decimal]:
        return self.store.summary()

    def reconcile(self, account_id: str) -> ReconciliationReport:
        """Compare stored figures with those rebuilt from the ledger.

        Differences are logged at WARNING and returned, never corrected.
        """
        account = self.store.require_account(account_id)
        report = reconcile_account(account, self.store.list_account_transactions(account_id))
        if not report.balanced:
            logger.warning(
                "Account %s differs from its ledger: %s",
                account_id,
                {k: str(v) for k, v in report.differences.items()},
            )
        return report
