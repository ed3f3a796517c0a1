"""Operator overrides: direct balance adjustments, edits and deletion."""

import logging
from decimal import Decimal
from typing import Any

from ledger_engine.engine.base import (
    EngineComponent,
    new_transaction_id,
    require_admin,
    to_decimal,
)
from ledger_engine.exceptions import InsufficientBalanceError, ValidationError
from ledger_engine.logging import audit
from ledger_engine.models.ledger import (
    Account,
    Actor,
    Transaction,
    TransactionStatus,
    TransactionType,
)
from ledger_engine.store.base import Changes, Snapshot

logger = logging.getLogger(__name__)

_UNSET: Any = object()


class AdminAdjustments(EngineComponent):
    """Trusted-operator actions that bypass the pending/approved flow.

    Every action requires ``actor.is_admin`` and writes an audit line.
    """

    def adjust(self, account_id: str, delta: Decimal, reason: str, actor: Actor) -> Transaction:
        """Credit (``delta > 0``) or debit (``delta < 0``) an account directly.

        Parameters
        ----------
        account_id : str
            Account to adjust.
        delta : Decimal
            Signed amount; debits may not take the balance below zero.
        reason : str
            Free text stored as the entry description.
        actor : Actor
            Operator performing the adjustment.

        Returns
        -------
        Transaction
            The completed ``admin_credit`` / ``admin_debit`` entry.
        """
        require_admin(actor, "adjust balances")
        delta = to_decimal(delta, self.config.money_quantum)
        if delta == 0:
            raise ValidationError("Adjustment amount must not be zero")

        amount = abs(delta)
        tx_type = TransactionType.ADMIN_CREDIT if delta > 0 else TransactionType.ADMIN_DEBIT
        verb = "credited" if delta > 0 else "debited"
        transaction_id = new_transaction_id()
        now = self.clock()

        def apply(snapshot: Snapshot) -> Changes:
            account = snapshot.account
            if account.balance + delta < 0:
                raise InsufficientBalanceError(
                    f"Account {account_id}: balance {account.balance} cannot cover {amount}"
                )
            account.balance += delta
            account.updated_at = now
            entry = Transaction(
                transaction_id=transaction_id,
                account_id=account_id,
                transaction_type=tx_type,
                amount=amount,
                status=TransactionStatus.COMPLETED,
                description=reason or f"Admin {verb} {amount} USDT",
                processed_by=actor.actor_id,
                created_at=now,
                updated_at=now,
                completed_at=now,
            )
            return Changes(account=account, transactions=[entry])

        changes = self.store.commit(account_id, apply)
        entry = changes.transactions[0]

        audit(
            "admin_adjust",
            actor.actor_id,
            account_id=account_id,
            transaction_id=entry.transaction_id,
            delta=str(delta),
            reason=reason,
            balance_after=str(changes.account.balance),
        )
        self.publisher.publish_transaction(entry)
        return entry

    def update_account(
        self,
        account_id: str,
        actor: Actor,
        *,
        balance: Decimal | None = None,
        total_invested: Decimal | None = None,
        total_interest: Decimal | None = None,
        total_withdrawal: Decimal | None = None,
        current_plan_id: str | None = _UNSET,
    ) -> Account:
        """Overwrite account figures from the admin dashboard.

        No ledger entry is written, so :func:`reconcile_account` will show
        the edit as a difference.
        """
        require_admin(actor, "edit accounts")

        updates: dict[str, Any] = {}
        for name, value in (
            ("balance", balance),
            ("total_invested", total_invested),
            ("total_interest", total_interest),
            ("total_withdrawal", total_withdrawal),
        ):
            if value is None:
                continue
            value = to_decimal(value, self.config.money_quantum)
            if value < 0:
                raise ValidationError(f"{name} must not be negative")
            updates[name] = value
        if current_plan_id is not _UNSET:
            if current_plan_id is not None:
                self.catalog.find_by_id(current_plan_id)
            updates["current_plan_id"] = current_plan_id

        if not updates:
            raise ValidationError("No account fields to update")

        now = self.clock()

        def edit(account: Account) -> Account:
            for name, value in updates.items():
                setattr(account, name, value)
            account.updated_at = now
            return account

        account = self.store.mutate(account_id, edit)
        audit(
            "admin_update_account",
            actor.actor_id,
            account_id=account_id,
            fields={k: str(v) if v is not None else None for k, v in updates.items()},
        )
        return account

    def delete_account(self, account_id: str, actor: Actor) -> int:
        """Delete an account together with all of its transactions."""
        require_admin(actor, "delete accounts")
        removed = self.store.delete_account(account_id)
        audit("admin_delete_account", actor.actor_id, account_id=account_id, transactions_removed=removed)
        logger.info("Deleted account %s and %d transactions", account_id, removed)
        return removed
