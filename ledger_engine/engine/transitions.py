"""Transaction status state machine and approval balance effects."""

import logging
from decimal import Decimal

from ledger_engine.engine.base import EngineComponent
from ledger_engine.exceptions import (
    AlreadyFinalizedError,
    IllegalTransitionError,
    InsufficientBalanceError,
    PermissionDeniedError,
)
from ledger_engine.models.ledger import (
    Account,
    Actor,
    Transaction,
    TransactionStatus,
    TransactionType,
)
from ledger_engine.store.base import Changes, Snapshot

logger = logging.getLogger(__name__)

S = TransactionStatus

ALLOWED_TRANSITIONS: dict[TransactionStatus, frozenset[TransactionStatus]] = {
    S.PENDING: frozenset({S.PROCESSING, S.APPROVED, S.REJECTED, S.DECLINED}),
    S.PROCESSING: frozenset({S.APPROVED, S.REJECTED, S.CANCELLED}),
    S.APPROVED: frozenset({S.COMPLETED, S.CANCELLED}),
}


def check_transition(current: TransactionStatus, new_status: TransactionStatus) -> None:
    """Validate a status change.

    Raises
    ------
    AlreadyFinalizedError
        If ``current`` is terminal.
    IllegalTransitionError
        If ``new_status`` is not a successor of ``current``.
    """
    if current.is_terminal:
        raise AlreadyFinalizedError(f"Transaction is already {current.value}")
    if new_status not in ALLOWED_TRANSITIONS.get(current, frozenset()):
        raise IllegalTransitionError(f"Cannot move from {current.value} to {new_status.value}")


class TransitionEngine(EngineComponent):
    """Apply status changes to pending transactions.

    Approving a deposit, withdrawal or investment changes the account in the
    same atomic unit as the status write. Cancelling an approved transaction
    undoes that change the same way. Other transitions only touch the
    transaction.
    """

    def transition(
        self,
        transaction_id: str,
        new_status: TransactionStatus | str,
        actor: Actor,
    ) -> Transaction:
        """Move a transaction to ``new_status``.

        Parameters
        ----------
        transaction_id : str
            Transaction to change.
        new_status : TransactionStatus | str
            Target status.
        actor : Actor
            Caller; admin for everything except the owner cancelling a
            transaction that is still processing.

        Returns
        -------
        Transaction
            The transaction as stored after the change.
        """
        new_status = TransactionStatus(new_status)
        current = self.store.require_transaction(transaction_id)
        self._authorize(current, new_status, actor)
        check_transition(current.status, new_status)

        now = self.clock()

        def apply(snapshot: Snapshot) -> Changes:
            transaction = snapshot.transactions[transaction_id]
            previous = transaction.status
            # Re-checked on the locked copy; another caller may have won.
            self._authorize(transaction, new_status, actor)
            check_transition(previous, new_status)

            account = snapshot.account
            touched = False
            if new_status == S.APPROVED:
                touched = self._apply_approval(account, transaction)
            elif new_status == S.CANCELLED and previous == S.APPROVED:
                touched = self._reverse_approval(account, transaction)
            if touched:
                account.updated_at = now

            transaction.status = new_status
            transaction.updated_at = now
            transaction.processed_by = actor.actor_id
            if new_status == S.APPROVED:
                transaction.approved_at = now
            elif new_status == S.COMPLETED:
                transaction.completed_at = now

            return Changes(account=account if touched else None, transactions=[transaction])

        changes = self.store.commit(current.account_id, apply, transaction_ids=(transaction_id,))
        updated = changes.transactions[0]

        logger.info(
            "Transaction %s (%s %s) moved %s -> %s by %s",
            transaction_id,
            updated.transaction_type.value,
            updated.amount,
            current.status.value,
            new_status.value,
            actor.actor_id,
        )
        self.publisher.publish_transaction(updated)
        return updated

    def _authorize(self, transaction: Transaction, new_status: TransactionStatus, actor: Actor) -> None:
        if actor.is_admin:
            return
        # Owners may withdraw a request still in processing; reversing an
        # approved one is an admin decision.
        if (
            new_status == S.CANCELLED
            and transaction.status == S.PROCESSING
            and actor.actor_id == transaction.account_id
        ):
            return
        raise PermissionDeniedError(
            f"{actor.actor_id} may not set transaction {transaction.transaction_id} to {new_status.value}"
        )

    def _apply_approval(self, account: Account, transaction: Transaction) -> bool:
        amount = transaction.amount
        tx_type = transaction.transaction_type

        if tx_type == TransactionType.DEPOSIT:
            account.balance += amount
        elif tx_type == TransactionType.WITHDRAWAL:
            _require_balance(account, amount)
            account.balance -= amount
            account.total_withdrawal += amount
        elif tx_type == TransactionType.INVESTMENT:
            plan = self.catalog.resolve(transaction.plan_id, amount)
            _require_balance(account, amount)
            account.balance -= amount
            account.total_invested += amount
            account.current_plan_id = plan.plan_id
        else:
            return False
        return True

    def _reverse_approval(self, account: Account, transaction: Transaction) -> bool:
        amount = transaction.amount
        tx_type = transaction.transaction_type

        if tx_type == TransactionType.DEPOSIT:
            _require_balance(account, amount)
            account.balance -= amount
        elif tx_type == TransactionType.WITHDRAWAL:
            account.balance += amount
            account.total_withdrawal -= amount
        elif tx_type == TransactionType.INVESTMENT:
            if account.total_invested < amount:
                raise InsufficientBalanceError(
                    f"Account {account.account_id}: invested principal "
                    f"{account.total_invested} is below {amount}"
                )
            account.balance += amount
            account.total_invested -= amount
            if account.total_invested == 0:
                account.current_plan_id = None
        else:
            return False
        return True


def _require_balance(account: Account, amount: Decimal) -> None:
    if account.balance < amount:
        raise InsufficientBalanceError(
            f"Account {account.account_id}: balance {account.balance} is below {amount}"
        )
