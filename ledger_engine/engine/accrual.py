"""Daily interest accrual on invested principal."""

import logging
from datetime import date, datetime

from ledger_engine.engine.base import EngineComponent, new_transaction_id, to_utc_date
from ledger_engine.exceptions import LedgerError
from ledger_engine.models.ledger import (
    AccrualOutcome,
    AccrualResult,
    Transaction,
    TransactionStatus,
    TransactionType,
)
from ledger_engine.store.base import Changes, Snapshot

logger = logging.getLogger(__name__)


class AccrualScheduler(EngineComponent):
    """Credit simple daily interest at most once per account per UTC day.

    Interest is ``total_invested * daily_rate`` of the account's current plan,
    never compounded on earlier interest. The balance credit, the interest
    totals, ``last_accrual_date`` and the completed ``interest`` ledger entry
    are written in one atomic unit, and the eligibility checks run again on
    the locked copy, so a cron batch and a session-triggered call racing on
    the same account credit once.
    """

    def maybe_accrue(self, account_id: str, today: date | datetime | str) -> AccrualResult:
        """Credit today's interest for one account if it is due.

        Parameters
        ----------
        account_id : str
            Account to accrue.
        today : date | datetime | str
            Day being accrued; datetimes are reduced to their UTC date.

        Returns
        -------
        AccrualResult
            ``accrued`` with the amount and interest entry, or
            ``already_accrued_today`` / ``no_op``.
        """
        day = to_utc_date(today)
        now = self.clock()
        transaction_id = new_transaction_id()
        result = AccrualResult(account_id=account_id, outcome=AccrualOutcome.NO_OP)

        def apply(snapshot: Snapshot) -> Changes:
            nonlocal result
            account = snapshot.account

            if account.total_invested <= 0 or not account.current_plan_id:
                result = AccrualResult(account_id=account_id, outcome=AccrualOutcome.NO_OP)
                return Changes()
            if account.last_accrual_date is not None and account.last_accrual_date >= day:
                result = AccrualResult(
                    account_id=account_id, outcome=AccrualOutcome.ALREADY_ACCRUED_TODAY
                )
                return Changes()

            plan = self.catalog.find_by_id(account.current_plan_id)
            interest = self.quantize(account.total_invested * plan.daily_rate)
            if interest <= 0:
                result = AccrualResult(account_id=account_id, outcome=AccrualOutcome.NO_OP)
                return Changes()

            account.balance += interest
            account.total_interest += interest
            account.last_accrual_date = day
            account.updated_at = now

            entry = Transaction(
                transaction_id=transaction_id,
                account_id=account_id,
                transaction_type=TransactionType.INTEREST,
                amount=interest,
                status=TransactionStatus.COMPLETED,
                plan_id=plan.plan_id,
                description=f"Daily interest from {plan.name}",
                auto_generated=True,
                created_at=now,
                updated_at=now,
                completed_at=now,
            )
            result = AccrualResult(
                account_id=account_id,
                outcome=AccrualOutcome.ACCRUED,
                amount=interest,
                transaction=entry,
            )
            return Changes(account=account, transactions=[entry])

        self.store.commit(account_id, apply)

        if result.accrued:
            logger.info(
                "Accrued %s interest for account %s on %s",
                result.amount,
                account_id,
                day.isoformat(),
            )
            self.publisher.publish_transaction(result.transaction, "accrued")
        else:
            logger.debug("Accrual for %s on %s: %s", account_id, day.isoformat(), result.outcome.value)
        return result

    def accrue_all(self, today: date | datetime | str) -> dict[str, int]:
        """Run :meth:`maybe_accrue` for every account.

        A failure on one account is logged and counted; the batch carries on.

        Returns
        -------
        dict[str, int]
            Count per outcome plus ``failed``.
        """
        day = to_utc_date(today)
        counts = {outcome.value: 0 for outcome in AccrualOutcome}
        counts["failed"] = 0

        accounts = self.store.list_accounts()
        logger.info("Starting accrual batch for %s: %d accounts", day.isoformat(), len(accounts))

        for account in accounts:
            try:
                result = self.maybe_accrue(account.account_id, day)
            except LedgerError as e:
                counts["failed"] += 1
                logger.error("Accrual failed for account %s: %s", account.account_id, e)
                continue
            counts[result.outcome.value] += 1

        logger.info(
            "Accrual batch complete: accrued=%d, already=%d, no_op=%d, failed=%d",
            counts[AccrualOutcome.ACCRUED.value],
            counts[AccrualOutcome.ALREADY_ACCRUED_TODAY.value],
            counts[AccrualOutcome.NO_OP.value],
            counts["failed"],
        )
        return counts
