"""Result of a daily accrual attempt."""

from dataclasses import dataclass
from decimal import Decimal

from ledger_engine.models.ledger.enums import AccrualOutcome
from ledger_engine.models.ledger.transaction import Transaction


@dataclass
class AccrualResult:
    """Outcome of ``maybe_accrue`` for one account and day."""

    account_id: str
    outcome: AccrualOutcome
    amount: Decimal = Decimal("0")
    transaction: Transaction | None = None

    @property
    def accrued(self) -> bool:
        return self.outcome == AccrualOutcome.ACCRUED
