"""Account model for the ledger."""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal


@dataclass
class Account:
    """Balance document for one user.

    ``balance`` is the spendable amount and the authoritative stored value.
    ``total_invested`` is the principal currently earning interest under
    ``current_plan_id``.
    """

    account_id: str
    balance: Decimal = Decimal("0")
    total_invested: Decimal = Decimal("0")
    total_interest: Decimal = Decimal("0")
    total_withdrawal: Decimal = Decimal("0")
    current_plan_id: str | None = None
    last_accrual_date: date | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def is_active(self) -> bool:
        """Whether the account has ever moved money."""
        return (
            self.balance > 0
            or self.total_invested > 0
            or self.total_withdrawal > 0
        )
