"""Investment plan model."""

from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class Plan:
    """Plan tier with inclusive principal bounds and a daily rate."""

    plan_id: str
    name: str
    min_principal: Decimal
    max_principal: Decimal | None  # None means unbounded
    daily_rate: Decimal  # fraction, 0.10 for 10%
    is_active: bool = True

    def contains(self, amount: Decimal) -> bool:
        """Whether ``amount`` falls inside this plan's principal range."""
        if amount < self.min_principal:
            return False
        return self.max_principal is None or amount <= self.max_principal
