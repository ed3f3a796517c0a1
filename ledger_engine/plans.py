"""Static catalog of investment plan tiers."""

from decimal import Decimal
from typing import Any, Iterable

from ledger_engine.exceptions import ConfigurationError, PlanNotFoundError
from ledger_engine.models.ledger import Plan

DEFAULT_PLANS: tuple[Plan, ...] = (
    Plan(
        plan_id="basic",
        name="Basic Plan",
        min_principal=Decimal("500"),
        max_principal=Decimal("999"),
        daily_rate=Decimal("0.10"),
    ),
    Plan(
        plan_id="gold",
        name="Gold Plan",
        min_principal=Decimal("1000"),
        max_principal=Decimal("4999"),
        daily_rate=Decimal("0.20"),
    ),
    Plan(
        plan_id="platinum",
        name="Platinum Plan",
        min_principal=Decimal("5000"),
        max_principal=None,
        daily_rate=Decimal("0.20"),
    ),
)


class PlanCatalog:
    """Read-only lookup table of plans.

    Plans are matched by principal in declaration order, so the first plan
    whose range contains the amount wins when ranges overlap.
    """

    def __init__(self, plans: Iterable[Plan] = DEFAULT_PLANS) -> None:
        self._plans = tuple(plans)
        self._by_id: dict[str, Plan] = {}
        for plan in self._plans:
            if plan.plan_id in self._by_id:
                raise ConfigurationError(f"Duplicate plan id {plan.plan_id}")
            if plan.max_principal is not None and plan.max_principal < plan.min_principal:
                raise ConfigurationError(f"Plan {plan.plan_id} has max below min")
            if plan.daily_rate < 0:
                raise ConfigurationError(f"Plan {plan.plan_id} has a negative rate")
            self._by_id[plan.plan_id] = plan

    def __iter__(self):
        return iter(self._plans)

    def __len__(self) -> int:
        return len(self._plans)

    def find_by_principal(self, amount: Decimal) -> Plan | None:
        """Return the first active plan whose range contains ``amount``."""
        for plan in self._plans:
            if plan.is_active and plan.contains(amount):
                return plan
        return None

    def find_by_id(self, plan_id: str) -> Plan:
        """Return the plan with ``plan_id``.

        Raises
        ------
        PlanNotFoundError
            If no plan has this id.
        """
        try:
            return self._by_id[plan_id]
        except KeyError:
            raise PlanNotFoundError(f"Plan {plan_id} not found") from None

    def resolve(self, plan_id: str | None, amount: Decimal) -> Plan:
        """Plan an investment of ``amount`` goes into.

        Looks up by id when given, otherwise by principal range. An explicit
        plan must be active and its range must contain ``amount``.

        Raises
        ------
        PlanNotFoundError
            If no plan matches.
        """
        if plan_id:
            plan = self.find_by_id(plan_id)
            if not plan.is_active:
                raise PlanNotFoundError(f"Plan {plan_id} is not open for investment")
            if not plan.contains(amount):
                raise PlanNotFoundError(f"Principal {amount} is outside the range of plan {plan_id}")
            return plan
        plan = self.find_by_principal(amount)
        if plan is None:
            raise PlanNotFoundError(f"No plan covers principal {amount}")
        return plan


def plans_from_dicts(items: list[dict[str, Any]]) -> tuple[Plan, ...]:
    """Build plans from plain dicts (e.g. parsed JSON config).

    Parameters
    ----------
    items : list[dict[str, Any]]
        Each dict needs ``plan_id``, ``min_principal`` and ``daily_rate``;
        ``name``, ``max_principal`` and ``is_active`` are optional.

    Returns
    -------
    tuple[Plan, ...]
        Plans in the given order.
    """
    plans = []
    for item in items:
        try:
            max_principal = item.get("max_principal")
            plans.append(
                Plan(
                    plan_id=str(item["plan_id"]),
                    name=str(item.get("name", item["plan_id"])),
                    min_principal=Decimal(str(item["min_principal"])),
                    max_principal=None if max_principal is None else Decimal(str(max_principal)),
                    daily_rate=Decimal(str(item["daily_rate"])),
                    is_active=bool(item.get("is_active", True)),
                )
            )
        except (KeyError, ArithmeticError, ValueError, TypeError) as e:
            raise ConfigurationError(f"Invalid plan definition {item!r}: {e}") from e
    return tuple(plans)
