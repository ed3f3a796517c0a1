"""Shared wiring and helpers for engine components."""

from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Callable

from ledger_engine.config import EngineConfig
from ledger_engine.events import EventPublisher
from ledger_engine.exceptions import PermissionDeniedError, ValidationError
from ledger_engine.models.ledger import Actor
from ledger_engine.plans import PlanCatalog
from ledger_engine.store.base import LedgerStore, utc_now


class EngineComponent:
    """Base class for engine components.

    Provides common initialization: the store, the plan catalog, the
    event publisher and the clock, all injected so several components can
    share them.

    Parameters
    ----------
    store : LedgerStore
        Account store and transaction log.
    config : EngineConfig | None
        Engine settings (defaults when omitted).
    catalog : PlanCatalog | None
        Plan table; built from ``config.plans`` when omitted.
    publisher : EventPublisher | None
        Notification fan-out; a publisher without sinks when omitted.
    clock : Callable[[], datetime]
        Source of "now" (aware UTC datetimes).
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

    def quantize(self, amount: Decimal) -> Decimal:
        """Round to the configured money quantum, half up."""
        return amount.quantize(self.config.money_quantum, rounding=ROUND_HALF_UP)


def new_transaction_id() -> str:
    return uuid.uuid4().hex


def require_admin(actor: Actor, action: str) -> None:
    if not actor.is_admin:
        raise PermissionDeniedError(f"{actor.actor_id} is not allowed to {action}")


def to_decimal(value: Any, quantum: Decimal | None = None) -> Decimal:
    """Coerce an amount to a finite Decimal.

    Floats go through ``str`` so ``0.1`` stays ``Decimal("0.1")``. With
    ``quantum`` the result is rounded half up to that step, the same way
    stored money is.
    """
    if isinstance(value, bool):
        raise ValidationError(f"Invalid amount {value!r}")
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        raise ValidationError(f"Invalid amount {value!r}") from None
    if not amount.is_finite():
        raise ValidationError(f"Invalid amount {value!r}")
    if quantum is not None:
        try:
            amount = amount.quantize(quantum, rounding=ROUND_HALF_UP)
        except InvalidOperation:
            raise ValidationError(f"Amount {value!r} is out of range") from None
    return amount


def to_positive_amount(value: Any, quantum: Decimal | None = None) -> Decimal:
    amount = to_decimal(value, quantum)
    if amount <= 0:
        raise ValidationError(f"Amount must be positive, got {amount}")
    return amount


def to_utc_date(value: date | datetime | str) -> date:
    """Calendar day of ``value`` in UTC.

    Aware datetimes are converted to UTC first; naive ones are taken as UTC.
    Strings must be ISO dates (``2024-01-01``).
    """
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value)
        except ValueError:
            raise ValidationError(f"Invalid date {value!r}") from None
    raise ValidationError(f"Invalid date {value!r}")
