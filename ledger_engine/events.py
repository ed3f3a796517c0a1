"""Fire-and-forget notifications of ledger changes."""

import logging
import uuid
from typing import Any, Iterable, Protocol

from ledger_engine.models import Event
from ledger_engine.models.ledger import Transaction
from ledger_engine.sinks.serialization import dataclass_to_dict
from ledger_engine.store.base import utc_now

logger = logging.getLogger(__name__)


class Sink(Protocol):
    """Anything that accepts published records."""

    def send(self, topic: str, record: Any, key: str | None = None) -> None: ...


class EventPublisher:
    """Wrap ledger changes in :class:`Event` envelopes and hand them to sinks.

    Delivery is best effort: a failing sink is logged and skipped, and never
    fails the ledger operation that triggered the event. When ``app_id`` is
    set, it is stamped on every event's metadata.
    """

    def __init__(
        self,
        sinks: Iterable[Sink] = (),
        topic_prefix: str = "dev.ledger",
        source: str = "ledger-engine",
        app_id: str | None = None,
    ) -> None:
        self.sinks = list(sinks)
        self.topic_prefix = topic_prefix
        self.source = source
        self.app_id = app_id

    @property
    def transactions_topic(self) -> str:
        return f"{self.topic_prefix}.transactions"

    def transaction_event(self, transaction: Transaction, action: str | None = None) -> Event:
        """Build the envelope for a transaction change."""
        action = action or transaction.status.value
        metadata = {"account_id": transaction.account_id}
        if self.app_id:
            metadata["app_id"] = self.app_id
        return Event(
            event_id=uuid.uuid4().hex,
            event_type=f"transaction.{action}",
            event_time=utc_now(),
            source=self.source,
            subject=transaction.transaction_id,
            data=dataclass_to_dict(transaction),
            metadata=metadata,
        )

    def publish_transaction(self, transaction: Transaction, action: str | None = None) -> Event:
        """Publish a transaction change to every sink."""
        event = self.transaction_event(transaction, action)
        self.publish(self.transactions_topic, event, key=transaction.account_id)
        return event

    def publish(self, topic: str, event: Event, key: str | None = None) -> None:
        for sink in self.sinks:
            try:
                sink.send(topic, event, key=key)
            except Exception:
                logger.warning(
                    "Notification %s for %s not delivered by %s",
                    event.event_type,
                    event.subject,
                    type(sink).__name__,
                    exc_info=True,
                )
