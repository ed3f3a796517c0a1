"""Transaction model for the ledger."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from ledger_engine.models.ledger.enums import TransactionStatus, TransactionType


@dataclass
class Transaction:
    """Ledger entry.

    ``transaction_type`` and ``amount`` never change after creation; only the
    status, timestamps and ``processed_by`` move.
    """

    transaction_id: str
    account_id: str
    transaction_type: TransactionType
    amount: Decimal
    status: TransactionStatus
    plan_id: str | None = None
    description: str = ""
    reference: str | None = None  # wallet tx hash or other external id
    auto_generated: bool = False
    processed_by: str | None = None

    created_at: datetime | None = None
    updated_at: datetime | None = None
    approved_at: datetime | None = None
    completed_at: datetime | None = None
