"""Ledger domain models."""

from ledger_engine.models.ledger.account import Account
from ledger_engine.models.ledger.accrual import AccrualResult
from ledger_engine.models.ledger.actor import Actor
from ledger_engine.models.ledger.enums import (
    REQUESTABLE_TYPES,
    TERMINAL_STATUSES,
    AccrualOutcome,
    TransactionStatus,
    TransactionType,
)
from ledger_engine.models.ledger.plan import Plan
from ledger_engine.models.ledger.transaction import Transaction

__all__ = [
    "Account",
    "AccrualOutcome",
    "AccrualResult",
    "Actor",
    "Plan",
    "REQUESTABLE_TYPES",
    "TERMINAL_STATUSES",
    "Transaction",
    "TransactionStatus",
    "TransactionType",
]
