"""Enumeration types for ledger entities."""

from enum import Enum


class TransactionType(str, Enum):
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    INVESTMENT = "investment"
    INTEREST = "interest"
    ADMIN_CREDIT = "admin_credit"
    ADMIN_DEBIT = "admin_debit"


class TransactionStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    APPROVED = "approved"
    COMPLETED = "completed"
    REJECTED = "rejected"
    DECLINED = "declined"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        """Whether no further status change is allowed."""
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset(
    {
        TransactionStatus.COMPLETED,
        TransactionStatus.REJECTED,
        TransactionStatus.DECLINED,
        TransactionStatus.CANCELLED,
    }
)

# Types a user may request; the rest are created by the engine itself.
REQUESTABLE_TYPES = frozenset(
    {
        TransactionType.DEPOSIT,
        TransactionType.WITHDRAWAL,
        TransactionType.INVESTMENT,
    }
)


class AccrualOutcome(str, Enum):
    ACCRUED = "accrued"
    ALREADY_ACCRUED_TODAY = "already_accrued_today"
    NO_OP = "no_op"
