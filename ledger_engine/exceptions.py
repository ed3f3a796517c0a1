"""Custom exception hierarchy for ledger-engine."""


class LedgerError(Exception):
    """Base exception for all ledger-engine errors."""

    user_message = "The request could not be completed."


class EntityNotFoundError(LedgerError):
    """Raised when a referenced entity does not exist."""

    user_message = "The requested record was not found."


class AccountNotFoundError(EntityNotFoundError):
    """Raised when an account does not exist."""


class TransactionNotFoundError(EntityNotFoundError):
    """Raised when a ledger transaction does not exist."""


class PlanNotFoundError(EntityNotFoundError):
    """Raised when no plan matches a plan id or principal."""

    user_message = "No investment plan matches this amount."


class InvalidEntityStateError(LedgerError):
    """Raised when an entity is in an invalid state for the operation."""

    user_message = "This request was already processed."


class IllegalTransitionError(InvalidEntityStateError):
    """Raised when a status change is not allowed from the current status."""


class AlreadyFinalizedError(InvalidEntityStateError):
    """Raised when a transaction in a terminal status is changed again."""


class InsufficientBalanceError(LedgerError):
    """Raised when a debit would take the balance below zero."""

    user_message = "Insufficient balance for this operation."


class ConflictExhaustedError(LedgerError):
    """Raised when concurrent writes keep conflicting past the retry limit."""

    user_message = "The account is busy, please try again."


class PermissionDeniedError(LedgerError):
    """Raised when the actor is not allowed to perform the operation."""

    user_message = "You are not allowed to perform this action."


class ValidationError(LedgerError):
    """Raised when operation arguments are invalid."""

    user_message = "The request contains invalid values."


class ConfigurationError(LedgerError):
    """Raised when configuration is invalid or missing."""


class SinkError(LedgerError):
    """Raised when a sink operation fails."""
