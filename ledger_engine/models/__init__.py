"""Domain models for the ledger engine."""

from ledger_engine.models.base import Event

__all__ = ["Event"]
