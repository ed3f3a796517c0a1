"""Ledger stores: account documents and the transaction log."""

from ledger_engine.store.base import Changes, LedgerStore, Snapshot
from ledger_engine.store.memory import InMemoryLedgerStore
from ledger_engine.store.postgres import PostgresLedgerStore

__all__ = [
    "Changes",
    "InMemoryLedgerStore",
    "LedgerStore",
    "PostgresLedgerStore",
    "Snapshot",
]
