"""Ledger engine components."""

from ledger_engine.engine.accrual import AccrualScheduler
from ledger_engine.engine.adjustments import AdminAdjustments
from ledger_engine.engine.base import EngineComponent
from ledger_engine.engine.reconciliation import ReconciliationReport, reconcile_account
from ledger_engine.engine.transitions import ALLOWED_TRANSITIONS, TransitionEngine, check_transition

__all__ = [
    "ALLOWED_TRANSITIONS",
    "AccrualScheduler",
    "AdminAdjustments",
    "EngineComponent",
    "ReconciliationReport",
    "TransitionEngine",
    "check_transition",
    "reconcile_account",
]
