"""Ledger and daily-accrual engine for a single-unit investment platform."""

__version__ = "0.1.0"
