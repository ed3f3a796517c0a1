"""Simulated platform activity for load and consistency checks."""

from ledger_engine.scenarios.investor_activity import InvestorActivityScenario

__all__ = ["InvestorActivityScenario"]
