"""Output sinks for ledger event notifications."""

from ledger_engine.sinks.console import ConsoleSink
from ledger_engine.sinks.json_file import JsonFileSink
from ledger_engine.sinks.kafka import KafkaSink

__all__ = ["ConsoleSink", "JsonFileSink", "KafkaSink"]
