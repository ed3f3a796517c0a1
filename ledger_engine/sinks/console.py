"""Console sink for debugging and development."""

import json
from typing import Any

from ledger_engine.sinks.serialization import to_dict


class ConsoleSink:
    """Print published records to stdout."""

    def __init__(self, pretty: bool = True) -> None:
        """Initialize console sink.

        Parameters
        ----------
        pretty : bool
            Pretty-print JSON output.
        """
        self.pretty = pretty
        self._counts: dict[str, int] = {}

    def send(self, topic: str, record: Any, key: str | None = None) -> None:
        """Print one record under its topic."""
        data = to_dict(record)
        prefix = f"[{topic}]" if key is None else f"[{topic}:{key}]"
        if self.pretty:
            print(prefix, json.dumps(data, indent=2, ensure_ascii=False, default=str))
        else:
            print(prefix, json.dumps(data, ensure_ascii=False, default=str))
        self._counts[topic] = self._counts.get(topic, 0) + 1

    def close(self) -> None:
        """Print summary and close."""
        print(f"\n{'='*60}")
        print("Console Sink Summary")
        print("=" * 60)
        for topic, count in self._counts.items():
            print(f"  {topic}: {count} records")
