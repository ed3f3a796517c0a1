"""JSON Lines file sink."""

import json
import logging
from pathlib import Path
from typing import Any

from ledger_engine.exceptions import SinkError
from ledger_engine.sinks.serialization import to_dict

logger = logging.getLogger(__name__)


class JsonFileSink:
    """Append published records to one ``.jsonl`` file per topic."""

    def __init__(self, output_dir: str | Path) -> None:
        """Initialize JSON file sink.

        Parameters
        ----------
        output_dir : str | Path
            Directory to write JSON Lines files.
        """
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self._counts: dict[str, int] = {}

    def path_for(self, topic: str) -> Path:
        """File used for ``topic`` (dots replaced with underscores)."""
        return self.output_dir / (topic.replace(".", "_") + ".jsonl")

    def send(self, topic: str, record: Any, key: str | None = None) -> None:
        """Append one record as a JSON line."""
        data = to_dict(record)
        if key is not None:
            data = {"key": key, **data}
        try:
            with open(self.path_for(topic), "a", encoding="utf-8") as f:
                f.write(json.dumps(data, ensure_ascii=False, default=str) + "\n")
        except OSError as e:
            raise SinkError(f"Cannot write to {self.path_for(topic)}: {e}") from e
        self._counts[topic] = self._counts.get(topic, 0) + 1

    def close(self) -> None:
        """Log a summary."""
        logger.info("JSON files written to: %s", self.output_dir)
        for topic, count in self._counts.items():
            logger.info("  %s: %d records", topic, count)
