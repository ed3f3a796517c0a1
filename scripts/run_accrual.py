#!/usr/bin/env python3
"""Run the daily interest accrual batch against PostgreSQL.

Meant to be scheduled once per day (cron, k8s CronJob). Re-running for a
day that was already accrued is harmless: every account reports
``already_accrued_today`` and nothing is credited twice.

Optionally publishes the resulting interest entries to Kafka.
"""

import argparse
import logging
import sys
import time
from datetime import date, datetime, timezone
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from ledger_engine.config import LedgerConfig
from ledger_engine.events import EventPublisher
from ledger_engine.exceptions import LedgerError
from ledger_engine.logging import setup_logging
from ledger_engine.service import LedgerService
from ledger_engine.sinks.kafka import KafkaSink
from ledger_engine.store.postgres import PostgresLedgerStore

logger = logging.getLogger(__name__)


def main() -> None:
    """Main entry point."""
    config = LedgerConfig.from_env()

    parser = argparse.ArgumentParser(description="Run the daily interest accrual batch")
    parser.add_argument(
        "--date",
        type=date.fromisoformat,
        default=None,
        help="UTC day to accrue (YYYY-MM-DD, default: today)",
    )
    parser.add_argument(
        "--postgres-url",
        type=str,
        default=config.postgres.connection_string,
        help="PostgreSQL connection URL (default: from POSTGRES_* env)",
    )
    parser.add_argument(
        "--kafka-bootstrap",
        type=str,
        default=None,
        help="Kafka bootstrap servers; publishing is off when omitted",
    )
    parser.add_argument(
        "--create-tables",
        action="store_true",
        help="Create ledger tables before running",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=config.log_level,
        help="Log level (default: from LOG_LEVEL env)",
    )
    parser.add_argument(
        "--log-format",
        choices=["standard", "json"],
        default=config.log_format,
        help="Log format (default: from LOG_FORMAT env)",
    )
    args = parser.parse_args()

    setup_logging(args.log_level, args.log_format)
    day = args.date or datetime.now(timezone.utc).date()

    logger.info("=" * 60)
    logger.info("Ledger Engine - Daily Accrual")
    logger.info("=" * 60)
    logger.info("Day: %s", day.isoformat())
    logger.info("Kafka: %s", args.kafka_bootstrap or "SKIPPED")
    logger.info("=" * 60)

    store = PostgresLedgerStore(args.postgres_url, max_retries=config.engine.max_retries)
    sinks = []
    if args.kafka_bootstrap:
        config.kafka.bootstrap_servers = args.kafka_bootstrap
        sinks.append(KafkaSink(config.kafka))

    publisher = EventPublisher(
        sinks,
        topic_prefix=config.engine.topic_prefix,
        source=config.engine.event_source,
        app_id=config.engine.app_id,
    )

    try:
        if args.create_tables:
            store.create_tables()

        service = LedgerService(store, config=config.engine, publisher=publisher)

        start = time.perf_counter()
        counts = service.accrue_all(day)
        elapsed = time.perf_counter() - start
    except LedgerError as e:
        logger.error("Accrual run failed: %s", e)
        sys.exit(1)
    finally:
        for sink in sinks:
            sink.close()
        store.close()

    logger.info("Finished in %.1fs: %s", elapsed, counts)
    if counts["failed"]:
        sys.exit(2)


if __name__ == "__main__":
    main()
