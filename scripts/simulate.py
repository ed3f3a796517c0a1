#!/usr/bin/env python3
"""Simulate investor activity and check the ledger stays consistent.

Runs the investor activity scenario on the in-memory store, prints a
platform summary and reconciles every account. Events can be written to
the console or to JSON-lines files for inspection.
"""

import argparse
import logging
import sys
from datetime import date
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from ledger_engine.events import EventPublisher
from ledger_engine.logging import setup_logging
from ledger_engine.scenarios import InvestorActivityScenario
from ledger_engine.sinks import ConsoleSink, JsonFileSink

logger = logging.getLogger(__name__)


def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Simulate investor activity")
    parser.add_argument("--accounts", type=int, default=50, help="Number of accounts (default: 50)")
    parser.add_argument("--days", type=int, default=30, help="Days to simulate (default: 30)")
    parser.add_argument(
        "--start-date",
        type=date.fromisoformat,
        default=date(2024, 1, 1),
        help="First simulated day (default: 2024-01-01)",
    )
    parser.add_argument("--seed", type=int, default=42, help="Random seed (default: 42)")
    parser.add_argument(
        "--events",
        choices=["none", "console", "json"],
        default="none",
        help="Where to send change notifications (default: none)",
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=Path("local/events"),
        help="Directory for --events json (default: local/events)",
    )
    parser.add_argument("--log-level", type=str, default="INFO", help="Log level (default: INFO)")
    args = parser.parse_args()

    setup_logging(args.log_level)

    sinks = []
    if args.events == "console":
        sinks.append(ConsoleSink())
    elif args.events == "json":
        sinks.append(JsonFileSink(args.output_dir))

    scenario = InvestorActivityScenario(
        num_accounts=args.accounts,
        days=args.days,
        start_date=args.start_date,
        publisher=EventPublisher(sinks),
        seed=args.seed,
    )
    service = scenario.generate()

    summary = service.platform_summary()
    print()
    print("=" * 60)
    print("PLATFORM SUMMARY")
    print("=" * 60)
    for key, value in summary.items():
        print(f"  {key:<20} {value}")
    print()
    for key, value in scenario.stats.items():
        print(f"  {key:<20} {value}")
    print("=" * 60)

    for sink in sinks:
        sink.close()

    unbalanced = scenario.check_consistency()
    if unbalanced:
        for report in unbalanced:
            logger.error("Account %s differs from its ledger: %s", report.account_id, report.differences)
        sys.exit(1)
    logger.info("All %d accounts reconcile with their ledger", len(scenario.account_ids))


if __name__ == "__main__":
    main()
