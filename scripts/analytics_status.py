#!/usr/bin/env python3
"""
Analytics status report for tool-call telemetry.

Provides a quick overview of recorded sessions and tool usage.

Usage:
    python3 scripts/analytics_status.py [--db PATH] [--hours N] [--json]
"""

import json
import argparse
import sys
from pathlib import Path
from datetime import datetime, timezone, timedelta

from analytics_store.config import config
from analytics_store.sqlite_store import SQLiteAnalyticsStore, default_db_path


class AnalyticsStatus:
    """Tool-call analytics status report."""

    def __init__(self, db_path=None):
        """Initialize status checker."""
        self.db_path = Path(db_path).expanduser() if db_path else default_db_path()

    def get_status_dict(self, hours=None):
        """
        Collect status as a dictionary.

        Args:
            hours: Restrict tool statistics to the last N hours

        Returns:
            Dictionary with configuration, session and tool statistics
        """
        status = {
            "telemetry_enabled": config.is_enabled('telemetry'),
            "batch_size": config.get('telemetry.batch_size'),
            "flush_interval_ms": config.get('telemetry.flush_interval_ms'),
            "db_path": str(self.db_path),
            "db_exists": self.db_path.exists(),
            "sessions": 0,
            "summary": None,
        }

        # Reporting must not create an empty database as a side effect
        if not status["db_exists"]:
            return status

        since = None
        if hours:
            since = datetime.now(timezone.utc) - timedelta(hours=hours)

        store = SQLiteAnalyticsStore(self.db_path)
        try:
            status["sessions"] = store.count_sessions()
            status["summary"] = store.tool_call_summary(since=since)
        finally:
            store.close()

        return status

    def display_status(self, hours=None):
        """Display status to console."""
        status = self.get_status_dict(hours=hours)

        print("=" * 60)
        print("Tool-Call Analytics Status")
        print("=" * 60 + "\n")

        state = "Enabled" if status["telemetry_enabled"] else "Disabled"
        print(f"Telemetry: {state}")
        print(f"   Batch size: {status['batch_size']}")
        print(f"   Flush interval: {status['flush_interval_ms']}ms")
        print(f"   Database: {status['db_path']}")

        if not status["db_exists"]:
            print("\nNo analytics database yet.\n")
            return

        summary = status["summary"]
        period = f"Last {hours} Hours" if hours else "All Time"

        print("\n" + "-" * 60)
        print(f"Tool Calls ({period})")
        print("-" * 60)
        print(f"Sessions: {status['sessions']}")
        print(f"Tool calls: {summary['total_calls']}")
        if summary["total_calls"] > 0:
            print(f"Error rate: {summary['error_rate']:.1%}")
            print(f"Timeout rate: {summary['timeout_rate']:.1%}")
            print("")
            print(f"{'Tool':<30} {'Calls':>7} {'Errors':>7} {'Avg ms':>9}")
            for tool in summary["tools"]:
                print(
                    f"{tool['tool_name']:<30} {tool['calls']:>7} "
                    f"{tool['errors']:>7} {tool['avg_duration_ms']:>9.1f}"
                )

        print("")


def main(argv=None):
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Status report for tool-call analytics"
    )

    parser.add_argument(
        "--db",
        type=str,
        metavar="PATH",
        help="Path to analytics database (default: store.db_path)",
    )

    parser.add_argument(
        "--hours",
        type=int,
        metavar="N",
        help="Only include tool calls from the last N hours",
    )

    parser.add_argument(
        "--json",
        action="store_true",
        help="Output as JSON",
    )

    args = parser.parse_args(argv)

    status = AnalyticsStatus(db_path=args.db)

    try:
        if args.json:
            print(json.dumps(status.get_status_dict(hours=args.hours), indent=2, default=str))
        else:
            status.display_status(hours=args.hours)

        return 0

    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print("\n\nCancelled by user")
        sys.exit(1)
