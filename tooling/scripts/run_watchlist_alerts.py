#!/usr/bin/env python3
"""Run one watchlist alert pass for company watchers.

Intended usage: schedule via external cron when the in-process scheduler is
disabled, or run manually after a data backfill.

Example:
    python tooling/scripts/run_watchlist_alerts.py --lookback-hours 48

Re-running is safe: users already alerted about an entity are skipped.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

from loguru import logger


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Fan out watchlist alerts for recent activity")
    parser.add_argument(
        "--lookback-hours",
        type=int,
        default=None,
        help="Override the lookback window (defaults to WATCHLIST_ALERT_LOOKBACK_HOURS).",
    )
    return parser.parse_args()


async def _run(lookback_hours: int | None) -> dict[str, int]:
    repo_root = Path(__file__).resolve().parents[2]
    alerts_src = repo_root / "apps" / "alerts" / "src"
    if str(alerts_src) not in sys.path:
        sys.path.insert(0, str(alerts_src))

    from spacenexus_alerts.db.session import engine  # type: ignore import-position
    from spacenexus_alerts.jobs.watchlist_alerts import run_watchlist_alerts  # type: ignore import-position

    try:
        return await run_watchlist_alerts(lookback_hours=lookback_hours)
    finally:
        await engine.dispose()


def main() -> int:
    args = parse_args()
    if args.lookback_hours is not None and args.lookback_hours < 1:
        logger.error("Lookback must be at least one hour", lookback_hours=args.lookback_hours)
        return 2
    summary = asyncio.run(_run(args.lookback_hours))
    logger.success("Watchlist alert run completed", **summary)
    return 0


if __name__ == "__main__":
    sys.exit(main())
