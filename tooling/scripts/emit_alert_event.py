#!/usr/bin/env python3
"""Evaluate one event against the active alert rules of its trigger type.

Useful for replaying an event a fetcher missed or for checking a new rule.

Examples:
    python tooling/scripts/emit_alert_event.py launch_status \
        --data '{"provider": "SpaceX Falcon 9", "status": "go"}'
    python tooling/scripts/emit_alert_event.py keyword --file event.json
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any

from loguru import logger


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Dispatch an alert event to matching rules")
    parser.add_argument("trigger_type", help="Trigger type, e.g. launch_status or keyword.")
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--data", help="Event payload as an inline JSON object.")
    source.add_argument("--file", type=Path, help="Path to a JSON file holding the event payload.")
    return parser.parse_args()


def load_event(args: argparse.Namespace) -> dict[str, Any]:
    raw = args.file.read_text() if args.file else args.data
    payload = json.loads(raw)
    if not isinstance(payload, dict):
        raise ValueError("Event payload must be a JSON object")
    return payload


async def _run(trigger_type: str, event: dict[str, Any]) -> dict[str, Any]:
    repo_root = Path(__file__).resolve().parents[2]
    alerts_src = repo_root / "apps" / "alerts" / "src"
    if str(alerts_src) not in sys.path:
        sys.path.insert(0, str(alerts_src))

    from spacenexus_alerts.db.session import engine  # type: ignore import-position
    from spacenexus_alerts.jobs.alert_events import dispatch_alert_event  # type: ignore import-position

    try:
        return await dispatch_alert_event(trigger_type, event)
    finally:
        await engine.dispose()


def main() -> int:
    args = parse_args()
    try:
        event = load_event(args)
    except (OSError, ValueError) as exc:
        logger.error("Could not read event payload", error=str(exc))
        return 2
    summary = asyncio.run(_run(args.trigger_type, event))
    logger.success("Alert event processed", **summary)
    return 0


if __name__ == "__main__":
    sys.exit(main())
