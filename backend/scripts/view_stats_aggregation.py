"""Run the view statistics aggregation job once, outside the Celery schedule.

Usage:
    cd backend
    python -m scripts.view_stats_aggregation [action] [--days-to-keep=N]

Actions:
    full       Update comics and chapters, then store daily snapshots (default)
    comics     Update view statistics for all comics
    chapters   Update view statistics for all chapters
    snapshots  Store daily view snapshots
    cleanup    Delete snapshots older than --days-to-keep days (default 90)

Exits with status 1 when the job reports failure.
"""

import asyncio
import json
import sys

from manga_stats.core.logging_config import setup_logging
from manga_stats.db.session import engine
from manga_stats.services import aggregation
from manga_stats.services.aggregation import JobResult

ACTIONS = ("full", "comics", "chapters", "snapshots", "cleanup")

USAGE = (
    "Usage: python -m scripts.view_stats_aggregation "
    "[full|comics|chapters|snapshots|cleanup] [--days-to-keep=N]"
)


async def run_action(action: str, days_to_keep: int | None = None) -> JobResult:
    try:
        if action == "comics":
            return await aggregation.update_all_comics_view_stats()
        if action == "chapters":
            return await aggregation.update_all_chapters_view_stats()
        if action == "snapshots":
            return await aggregation.store_daily_snapshots()
        if action == "cleanup":
            return await aggregation.cleanup_old_snapshots(days_to_keep)
        return await aggregation.run_full_aggregation()
    finally:
        await engine.dispose()


def parse_args(args: list[str]) -> tuple[str, int | None]:
    """Return (action, days_to_keep); exits with usage on bad input."""
    days_to_keep = None
    positional = []
    for arg in args:
        if arg.startswith("--days-to-keep="):
            value = arg.split("=", 1)[1]
            if not value.isdigit() or int(value) < 1:
                print(f"Invalid --days-to-keep value: {value}")
                sys.exit(1)
            days_to_keep = int(value)
        elif arg.startswith("-"):
            print(f"Unknown option: {arg}")
            print(USAGE)
            sys.exit(1)
        else:
            positional.append(arg)

    if len(positional) > 1:
        print(USAGE)
        sys.exit(1)

    action = positional[0] if positional else "full"
    if action not in ACTIONS:
        print(f"Unknown action: {action}")
        print(USAGE)
        sys.exit(1)
    return action, days_to_keep


def main() -> None:
    args = sys.argv[1:]
    if "--help" in args or "-h" in args:
        print(__doc__)
        return

    setup_logging()
    action, days_to_keep = parse_args(args)

    print(f"=== View statistics aggregation: {action} ===")
    result = asyncio.run(run_action(action, days_to_keep))
    print(json.dumps(result.as_dict(), indent=2))

    if not result.success:
        sys.exit(1)


if __name__ == "__main__":
    main()
