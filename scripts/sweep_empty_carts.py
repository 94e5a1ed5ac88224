#!/usr/bin/env python3
"""Delete carts that no longer hold any line.

The API runs the same sweep on a timer; this script is for cron-driven
deployments that disable the in-process sweeper
(``CART_SWEEP_INTERVAL_SECS=0``). ``--dry-run`` only reports how many carts
would be removed.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

# Ensure ``api`` and ``config`` are importable when running as a standalone script
BASE_DIR = Path(__file__).resolve().parents[1]
sys.path.append(str(BASE_DIR))

from config import get_settings  # noqa: E402

from api.tableorder import db  # noqa: E402
from api.tableorder.services.sweeper import (  # noqa: E402
    count_empty_carts,
    sweep_empty_carts,
)


async def sweep(dry_run: bool = False, database_url: str | None = None) -> int:
    """Sweep empty carts and return the number removed (or found, on dry run)."""

    session_factory = db.init_engine(database_url or get_settings().database_url)
    try:
        async with session_factory() as session:
            if dry_run:
                count = await count_empty_carts(session)
                print(f"[dry-run] empty_carts={count}")
                return count
            removed = await sweep_empty_carts(session)
            print(f"Deleted empty_carts={removed}")
            return removed
    finally:
        await db.dispose()


def _cli() -> None:
    parser = argparse.ArgumentParser(description="Delete carts with no items")
    parser.add_argument(
        "--database-url",
        help="Override DATABASE_URL from settings",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Only report the count without deleting",
    )
    args = parser.parse_args()
    asyncio.run(sweep(args.dry_run, args.database_url))


if __name__ == "__main__":
    _cli()
