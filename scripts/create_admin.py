#!/usr/bin/env python3
"""Create a back-office account from the command line.

The first SUPER_ADMIN has to exist before ``/api/auth/register`` can be
used, so bootstrap it here::

    python scripts/create_admin.py --email owner@example.com --name Owner \
        --role SUPER_ADMIN
"""

from __future__ import annotations

import argparse
import asyncio
import getpass
import os
import sys
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parents[1]
sys.path.append(str(BASE_DIR))

from config import get_settings  # noqa: E402

from api.tableorder import db  # noqa: E402
from api.tableorder.auth import AdminRole, create_admin  # noqa: E402
from api.tableorder.domain import DomainError  # noqa: E402


async def main(
    email: str,
    password: str,
    name: str,
    role: str = AdminRole.MANAGER.value,
    database_url: str | None = None,
) -> int:
    """Register the account and return its id."""

    settings = get_settings()
    session_factory = db.init_engine(database_url or settings.database_url)
    try:
        if settings.auto_create_schema:
            await db.create_schema(db.engine)
        async with session_factory() as session:
            admin = await create_admin(session, email, password, name, role)
        print(f"created admin id={admin.id} email={admin.email} role={admin.role}")
        return admin.id
    finally:
        await db.dispose()


def _cli() -> None:
    parser = argparse.ArgumentParser(description="Create a back-office admin")
    parser.add_argument("--email", required=True)
    parser.add_argument("--name", required=True)
    parser.add_argument(
        "--role",
        default=AdminRole.MANAGER.value,
        choices=[r.value for r in AdminRole],
    )
    parser.add_argument("--database-url", help="Override DATABASE_URL from settings")
    args = parser.parse_args()

    password = os.getenv("ADMIN_PASSWORD") or getpass.getpass("Password: ")
    try:
        asyncio.run(main(args.email, password, args.name, args.role, args.database_url))
    except DomainError as exc:
        print(f"error: {exc.message}", file=sys.stderr)
        raise SystemExit(1)


if __name__ == "__main__":
    _cli()
