# start_app.py
"""Bring the schema up to date with Alembic, then serve the API with uvicorn."""

from __future__ import annotations

import argparse
import os
import subprocess
import sys

import uvicorn
from dotenv import load_dotenv

import config

ALEMBIC_CMD = ["-m", "alembic", "-c", "api/alembic.ini", "upgrade", "head"]


def _flag(name: str) -> bool:
    value = os.getenv(name)
    return bool(value) and value.lower() not in {"0", "false", "no"}


def migrate() -> None:
    """Run ``alembic upgrade head``; exit with Alembic's code on failure."""

    try:
        subprocess.run(
            [sys.executable, *ALEMBIC_CMD],
            check=True,
            capture_output=True,
            text=True,
        )
    except subprocess.CalledProcessError as exc:
        sys.stdout.write(exc.stdout or "")
        sys.stderr.write(exc.stderr or "")
        print(
            f"database migration failed (exit code {exc.returncode})",
            file=sys.stderr,
        )
        raise SystemExit(exc.returncode)


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Start the table-ordering API")
    parser.add_argument(
        "--skip-db-migrations",
        action="store_true",
        help="Start without running Alembic migrations",
    )
    parser.add_argument("--host", default="0.0.0.0")  # nosec B104: local development
    parser.add_argument("--port", type=int, default=int(os.getenv("PORT", "8000")))
    args = parser.parse_args(argv)

    load_dotenv()

    if not (args.skip_db_migrations or _flag("SKIP_DB_MIGRATIONS")):
        migrate()
        # The schema now belongs to Alembic.
        os.environ.setdefault("AUTO_CREATE_SCHEMA", "false")

    config.get_settings.cache_clear()
    config.get_settings()  # fail fast on invalid settings

    uvicorn.run(
        "api.tableorder.main:app",
        host=args.host,
        port=args.port,
        log_level="info",
    )


if __name__ == "__main__":
    main()
