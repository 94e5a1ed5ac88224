from __future__ import annotations

import hashlib
import logging
import random
import time

from sqlalchemy import event
from sqlalchemy.engine import Engine

SLOW_QUERY_MS = 200
SAMPLE_RATE = 0.01

logger = logging.getLogger("tableorder.sql")


def _shorten(statement: str, limit: int = 200) -> str:
    sql = " ".join(statement.split())
    return sql if len(sql) <= limit else sql[: limit - 3] + "..."


def add_query_logger(
    engine: Engine, label: str, slow_ms: int = SLOW_QUERY_MS
) -> None:
    """Attach timing-based logging to ``engine``.

    Statements slower than ``slow_ms`` are logged as warnings and a small
    sample of the rest at INFO. Bound parameters are hashed, never logged,
    because they can carry order notes or customer-entered text.
    """
    target = engine.sync_engine if hasattr(engine, "sync_engine") else engine

    @event.listens_for(target, "before_cursor_execute")
    def _start(conn, cursor, statement, parameters, context, executemany):  # type: ignore[no-untyped-def]
        context._query_start_time = time.perf_counter()

    @event.listens_for(target, "after_cursor_execute")
    def _finish(conn, cursor, statement, parameters, context, executemany):  # type: ignore[no-untyped-def]
        elapsed_ms = int((time.perf_counter() - context._query_start_time) * 1000)
        if elapsed_ms <= slow_ms and random.random() >= SAMPLE_RATE:
            return
        params_hash = hashlib.sha256(repr(parameters).encode()).hexdigest()[:8]
        log_fn = logger.warning if elapsed_ms > slow_ms else logger.info
        log_fn(
            "%s %dms db=%s sql=%s params=%s",
            "slow query" if elapsed_ms > slow_ms else "query",
            elapsed_ms,
            label,
            _shorten(statement),
            params_hash,
        )
