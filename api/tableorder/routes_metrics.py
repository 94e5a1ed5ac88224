# routes_metrics.py

"""Prometheus metrics and /metrics endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Gauge, generate_latest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from .db import get_session
from .domain import TableStatus
from .models import CafeTable

# Counters
http_requests_total = Counter(
    "http_requests_total", "Total HTTP requests", ["path", "method", "status"]
)

http_errors_total = Counter(
    "http_errors_total", "4xx and 5xx responses by route", ["path", "status"]
)

orders_created_total = Counter("orders_created_total", "Total orders created")
orders_created_total.inc(0)

payments_total = Counter(
    "payments_total", "Payment attempts by method and outcome", ["method", "status"]
)

refunds_total = Counter("refunds_total", "Refund attempts by outcome", ["status"])

carts_swept_total = Counter(
    "carts_swept_total", "Empty carts deleted by the sweeper"
)
carts_swept_total.inc(0)

# Gauges
tables_occupied = Gauge("tables_occupied", "Active tables currently occupied")

router = APIRouter()


@router.get("/metrics")
async def metrics(session: AsyncSession = Depends(get_session)) -> Response:
    """Expose Prometheus metrics in text format."""

    occupied = await session.scalar(
        select(func.count(CafeTable.id)).where(
            CafeTable.is_active.is_(True), CafeTable.status == TableStatus.OCCUPIED
        )
    )
    tables_occupied.set(occupied or 0)
    data = generate_latest()
    return Response(data, media_type=CONTENT_TYPE_LATEST)
