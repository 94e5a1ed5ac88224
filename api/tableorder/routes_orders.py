"""Order endpoints for guests and the back office."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from .auth import admin_required
from .db import get_session
from .domain import OrderStatus
from .schemas import CancelIn, Order, OrderIn, OrderStats, OrderStatusIn
from .services import orders as order_service
from .utils.pagination import Pagination, pagination
from .utils.responses import ok, page

router = APIRouter(prefix="/api/orders", tags=["orders"])


@router.post("/table/{table_id}", status_code=201)
async def place_order(
    table_id: int,
    body: OrderIn | None = None,
    session: AsyncSession = Depends(get_session),
) -> dict:
    """Turn the table's cart into an order."""

    notes = body.notes if body else None
    order = await order_service.create_from_cart(session, table_id, notes)
    return ok(Order.of(order))


@router.get("/table/{table_id}")
async def active_orders(table_id: int, session: AsyncSession = Depends(get_session)) -> dict:
    rows = await order_service.active_orders(session, table_id)
    return ok([Order.of(o) for o in rows])


@router.get("/admin", dependencies=[Depends(admin_required)])
async def admin_orders(
    status: Optional[OrderStatus] = None,
    paging: Pagination = Depends(pagination),
    session: AsyncSession = Depends(get_session),
) -> dict:
    rows, total = await order_service.list_admin(
        session, status=status, offset=paging.offset, limit=paging.size
    )
    return ok(page([Order.of(o) for o in rows], total, paging.page, paging.size))


@router.get("/stats/today", dependencies=[Depends(admin_required)])
async def today_stats(session: AsyncSession = Depends(get_session)) -> dict:
    return ok(OrderStats(**await order_service.today_stats(session)))


@router.get("/stats/status-count", dependencies=[Depends(admin_required)])
async def status_count(session: AsyncSession = Depends(get_session)) -> dict:
    return ok(await order_service.status_counts(session))


@router.get("/{order_id}")
async def get_order(order_id: int, session: AsyncSession = Depends(get_session)) -> dict:
    return ok(Order.of(await order_service.get_order(session, order_id)))


@router.post("/{order_id}/cancel")
async def cancel_order(
    order_id: int,
    body: CancelIn | None = None,
    session: AsyncSession = Depends(get_session),
) -> dict:
    reason = body.reason if body else None
    order = await order_service.cancel(session, order_id, reason)
    return ok(Order.of(order))


@router.patch("/{order_id}/status", dependencies=[Depends(admin_required)])
async def change_status(
    order_id: int, body: OrderStatusIn, session: AsyncSession = Depends(get_session)
) -> dict:
    order = await order_service.update_status(session, order_id, body.status)
    return ok(Order.of(order))
