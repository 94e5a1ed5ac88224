"""Order creation from a cart and the order status lifecycle."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..db import atomic
from ..domain import ACTIVE_STATUSES, ConflictError, NotFoundError, OrderStatus
from ..models import ZERO, Order
from ..routes_metrics import orders_created_total
from .cart import find_cart
from .tables import get_table

logger = logging.getLogger("tableorder.orders")


def start_of_today() -> datetime:
    now = datetime.now(timezone.utc)
    return now.replace(hour=0, minute=0, second=0, microsecond=0)


async def get_order(
    session: AsyncSession, order_id: int, *, lock: bool = False
) -> Order:
    stmt = select(Order).where(Order.id == order_id)
    if lock:
        stmt = stmt.with_for_update()
    order = (await session.execute(stmt)).scalar_one_or_none()
    if order is None:
        raise NotFoundError(f"order {order_id} not found", {"order_id": order_id})
    return order


async def create_from_cart(
    session: AsyncSession, table_id: int, notes: str | None = None
) -> Order:
    """Turn the table's cart into a PENDING order and empty the cart.

    Both happen in one transaction under the table row lock.
    """
    async with atomic(session):
        table = await get_table(session, table_id, lock=True)
        if not table.is_occupied:
            raise ConflictError(
                f"table {table.table_number} is not occupied",
                {"table_id": table_id, "status": table.status.value},
            )
        cart = await find_cart(session, table_id)
        if cart is None or cart.is_empty:
            raise ConflictError("cart is empty", {"table_id": table_id})
        order = Order.from_cart(table_id, cart, notes)
        order.table = table
        session.add(order)
        cart.clear()
        await session.flush()
    orders_created_total.inc()
    logger.info(
        "order %s created total=%s", order.id, order.total_amount,
        extra={"table_id": table_id, "order_id": order.id},
    )
    return order


async def active_orders(session: AsyncSession, table_id: int) -> list[Order]:
    await get_table(session, table_id)
    rows = await session.execute(
        select(Order)
        .where(Order.table_id == table_id, Order.status.in_(ACTIVE_STATUSES))
        .order_by(Order.created_at.desc(), Order.id.desc())
    )
    return list(rows.scalars().all())


async def update_status(
    session: AsyncSession, order_id: int, status: OrderStatus
) -> Order:
    """Move ``order_id`` along one legal edge.

    Completing an order releases its table in the same transaction.
    """
    async with atomic(session):
        order = await get_order(session, order_id, lock=True)
        previous = order.status
        order.transition_to(status)
        if status == OrderStatus.COMPLETED:
            table = await get_table(session, order.table_id, lock=True)
            table.make_available()
        await session.flush()
    logger.info(
        "order %s %s -> %s", order_id, previous.value, status.value,
        extra={"order_id": order_id},
    )
    return order


async def cancel(session: AsyncSession, order_id: int, reason: str | None = None) -> Order:
    """Customer cancellation, only possible while the order is PENDING."""
    async with atomic(session):
        order = await get_order(session, order_id, lock=True)
        order.cancel(reason)
        await session.flush()
    logger.info("order %s cancelled", order_id, extra={"order_id": order_id})
    return order


async def list_admin(
    session: AsyncSession,
    status: OrderStatus | None = None,
    offset: int = 0,
    limit: int = 20,
) -> tuple[list[Order], int]:
    filters = [] if status is None else [Order.status == status]
    total = await session.scalar(select(func.count(Order.id)).where(*filters))
    rows = await session.execute(
        select(Order)
        .where(*filters)
        .order_by(Order.created_at.desc(), Order.id.desc())
        .offset(offset)
        .limit(limit)
    )
    return list(rows.scalars().all()), total or 0


async def today_stats(session: AsyncSession) -> dict:
    rows = await session.execute(
        select(Order.status, Order.total_amount).where(
            Order.created_at >= start_of_today()
        )
    )
    total_orders = completed = 0
    revenue = ZERO
    for status, amount in rows.all():
        total_orders += 1
        if status == OrderStatus.COMPLETED:
            completed += 1
            revenue += amount
    return {
        "total_orders": total_orders,
        "completed_orders": completed,
        "revenue": revenue,
    }


async def status_counts(session: AsyncSession) -> dict[str, int]:
    rows = await session.execute(
        select(Order.status, func.count(Order.id)).group_by(Order.status)
    )
    counts = {status.value: 0 for status in OrderStatus}
    for status, count in rows.all():
        counts[status.value] = count
    return counts
