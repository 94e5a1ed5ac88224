"""Periodic removal of carts that no longer hold any line."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..db import atomic
from ..models import Cart, CartItem
from ..obs.errors import capture_exception
from ..routes_metrics import carts_swept_total

logger = logging.getLogger("tableorder.sweeper")

_empty = Cart.id.not_in(select(CartItem.cart_id))


async def count_empty_carts(session: AsyncSession) -> int:
    return await session.scalar(select(func.count(Cart.id)).where(_empty)) or 0


async def sweep_empty_carts(session: AsyncSession) -> int:
    """Delete every cart with zero items and return how many were removed.

    Only already-empty carts are targeted, so this is safe to run while
    guests keep adding to other carts.
    """
    async with atomic(session):
        result = await session.execute(
            delete(Cart).where(_empty).execution_options(synchronize_session=False)
        )
    removed = result.rowcount or 0
    if removed:
        carts_swept_total.inc(removed)
    logger.info("swept %d empty carts", removed)
    return removed


async def cart_sweeper(
    session_factory: Callable[[], AsyncSession], interval: float
) -> None:
    """Background task: sweep every ``interval`` seconds until cancelled."""
    while True:
        await asyncio.sleep(interval)
        try:
            async with session_factory() as session:
                await sweep_empty_carts(session)
        except Exception as exc:
            # The next cycle retries.
            logger.warning("cart sweep failed: %s", exc)
            capture_exception(exc)
