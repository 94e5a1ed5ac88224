"""Per-table cart mutations.

Every mutation locks the table row first so two guests at the same table
cannot interleave a merge-or-append on the same cart.
"""

from __future__ import annotations

import logging
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..db import atomic
from ..domain import ConflictError, NotFoundError
from ..models import ZERO, CafeTable, Cart
from . import menu as menu_service
from .tables import get_table

logger = logging.getLogger("tableorder.cart")


async def _occupied_table(session: AsyncSession, table_id: int) -> CafeTable:
    table = await get_table(session, table_id, lock=True)
    if not table.is_occupied:
        raise ConflictError(
            f"table {table.table_number} is not occupied",
            {"table_id": table_id, "status": table.status.value},
        )
    return table


async def find_cart(session: AsyncSession, table_id: int) -> Cart | None:
    return (
        await session.execute(select(Cart).where(Cart.table_id == table_id))
    ).scalar_one_or_none()


async def get_cart(session: AsyncSession, table_id: int) -> Cart | None:
    """Return the cart of an active table, or ``None`` when it has none yet."""
    await get_table(session, table_id)
    return await find_cart(session, table_id)


async def _get_or_create_cart(session: AsyncSession, table_id: int) -> Cart:
    cart = await find_cart(session, table_id)
    if cart is None:
        cart = Cart(table_id=table_id, items=[])
        session.add(cart)
        await session.flush()
    return cart


async def add_item(
    session: AsyncSession,
    table_id: int,
    menu_id: int,
    quantity: int,
    notes: str | None = None,
) -> Cart:
    async with atomic(session):
        await _occupied_table(session, table_id)
        menu = await menu_service.get_available_menu(session, menu_id)
        cart = await _get_or_create_cart(session, table_id)
        item = cart.add_item(menu, quantity, notes)
        await session.flush()
    logger.info(
        "cart %s: menu %s qty now %s", cart.id, menu.id, item.quantity,
        extra={"table_id": table_id},
    )
    return cart


async def update_item_quantity(
    session: AsyncSession, table_id: int, item_id: int, quantity: int
) -> Cart:
    async with atomic(session):
        if quantity < 1:
            raise ConflictError("quantity must be at least 1", {"quantity": quantity})
        await _occupied_table(session, table_id)
        cart = await _require_cart(session, table_id, item_id)
        item = cart.find_item(item_id)
        if not item.menu.is_available:
            raise ConflictError(
                f"menu {item.menu.name} is not available", {"menu_id": item.menu_id}
            )
        cart.update_item_quantity(item_id, quantity)
    return cart


async def _require_cart(session: AsyncSession, table_id: int, item_id: int) -> Cart:
    cart = await find_cart(session, table_id)
    if cart is None:
        raise NotFoundError(f"cart item {item_id} not found", {"item_id": item_id})
    # find_item only searches this table's lines, so an item id of another
    # table is reported as missing.
    cart.find_item(item_id)
    return cart


async def remove_item(session: AsyncSession, table_id: int, item_id: int) -> Cart:
    async with atomic(session):
        await _occupied_table(session, table_id)
        cart = await _require_cart(session, table_id, item_id)
        cart.remove_item(item_id)
    return cart


async def clear(session: AsyncSession, table_id: int) -> None:
    """Delete every line of the table's cart."""
    async with atomic(session):
        await get_table(session, table_id, lock=True)
        cart = await find_cart(session, table_id)
        if cart is not None:
            cart.clear()
    logger.info("cart cleared", extra={"table_id": table_id})


async def total(session: AsyncSession, table_id: int) -> Decimal:
    cart = await get_cart(session, table_id)
    return cart.total if cart is not None else ZERO


async def has_active_cart(session: AsyncSession, table_id: int) -> bool:
    cart = await get_cart(session, table_id)
    return cart is not None and not cart.is_empty
