"""Catalog queries and administration."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..db import atomic
from ..domain import ConflictError, NotFoundError, OrderStatus
from ..models import CartItem, Category, Menu, MenuOption, Order, OrderItem

logger = logging.getLogger("tableorder.menu")

POPULAR_WINDOW_DAYS = 30


async def get_menu(session: AsyncSession, menu_id: int) -> Menu:
    menu = await session.get(Menu, menu_id)
    if menu is None:
        raise NotFoundError(f"menu {menu_id} not found", {"menu_id": menu_id})
    return menu


async def get_available_menu(session: AsyncSession, menu_id: int) -> Menu:
    """Return ``menu_id`` if it can be ordered right now."""
    menu = await get_menu(session, menu_id)
    if not menu.is_available:
        raise ConflictError(
            f"menu {menu.name} is not available", {"menu_id": menu_id}
        )
    return menu


async def list_available(session: AsyncSession) -> list[Menu]:
    rows = await session.execute(
        select(Menu)
        .join(Category, Menu.category_id == Category.id)
        .where(Menu.is_available.is_(True))
        .order_by(Category.display_order, Menu.id)
    )
    return list(rows.scalars().all())


async def list_by_category(session: AsyncSession, category_id: int) -> list[Menu]:
    category = await session.get(Category, category_id)
    if category is None or not category.is_active:
        raise NotFoundError(
            f"category {category_id} not found", {"category_id": category_id}
        )
    rows = await session.execute(
        select(Menu)
        .where(Menu.category_id == category_id, Menu.is_available.is_(True))
        .order_by(Menu.id)
    )
    return list(rows.scalars().all())


async def search(session: AsyncSession, keyword: str) -> list[Menu]:
    """Case-insensitive substring match on available menu names."""
    pattern = f"%{keyword.strip()}%"
    rows = await session.execute(
        select(Menu)
        .where(Menu.name.ilike(pattern), Menu.is_available.is_(True))
        .order_by(Menu.name)
    )
    return list(rows.scalars().all())


async def popular(session: AsyncSession, limit: int = 10) -> list[Menu]:
    """Most ordered available menus over the last 30 days.

    Cancelled orders do not count.
    """
    since = datetime.now(timezone.utc) - timedelta(days=POPULAR_WINDOW_DAYS)
    quantity = func.sum(OrderItem.quantity).label("quantity")
    ranked = (
        select(OrderItem.menu_id, quantity)
        .join(Order, OrderItem.order_id == Order.id)
        .where(Order.created_at >= since, Order.status != OrderStatus.CANCELLED)
        .group_by(OrderItem.menu_id)
        .subquery()
    )
    rows = await session.execute(
        select(Menu)
        .join(ranked, ranked.c.menu_id == Menu.id)
        .where(Menu.is_available.is_(True))
        .order_by(ranked.c.quantity.desc(), Menu.id)
        .limit(limit)
    )
    return list(rows.scalars().all())


async def list_admin(
    session: AsyncSession, offset: int = 0, limit: int = 20
) -> tuple[list[Menu], int]:
    total = await session.scalar(select(func.count(Menu.id)))
    rows = await session.execute(
        select(Menu).order_by(Menu.id).offset(offset).limit(limit)
    )
    return list(rows.scalars().all()), total or 0


async def _get_category(session: AsyncSession, category_id: int) -> Category:
    category = await session.get(Category, category_id)
    if category is None:
        raise NotFoundError(
            f"category {category_id} not found", {"category_id": category_id}
        )
    return category


async def create_menu(
    session: AsyncSession,
    category_id: int,
    name: str,
    price: Decimal,
    description: str | None = None,
    image_url: str | None = None,
    is_available: bool = True,
) -> Menu:
    async with atomic(session):
        await _get_category(session, category_id)
        menu = Menu(
            category_id=category_id,
            name=name,
            price=price,
            description=description,
            image_url=image_url,
            is_available=is_available,
        )
        session.add(menu)
        await session.flush()
        # Load the relationships the response serialises.
        await session.refresh(menu, ["category", "options"])
    logger.info("menu %s created", menu.name)
    return menu


async def update_menu(session: AsyncSession, menu_id: int, **changes) -> Menu:
    """Apply non-``None`` fields from ``changes`` to ``menu_id``."""
    async with atomic(session):
        menu = await get_menu(session, menu_id)
        if changes.get("category_id") is not None:
            await _get_category(session, changes["category_id"])
        for field in ("category_id", "name", "price", "description", "image_url", "is_available"):
            value = changes.get(field)
            if value is not None:
                setattr(menu, field, value)
        await session.flush()
        await session.refresh(menu, ["category"])
    return menu


async def set_availability(
    session: AsyncSession, menu_id: int, is_available: bool
) -> Menu:
    async with atomic(session):
        menu = await get_menu(session, menu_id)
        menu.is_available = is_available
    logger.info("menu %s availability=%s", menu_id, is_available)
    return menu


async def delete_menu(session: AsyncSession, menu_id: int) -> None:
    """Remove a menu that has never been ordered.

    Menus that appear on past orders stay so the order history keeps its
    references; mark them unavailable instead.
    """
    async with atomic(session):
        menu = await get_menu(session, menu_id)
        ordered = await session.scalar(
            select(func.count(OrderItem.id)).where(OrderItem.menu_id == menu_id)
        )
        if ordered:
            raise ConflictError(
                f"menu {menu.name} appears on orders; disable it instead",
                {"menu_id": menu_id},
            )
        await session.execute(delete(CartItem).where(CartItem.menu_id == menu_id))
        await session.delete(menu)
    logger.info("menu %s deleted", menu_id)


async def list_categories(session: AsyncSession) -> list[Category]:
    rows = await session.execute(
        select(Category)
        .where(Category.is_active.is_(True))
        .order_by(Category.display_order, Category.id)
    )
    return list(rows.scalars().all())


async def create_category(
    session: AsyncSession,
    name: str,
    description: str | None = None,
    display_order: int = 0,
) -> Category:
    async with atomic(session):
        category = Category(
            name=name, description=description, display_order=display_order
        )
        session.add(category)
    logger.info("category %s created", name)
    return category


async def count_by_category(session: AsyncSession, category_id: int) -> int:
    """Number of available menus in ``category_id``."""
    await _get_category(session, category_id)
    count = await session.scalar(
        select(func.count(Menu.id)).where(
            Menu.category_id == category_id, Menu.is_available.is_(True)
        )
    )
    return count or 0


async def add_option(
    session: AsyncSession,
    menu_id: int,
    name: str,
    additional_price: Decimal = Decimal("0"),
    description: str | None = None,
    is_required: bool = False,
    max_selections: int = 1,
) -> MenuOption:
    async with atomic(session):
        await get_menu(session, menu_id)
        option = MenuOption(
            menu_id=menu_id,
            name=name,
            description=description,
            additional_price=additional_price,
            is_required=is_required,
            max_selections=max_selections,
            is_available=True,
        )
        session.add(option)
    return option


async def set_option_availability(
    session: AsyncSession, option_id: int, is_available: bool
) -> MenuOption:
    async with atomic(session):
        option = await session.get(MenuOption, option_id)
        if option is None:
            raise NotFoundError(
                f"menu option {option_id} not found", {"option_id": option_id}
            )
        option.is_available = is_available
    return option
