"""Catalog endpoints.

Literal paths are declared before ``/{menu_id}`` so they are not captured
by it.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from .auth import admin_required
from .db import get_session
from .schemas import (
    AvailabilityIn,
    Category,
    CategoryCount,
    CategoryIn,
    Menu,
    MenuIn,
    MenuOption,
    MenuOptionIn,
    MenuUpdate,
)
from .services import menu as menu_service
from .utils.pagination import Pagination, pagination
from .utils.responses import ok, page

router = APIRouter(prefix="/api/menus", tags=["menus"])


def _menus(rows) -> list[Menu]:
    return [Menu.of(m) for m in rows]


@router.get("/available")
async def available_menus(session: AsyncSession = Depends(get_session)) -> dict:
    return ok(_menus(await menu_service.list_available(session)))


@router.get("/category/{category_id}")
async def menus_by_category(
    category_id: int, session: AsyncSession = Depends(get_session)
) -> dict:
    return ok(_menus(await menu_service.list_by_category(session, category_id)))


@router.get("/search")
async def search_menus(
    keyword: str = Query(..., min_length=1, max_length=100),
    session: AsyncSession = Depends(get_session),
) -> dict:
    return ok(_menus(await menu_service.search(session, keyword)))


@router.get("/popular")
async def popular_menus(
    limit: int = Query(10, ge=1, le=50), session: AsyncSession = Depends(get_session)
) -> dict:
    return ok(_menus(await menu_service.popular(session, limit)))


@router.get("/categories")
async def list_categories(session: AsyncSession = Depends(get_session)) -> dict:
    rows = await menu_service.list_categories(session)
    return ok([Category.model_validate(c) for c in rows])


@router.post("/categories", status_code=201, dependencies=[Depends(admin_required)])
async def create_category(
    body: CategoryIn, session: AsyncSession = Depends(get_session)
) -> dict:
    category = await menu_service.create_category(
        session, body.name, body.description, body.display_order
    )
    return ok(Category.model_validate(category))


@router.get("/categories/{category_id}/count", dependencies=[Depends(admin_required)])
async def count_in_category(
    category_id: int, session: AsyncSession = Depends(get_session)
) -> dict:
    count = await menu_service.count_by_category(session, category_id)
    return ok(CategoryCount(category_id=category_id, count=count))


@router.get("/admin", dependencies=[Depends(admin_required)])
async def admin_menus(
    paging: Pagination = Depends(pagination),
    session: AsyncSession = Depends(get_session),
) -> dict:
    rows, total = await menu_service.list_admin(
        session, offset=paging.offset, limit=paging.size
    )
    return ok(page(_menus(rows), total, paging.page, paging.size))


@router.patch(
    "/options/{option_id}/availability", dependencies=[Depends(admin_required)]
)
async def option_availability(
    option_id: int, body: AvailabilityIn, session: AsyncSession = Depends(get_session)
) -> dict:
    option = await menu_service.set_option_availability(
        session, option_id, body.is_available
    )
    return ok(MenuOption.model_validate(option))


@router.post("", status_code=201, dependencies=[Depends(admin_required)])
async def create_menu(body: MenuIn, session: AsyncSession = Depends(get_session)) -> dict:
    menu = await menu_service.create_menu(session, **body.model_dump())
    return ok(Menu.of(menu))


@router.get("/{menu_id}")
async def get_menu(menu_id: int, session: AsyncSession = Depends(get_session)) -> dict:
    """Menu detail including its options."""

    return ok(Menu.of(await menu_service.get_menu(session, menu_id)))


@router.put("/{menu_id}", dependencies=[Depends(admin_required)])
async def update_menu(
    menu_id: int, body: MenuUpdate, session: AsyncSession = Depends(get_session)
) -> dict:
    menu = await menu_service.update_menu(
        session, menu_id, **body.model_dump(exclude_unset=True)
    )
    return ok(Menu.of(menu))


@router.delete("/{menu_id}", dependencies=[Depends(admin_required)])
async def delete_menu(menu_id: int, session: AsyncSession = Depends(get_session)) -> dict:
    await menu_service.delete_menu(session, menu_id)
    return ok({"deleted": menu_id})


@router.patch("/{menu_id}/availability", dependencies=[Depends(admin_required)])
async def menu_availability(
    menu_id: int, body: AvailabilityIn, session: AsyncSession = Depends(get_session)
) -> dict:
    menu = await menu_service.set_availability(session, menu_id, body.is_available)
    return ok(Menu.of(menu))


@router.post("/{menu_id}/options", status_code=201, dependencies=[Depends(admin_required)])
async def add_option(
    menu_id: int, body: MenuOptionIn, session: AsyncSession = Depends(get_session)
) -> dict:
    option = await menu_service.add_option(session, menu_id, **body.model_dump())
    return ok(MenuOption.model_validate(option))
