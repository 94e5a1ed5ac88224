"""Guest cart endpoints, keyed by table."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from .auth import admin_required
from .db import get_session
from .schemas import Cart, CartItemIn, CartQuantityIn, CartTotal
from .services import cart as cart_service
from .services.sweeper import sweep_empty_carts
from .utils.responses import ok

router = APIRouter(prefix="/api/cart", tags=["cart"])


@router.get("/table/{table_id}")
async def get_cart(table_id: int, session: AsyncSession = Depends(get_session)) -> dict:
    cart = await cart_service.get_cart(session, table_id)
    return ok(Cart.of(table_id, cart))


@router.post("/table/{table_id}/items")
async def add_item(
    table_id: int, body: CartItemIn, session: AsyncSession = Depends(get_session)
) -> dict:
    cart = await cart_service.add_item(
        session, table_id, body.menu_id, body.quantity, body.notes
    )
    return ok(Cart.of(table_id, cart))


@router.put("/table/{table_id}/items/{item_id}")
async def update_item(
    table_id: int,
    item_id: int,
    body: CartQuantityIn,
    session: AsyncSession = Depends(get_session),
) -> dict:
    cart = await cart_service.update_item_quantity(
        session, table_id, item_id, body.quantity
    )
    return ok(Cart.of(table_id, cart))


@router.delete("/table/{table_id}/items/{item_id}")
async def remove_item(
    table_id: int, item_id: int, session: AsyncSession = Depends(get_session)
) -> dict:
    cart = await cart_service.remove_item(session, table_id, item_id)
    return ok(Cart.of(table_id, cart))


@router.delete("/table/{table_id}")
async def clear_cart(table_id: int, session: AsyncSession = Depends(get_session)) -> dict:
    await cart_service.clear(session, table_id)
    return ok(Cart.of(table_id))


@router.get("/table/{table_id}/total")
async def cart_total(table_id: int, session: AsyncSession = Depends(get_session)) -> dict:
    total = await cart_service.total(session, table_id)
    return ok(CartTotal(table_id=table_id, total_amount=total))


@router.get("/table/{table_id}/active")
async def has_active_cart(
    table_id: int, session: AsyncSession = Depends(get_session)
) -> dict:
    return ok({"table_id": table_id, "active": await cart_service.has_active_cart(session, table_id)})


@router.post("/cleanup", dependencies=[Depends(admin_required)])
async def cleanup(session: AsyncSession = Depends(get_session)) -> dict:
    """Run the empty-cart sweep now instead of waiting for the next cycle."""

    removed = await sweep_empty_carts(session)
    return ok({"removed": removed})
