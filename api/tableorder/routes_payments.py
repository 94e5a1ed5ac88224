"""Payment endpoints.

The gateway is a dependency so tests and deployments can swap it.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from .auth import admin_required
from .db import get_session
from .providers import PaymentGateway, get_gateway
from .schemas import Payment, PaymentIn, PaymentStats, RefundIn
from .services import payments as payment_service
from .utils.responses import ok

router = APIRouter(prefix="/api/payments", tags=["payments"])


@router.post("/card")
async def pay_by_card(
    body: PaymentIn,
    session: AsyncSession = Depends(get_session),
    gateway: PaymentGateway = Depends(get_gateway),
) -> dict:
    payment = await payment_service.pay_card(session, gateway, body.order_id, body.amount)
    return ok(Payment.model_validate(payment))


@router.post("/cash")
async def pay_by_cash(body: PaymentIn, session: AsyncSession = Depends(get_session)) -> dict:
    payment = await payment_service.pay_cash(session, body.order_id, body.amount)
    return ok(Payment.model_validate(payment))


@router.get("/stats/today", dependencies=[Depends(admin_required)])
async def today_stats(session: AsyncSession = Depends(get_session)) -> dict:
    return ok(PaymentStats(**await payment_service.today_stats(session)))


@router.get("/order/{order_id}")
async def payment_for_order(
    order_id: int, session: AsyncSession = Depends(get_session)
) -> dict:
    return ok(Payment.model_validate(await payment_service.get_by_order(session, order_id)))


@router.get("/{payment_id}")
async def get_payment(payment_id: int, session: AsyncSession = Depends(get_session)) -> dict:
    return ok(Payment.model_validate(await payment_service.get_payment(session, payment_id)))


@router.post("/{payment_id}/refund", dependencies=[Depends(admin_required)])
async def refund_payment(
    payment_id: int,
    body: RefundIn,
    session: AsyncSession = Depends(get_session),
    gateway: PaymentGateway = Depends(get_gateway),
) -> dict:
    payment = await payment_service.refund(session, gateway, payment_id, body.reason)
    return ok(Payment.model_validate(payment))
