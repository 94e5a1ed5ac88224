"""Payment attempts and refunds.

CARD attempts go through the gateway; CASH is taken at the counter and
completes immediately. A payment row is one-to-one with its order, so a
failed attempt is reused by the next one instead of adding a second row.
"""

from __future__ import annotations

import logging
import time
import uuid
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..db import atomic
from ..domain import (
    ConflictError,
    ExternalServiceError,
    NotFoundError,
    OrderStatus,
    PaymentDeclinedError,
    PaymentMethod,
    PaymentStatus,
)
from ..models import ZERO, Order, Payment
from ..providers import PaymentGateway
from ..routes_metrics import payments_total, refunds_total
from .orders import get_order, start_of_today

logger = logging.getLogger("tableorder.payments")


def new_transaction_id() -> str:
    """``TXN<epoch millis><8 upper hex>``; identifies one attempt only."""
    return f"TXN{int(time.time() * 1000)}{uuid.uuid4().hex[:8].upper()}"


async def get_payment(session: AsyncSession, payment_id: int, *, lock: bool = False) -> Payment:
    stmt = select(Payment).where(Payment.id == payment_id)
    if lock:
        stmt = stmt.with_for_update()
    payment = (await session.execute(stmt)).scalar_one_or_none()
    if payment is None:
        raise NotFoundError(f"payment {payment_id} not found", {"payment_id": payment_id})
    return payment


async def find_by_order(session: AsyncSession, order_id: int) -> Payment | None:
    return (
        await session.execute(select(Payment).where(Payment.order_id == order_id))
    ).scalar_one_or_none()


async def get_by_order(session: AsyncSession, order_id: int) -> Payment:
    payment = await find_by_order(session, order_id)
    if payment is None:
        raise NotFoundError(
            f"no payment for order {order_id}", {"order_id": order_id}
        )
    return payment


def _validate(order: Order, amount: Decimal, existing: Payment | None) -> None:
    if order.status != OrderStatus.PENDING:
        raise ConflictError(
            f"order {order.id} is {order.status.value}, not PENDING",
            {"order_id": order.id, "status": order.status.value},
        )
    if Decimal(amount) != Decimal(order.payment_amount):
        raise ConflictError(
            "amount does not match the order",
            {"expected": str(order.payment_amount), "received": str(amount)},
        )
    if existing is not None and existing.status != PaymentStatus.FAILED:
        raise ConflictError(
            f"order {order.id} already has a {existing.status.value} payment",
            {"order_id": order.id, "payment_id": existing.id},
        )


async def _open_attempt(
    session: AsyncSession, order: Order, method: PaymentMethod, amount: Decimal
) -> Payment:
    existing = await find_by_order(session, order.id)
    _validate(order, amount, existing)
    txn = new_transaction_id()
    if existing is not None:
        existing.restart(method, amount, txn)
        payment = existing
    else:
        payment = Payment(
            order_id=order.id,
            payment_method=method,
            amount=amount,
            status=PaymentStatus.PENDING,
            transaction_id=txn,
        )
        session.add(payment)
    await session.flush()
    return payment


async def pay_cash(session: AsyncSession, order_id: int, amount: Decimal) -> Payment:
    async with atomic(session):
        order = await get_order(session, order_id, lock=True)
        payment = await _open_attempt(session, order, PaymentMethod.CASH, amount)
        payment.complete()
        order.transition_to(OrderStatus.PREPARING)
        await session.flush()
    payments_total.labels(method="CASH", status="COMPLETED").inc()
    logger.info(
        "cash payment %s completed txn=%s", payment.id, payment.transaction_id,
        extra={"order_id": order_id},
    )
    return payment


async def pay_card(
    session: AsyncSession,
    gateway: PaymentGateway,
    order_id: int,
    amount: Decimal,
) -> Payment:
    """Authorise ``amount`` on the gateway and settle ``order_id``.

    A decline or gateway failure is persisted as a FAILED payment and then
    raised, leaving the order PENDING so the guest can try again.
    """
    failure: ExternalServiceError | None = None
    async with atomic(session):
        order = await get_order(session, order_id, lock=True)
        payment = await _open_attempt(session, order, PaymentMethod.CARD, amount)
        try:
            result = await gateway.authorize(Decimal(amount), PaymentMethod.CARD.value)
        except ExternalServiceError as exc:
            payment.fail(exc.message)
            failure = exc
        else:
            if result.approved:
                payment.complete(result.transaction_ref)
                order.transition_to(OrderStatus.PREPARING)
            else:
                reason = result.reason or "declined"
                payment.fail(reason)
                failure = PaymentDeclinedError(
                    f"payment declined: {reason}",
                    {"payment_id": payment.id, "transaction_id": payment.transaction_id},
                )
        await session.flush()
    payments_total.labels(method="CARD", status=payment.status.value).inc()
    if failure is not None:
        logger.warning(
            "card payment %s failed: %s", payment.id, payment.failure_reason,
            extra={"order_id": order_id},
        )
        raise failure
    logger.info(
        "card payment %s completed txn=%s", payment.id, payment.transaction_id,
        extra={"order_id": order_id},
    )
    return payment


async def refund(
    session: AsyncSession,
    gateway: PaymentGateway,
    payment_id: int,
    reason: str,
) -> Payment:
    """Refund a completed payment and cancel its order.

    Gateway failures leave both rows untouched; nothing is retried.
    """
    async with atomic(session):
        payment = await get_payment(session, payment_id, lock=True)
        if payment.status != PaymentStatus.COMPLETED:
            raise ConflictError(
                f"payment {payment_id} is {payment.status.value}, not COMPLETED",
                {"payment_id": payment_id, "status": payment.status.value},
            )
        order = await get_order(session, payment.order_id, lock=True)
        try:
            result = await gateway.refund(payment.gateway_ref or payment.transaction_id)
        except ExternalServiceError:
            refunds_total.labels(status="ERROR").inc()
            raise
        if not result.approved:
            refunds_total.labels(status="DECLINED").inc()
            raise ExternalServiceError(
                f"refund failed: {result.reason or 'declined'}",
                {"payment_id": payment_id},
            )
        payment.mark_refunded(reason)
        order.cancel_for_refund()
        await session.flush()
    refunds_total.labels(status="REFUNDED").inc()
    logger.info(
        "payment %s refunded", payment_id, extra={"order_id": payment.order_id}
    )
    return payment


async def today_stats(session: AsyncSession) -> dict:
    rows = await session.execute(
        select(Payment.payment_method, func.count(Payment.id), func.sum(Payment.amount))
        .where(
            Payment.status == PaymentStatus.COMPLETED,
            Payment.payment_time >= start_of_today(),
        )
        .group_by(Payment.payment_method)
    )
    by_method = {}
    count = 0
    total = ZERO
    for method, n, amount in rows.all():
        amount = Decimal(str(amount or 0)).quantize(Decimal("0.01"))
        by_method[method.value] = {"count": n, "amount": amount}
        count += n
        total += amount
    return {"count": count, "total_amount": total, "by_method": by_method}
