"""Table administration, QR issuance and the customer scan flow."""

from __future__ import annotations

import logging

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..db import atomic
from ..domain import ConflictError, NotFoundError, TableStatus
from ..models import CafeTable
from ..qr import new_qr_code

logger = logging.getLogger("tableorder.tables")

MAX_QR_ATTEMPTS = 10


async def get_table(
    session: AsyncSession, table_id: int, *, lock: bool = False
) -> CafeTable:
    """Return the active table ``table_id`` or raise :class:`NotFoundError`.

    ``lock`` takes a row lock for the rest of the transaction.
    """
    stmt = select(CafeTable).where(
        CafeTable.id == table_id, CafeTable.is_active.is_(True)
    )
    if lock:
        stmt = stmt.with_for_update()
    table = (await session.execute(stmt)).scalar_one_or_none()
    if table is None:
        raise NotFoundError(f"table {table_id} not found", {"table_id": table_id})
    return table


async def list_tables(
    session: AsyncSession,
    offset: int = 0,
    limit: int = 20,
    status: TableStatus | None = None,
) -> tuple[list[CafeTable], int]:
    filters = [CafeTable.is_active.is_(True)]
    if status is not None:
        filters.append(CafeTable.status == status)
    total = await session.scalar(select(func.count(CafeTable.id)).where(*filters))
    rows = await session.execute(
        select(CafeTable)
        .where(*filters)
        .order_by(CafeTable.table_number)
        .offset(offset)
        .limit(limit)
    )
    return list(rows.scalars().all()), total or 0


async def _issue_qr_code(session: AsyncSession) -> str:
    for _ in range(MAX_QR_ATTEMPTS):
        code = new_qr_code()
        taken = await session.scalar(
            select(func.count(CafeTable.id)).where(CafeTable.qr_code == code)
        )
        if not taken:
            return code
        logger.warning("qr code collision on %s, retrying", code)
    raise ConflictError("could not issue a unique QR code")


async def _ensure_number_free(
    session: AsyncSession, table_number: str, exclude_id: int | None = None
) -> None:
    stmt = select(CafeTable.id).where(CafeTable.table_number == table_number)
    if exclude_id is not None:
        stmt = stmt.where(CafeTable.id != exclude_id)
    if (await session.execute(stmt)).first() is not None:
        raise ConflictError(
            f"table number {table_number} already exists",
            {"table_number": table_number},
        )


async def create_table(
    session: AsyncSession,
    table_number: str,
    seat_count: int,
    location_description: str | None = None,
) -> CafeTable:
    async with atomic(session):
        await _ensure_number_free(session, table_number)
        table = CafeTable(
            table_number=table_number,
            seat_count=seat_count,
            location_description=location_description,
            qr_code=await _issue_qr_code(session),
            status=TableStatus.AVAILABLE,
            is_active=True,
        )
        session.add(table)
    logger.info("table %s created with qr %s", table.table_number, table.qr_code)
    return table


async def update_table(
    session: AsyncSession,
    table_id: int,
    table_number: str | None = None,
    seat_count: int | None = None,
    location_description: str | None = None,
) -> CafeTable:
    async with atomic(session):
        table = await get_table(session, table_id, lock=True)
        if table_number is not None and table_number != table.table_number:
            await _ensure_number_free(session, table_number, exclude_id=table.id)
            table.table_number = table_number
        if seat_count is not None:
            table.seat_count = seat_count
        if location_description is not None:
            table.location_description = location_description
    return table


async def delete_table(session: AsyncSession, table_id: int) -> None:
    """Soft-delete a table that is not currently seated."""
    async with atomic(session):
        table = await get_table(session, table_id, lock=True)
        if table.is_occupied:
            raise ConflictError(
                f"table {table.table_number} is occupied", {"table_id": table_id}
            )
        table.is_active = False
    logger.info("table %s deactivated", table_id)


async def change_status(
    session: AsyncSession, table_id: int, status: TableStatus
) -> CafeTable:
    async with atomic(session):
        table = await get_table(session, table_id, lock=True)
        previous = table.status
        if status == TableStatus.OCCUPIED:
            table.occupy()
        elif status == TableStatus.AVAILABLE:
            table.make_available()
        else:
            table.set_maintenance()
    logger.info(
        "table %s status %s -> %s", table_id, previous.value, table.status.value
    )
    return table


async def scan(session: AsyncSession, qr_code: str) -> CafeTable:
    """Resolve a scanned QR code and seat the table if it is free.

    An already occupied table is returned unchanged so every guest at the
    table can scan; a table under maintenance cannot be used.
    """
    async with atomic(session):
        table = (
            await session.execute(
                select(CafeTable)
                .where(CafeTable.qr_code == qr_code, CafeTable.is_active.is_(True))
                .with_for_update()
            )
        ).scalar_one_or_none()
        if table is None:
            raise NotFoundError("unknown QR code", {"qr_code": qr_code})
        if table.status == TableStatus.MAINTENANCE:
            raise ConflictError(
                f"table {table.table_number} is under maintenance",
                {"table_id": table.id},
            )
        if table.status == TableStatus.AVAILABLE:
            table.occupy()
            logger.info("table %s occupied by scan", table.id)
    return table


async def regenerate_qr(session: AsyncSession, table_id: int) -> CafeTable:
    async with atomic(session):
        table = await get_table(session, table_id, lock=True)
        table.qr_code = await _issue_qr_code(session)
    logger.info("table %s qr regenerated", table_id)
    return table


async def table_stats(session: AsyncSession) -> dict[str, int]:
    rows = await session.execute(
        select(CafeTable.status, func.count(CafeTable.id))
        .where(CafeTable.is_active.is_(True))
        .group_by(CafeTable.status)
    )
    counts = {status.value.lower(): 0 for status in TableStatus}
    for status, count in rows.all():
        counts[status.value.lower()] = count
    counts["total"] = sum(counts.values())
    return counts
