"""Table endpoints: guest QR scan plus back-office management."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from config import get_settings

from .auth import admin_required
from .db import get_session
from .domain import TableStatus
from .qr import render_qr_png
from .schemas import ScanResult, Table, TableIn, TableStats, TableStatusIn, TableUpdate
from .services import cart as cart_service
from .services import tables as table_service
from .utils.pagination import Pagination, pagination
from .utils.responses import ok, page

router = APIRouter(prefix="/api/tables", tags=["tables"])


@router.get("/scan/{qr_code}")
async def scan_table(qr_code: str, session: AsyncSession = Depends(get_session)) -> dict:
    """Seat the scanned table if it is free and describe it to the guest."""

    table = await table_service.scan(session, qr_code)
    result = ScanResult(
        table_id=table.id,
        table_number=table.table_number,
        seat_count=table.seat_count,
        location_description=table.location_description,
        status=table.status,
        has_active_cart=await cart_service.has_active_cart(session, table.id),
    )
    return ok(result)


@router.get("/stats", dependencies=[Depends(admin_required)])
async def table_stats(session: AsyncSession = Depends(get_session)) -> dict:
    return ok(TableStats(**await table_service.table_stats(session)))


@router.get("", dependencies=[Depends(admin_required)])
async def list_tables(
    status: Optional[TableStatus] = None,
    paging: Pagination = Depends(pagination),
    session: AsyncSession = Depends(get_session),
) -> dict:
    rows, total = await table_service.list_tables(
        session, offset=paging.offset, limit=paging.size, status=status
    )
    items = [Table.model_validate(t) for t in rows]
    return ok(page(items, total, paging.page, paging.size))


@router.post("", status_code=201, dependencies=[Depends(admin_required)])
async def create_table(body: TableIn, session: AsyncSession = Depends(get_session)) -> dict:
    table = await table_service.create_table(
        session, body.table_number, body.seat_count, body.location_description
    )
    return ok(Table.model_validate(table))


@router.get("/{table_id}", dependencies=[Depends(admin_required)])
async def get_table(table_id: int, session: AsyncSession = Depends(get_session)) -> dict:
    return ok(Table.model_validate(await table_service.get_table(session, table_id)))


@router.put("/{table_id}", dependencies=[Depends(admin_required)])
async def update_table(
    table_id: int, body: TableUpdate, session: AsyncSession = Depends(get_session)
) -> dict:
    table = await table_service.update_table(
        session,
        table_id,
        table_number=body.table_number,
        seat_count=body.seat_count,
        location_description=body.location_description,
    )
    return ok(Table.model_validate(table))


@router.delete("/{table_id}", dependencies=[Depends(admin_required)])
async def delete_table(table_id: int, session: AsyncSession = Depends(get_session)) -> dict:
    await table_service.delete_table(session, table_id)
    return ok({"deleted": table_id})


@router.patch("/{table_id}/status", dependencies=[Depends(admin_required)])
async def change_table_status(
    table_id: int, body: TableStatusIn, session: AsyncSession = Depends(get_session)
) -> dict:
    table = await table_service.change_status(session, table_id, body.status)
    return ok(Table.model_validate(table))


@router.post("/{table_id}/regenerate-qr", dependencies=[Depends(admin_required)])
async def regenerate_qr(table_id: int, session: AsyncSession = Depends(get_session)) -> dict:
    table = await table_service.regenerate_qr(session, table_id)
    return ok(Table.model_validate(table))


@router.get("/{table_id}/qr.png", dependencies=[Depends(admin_required)])
async def table_qr_png(table_id: int, session: AsyncSession = Depends(get_session)) -> Response:
    """PNG of the scan URL, ready to print on the table card."""

    table = await table_service.get_table(session, table_id)
    png = render_qr_png(table.qr_code, get_settings().qr_base_url)
    return Response(
        png,
        media_type="image/png",
        headers={"Content-Disposition": f'inline; filename="table-{table.table_number}.png"'},
    )
