"""Test configuration for API tests.

Every test gets its own in-memory SQLite database and a scripted payment
gateway; the app's ``get_session`` and ``get_gateway`` dependencies are
overridden to point at them.
"""

import pathlib
import sys
from decimal import Decimal
from types import SimpleNamespace

sys.path.append(str(pathlib.Path(__file__).resolve().parents[2]))

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from api.tableorder import auth  # noqa: E402
from api.tableorder import db as app_db  # noqa: E402
from api.tableorder.domain import ExternalServiceError  # noqa: E402
from api.tableorder.main import app  # noqa: E402
from api.tableorder.providers import get_gateway  # noqa: E402
from api.tableorder.providers.base import GatewayResult  # noqa: E402
from api.tableorder.services import menu as menu_service  # noqa: E402
from api.tableorder.services import tables as table_service  # noqa: E402


class ScriptedGateway:
    """Gateway whose answers are set by the test."""

    def __init__(self) -> None:
        self.approve = True
        self.refund_approve = True
        self.unreachable = False
        self.calls: list[tuple] = []

    async def authorize(self, amount, method):
        self.calls.append(("authorize", amount, method))
        if self.unreachable:
            raise ExternalServiceError("payment gateway unavailable")
        if self.approve:
            return GatewayResult(approved=True, transaction_ref=f"GW-{len(self.calls)}")
        return GatewayResult(approved=False, reason="insufficient funds")

    async def refund(self, transaction_ref):
        self.calls.append(("refund", transaction_ref))
        if self.unreachable:
            raise ExternalServiceError("payment gateway unavailable")
        if self.refund_approve:
            return GatewayResult(approved=True, transaction_ref=transaction_ref)
        return GatewayResult(approved=False, reason="refund window closed")


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
async def session_factory():
    factory, engine = app_db.create_test_session()
    await app_db.create_schema(engine)
    yield factory
    await engine.dispose()


@pytest.fixture
def gateway() -> ScriptedGateway:
    return ScriptedGateway()


@pytest.fixture
async def client(session_factory, gateway):
    async def _session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[app_db.get_session] = _session
    app.dependency_overrides[get_gateway] = lambda: gateway
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


async def _token_for(session_factory, email: str, role: str) -> dict:
    async with session_factory() as session:
        admin = await auth.create_admin(session, email, "correct-horse", "Staff", role)
    token = auth.create_access_token({"sub": admin.email, "role": admin.role})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
async def admin_headers(session_factory) -> dict:
    """Bearer header of a SUPER_ADMIN account."""
    return await _token_for(session_factory, "owner@example.com", "SUPER_ADMIN")


@pytest.fixture
async def manager_headers(session_factory) -> dict:
    return await _token_for(session_factory, "manager@example.com", "MANAGER")


@pytest.fixture
async def menu(session_factory) -> SimpleNamespace:
    """One category with two orderable menus and one sold-out menu."""
    async with session_factory() as session:
        coffee = await menu_service.create_category(session, "Coffee", display_order=1)
        americano = await menu_service.create_menu(
            session, coffee.id, "Americano", Decimal("4500.00")
        )
        latte = await menu_service.create_menu(
            session, coffee.id, "Cafe Latte", Decimal("5000.00")
        )
        special = await menu_service.create_menu(
            session, coffee.id, "Seasonal Special", Decimal("6500.00"), is_available=False
        )
    return SimpleNamespace(
        category_id=coffee.id,
        americano=americano.id,
        latte=latte.id,
        sold_out=special.id,
    )


@pytest.fixture
async def table(session_factory) -> SimpleNamespace:
    async with session_factory() as session:
        created = await table_service.create_table(session, "T1", 4, "window")
    return SimpleNamespace(id=created.id, qr_code=created.qr_code)


@pytest.fixture
async def seated(client, table) -> SimpleNamespace:
    """``table`` after a guest scanned its QR code."""
    resp = await client.get(f"/api/tables/scan/{table.qr_code}")
    assert resp.status_code == 200
    return table


@pytest.fixture
async def pending_order(client, seated, menu) -> dict:
    """A PENDING order for 2 x Americano on the seated table."""
    resp = await client.post(
        f"/api/cart/table/{seated.id}/items",
        json={"menu_id": menu.americano, "quantity": 2},
    )
    assert resp.status_code == 200
    resp = await client.post(f"/api/orders/table/{seated.id}")
    assert resp.status_code == 201
    return resp.json()["data"]
