from decimal import Decimal

import pytest


@pytest.mark.anyio
async def test_order_snapshots_cart_and_empties_it(client, seated, menu, pending_order):
    assert pending_order["status"] == "PENDING"
    assert pending_order["table_number"] == "T1"
    assert Decimal(pending_order["total_amount"]) == Decimal("9000")
    assert Decimal(pending_order["payment_amount"]) == Decimal("9000")
    assert pending_order["used_points"] == 0
    [line] = pending_order["items"]
    assert line["menu_name"] == "Americano"
    assert line["quantity"] == 2

    resp = await client.get(f"/api/cart/table/{seated.id}")
    assert resp.json()["data"]["items"] == []


@pytest.mark.anyio
async def test_order_keeps_price_at_order_time(client, admin_headers, menu, pending_order):
    resp = await client.put(
        f"/api/menus/{menu.americano}", json={"price": "5500"}, headers=admin_headers
    )
    assert resp.status_code == 200
    resp = await client.get(f"/api/orders/{pending_order['id']}")
    assert Decimal(resp.json()["data"]["items"][0]["unit_price"]) == Decimal("4500")


@pytest.mark.anyio
async def test_empty_cart_cannot_be_ordered(client, seated):
    resp = await client.post(f"/api/orders/table/{seated.id}")
    assert resp.status_code == 409
    assert resp.json()["error"]["message"] == "cart is empty"


@pytest.mark.anyio
async def test_order_needs_occupied_table(client, table):
    resp = await client.post(f"/api/orders/table/{table.id}")
    assert resp.status_code == 409


@pytest.mark.anyio
async def test_order_notes_are_stored(client, seated, menu):
    await client.post(
        f"/api/cart/table/{seated.id}/items", json={"menu_id": menu.latte, "quantity": 1}
    )
    resp = await client.post(
        f"/api/orders/table/{seated.id}", json={"notes": "birthday candle"}
    )
    assert resp.json()["data"]["notes"] == "birthday candle"


@pytest.mark.anyio
async def test_customer_cancel_appends_reason(client, pending_order):
    resp = await client.post(
        f"/api/orders/{pending_order['id']}/cancel", json={"reason": "changed mind"}
    )
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["status"] == "CANCELLED"
    assert data["notes"] == "[cancel reason: changed mind]"


@pytest.mark.anyio
async def test_cancel_after_preparing_is_invalid(client, admin_headers, pending_order):
    await client.patch(
        f"/api/orders/{pending_order['id']}/status",
        json={"status": "PREPARING"},
        headers=admin_headers,
    )
    resp = await client.post(f"/api/orders/{pending_order['id']}/cancel")
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "INVALID_STATE"


@pytest.mark.anyio
async def test_illegal_transition_is_rejected(client, admin_headers, pending_order):
    resp = await client.patch(
        f"/api/orders/{pending_order['id']}/status",
        json={"status": "COMPLETED"},
        headers=admin_headers,
    )
    assert resp.status_code == 400
    details = resp.json()["error"]["details"]
    assert details["from"] == "PENDING"
    assert details["to"] == "COMPLETED"


@pytest.mark.anyio
async def test_status_change_requires_admin(client, pending_order):
    resp = await client.patch(
        f"/api/orders/{pending_order['id']}/status", json={"status": "PREPARING"}
    )
    assert resp.status_code == 401


@pytest.mark.anyio
async def test_active_orders_exclude_finished(client, seated, menu, pending_order):
    await client.post(f"/api/orders/{pending_order['id']}/cancel")
    await client.post(
        f"/api/cart/table/{seated.id}/items", json={"menu_id": menu.latte, "quantity": 1}
    )
    resp = await client.post(f"/api/orders/table/{seated.id}")
    live_id = resp.json()["data"]["id"]

    resp = await client.get(f"/api/orders/table/{seated.id}")
    assert [o["id"] for o in resp.json()["data"]] == [live_id]


@pytest.mark.anyio
async def test_unknown_order(client):
    resp = await client.get("/api/orders/424242")
    assert resp.status_code == 404


@pytest.mark.anyio
async def test_admin_listing_and_stats(client, manager_headers, pending_order):
    resp = await client.get(
        "/api/orders/admin", params={"status": "PENDING"}, headers=manager_headers
    )
    body = resp.json()["data"]
    assert body["total"] == 1
    assert body["items"][0]["id"] == pending_order["id"]

    resp = await client.get("/api/orders/stats/status-count", headers=manager_headers)
    counts = resp.json()["data"]
    assert counts["PENDING"] == 1
    assert counts["COMPLETED"] == 0

    resp = await client.get("/api/orders/stats/today", headers=manager_headers)
    stats = resp.json()["data"]
    assert stats["total_orders"] == 1
    assert stats["completed_orders"] == 0
    assert Decimal(stats["revenue"]) == 0
