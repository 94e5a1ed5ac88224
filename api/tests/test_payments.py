from decimal import Decimal

import pytest

from api.tableorder.services.payments import new_transaction_id


async def _pay(client, method, order, amount=None):
    return await client.post(
        f"/api/payments/{method}",
        json={"order_id": order["id"], "amount": amount or order["payment_amount"]},
    )


def test_transaction_id_format():
    txn = new_transaction_id()
    assert txn.startswith("TXN")
    suffix = txn[-8:]
    assert suffix == suffix.upper()
    assert txn[3:-8].isdigit()


@pytest.mark.anyio
async def test_cash_payment_moves_order_to_preparing(client, pending_order):
    resp = await _pay(client, "cash", pending_order)
    assert resp.status_code == 200
    payment = resp.json()["data"]
    assert payment["status"] == "COMPLETED"
    assert payment["payment_method"] == "CASH"
    assert payment["transaction_id"].startswith("TXN")
    assert payment["payment_time"] is not None

    resp = await client.get(f"/api/orders/{pending_order['id']}")
    assert resp.json()["data"]["status"] == "PREPARING"


@pytest.mark.anyio
async def test_card_approval(client, gateway, pending_order):
    resp = await _pay(client, "card", pending_order)
    assert resp.status_code == 200
    assert resp.json()["data"]["status"] == "COMPLETED"
    assert gateway.calls == [("authorize", Decimal("9000.00"), "CARD")]

    resp = await client.get(f"/api/orders/{pending_order['id']}")
    assert resp.json()["data"]["status"] == "PREPARING"


@pytest.mark.anyio
async def test_card_decline_records_failed_attempt(client, gateway, pending_order):
    gateway.approve = False
    resp = await _pay(client, "card", pending_order)
    assert resp.status_code == 402
    assert resp.json()["error"]["code"] == "PAYMENT_DECLINED"

    resp = await client.get(f"/api/payments/order/{pending_order['id']}")
    payment = resp.json()["data"]
    assert payment["status"] == "FAILED"
    assert payment["failure_reason"] == "insufficient funds"

    resp = await client.get(f"/api/orders/{pending_order['id']}")
    assert resp.json()["data"]["status"] == "PENDING"


@pytest.mark.anyio
async def test_retry_after_decline_reuses_payment_row(client, gateway, pending_order):
    gateway.approve = False
    await _pay(client, "card", pending_order)
    failed = (await client.get(f"/api/payments/order/{pending_order['id']}")).json()["data"]

    gateway.approve = True
    resp = await _pay(client, "card", pending_order)
    assert resp.status_code == 200
    retried = resp.json()["data"]
    assert retried["id"] == failed["id"]
    assert retried["status"] == "COMPLETED"
    assert retried["transaction_id"] != failed["transaction_id"]
    assert retried["failure_reason"] is None


@pytest.mark.anyio
async def test_unreachable_gateway_is_502(client, gateway, pending_order):
    gateway.unreachable = True
    resp = await _pay(client, "card", pending_order)
    assert resp.status_code == 502
    assert resp.json()["error"]["code"] == "EXTERNAL_SERVICE"

    resp = await client.get(f"/api/payments/order/{pending_order['id']}")
    assert resp.json()["data"]["status"] == "FAILED"


@pytest.mark.anyio
async def test_amount_mismatch_conflicts(client, pending_order):
    resp = await _pay(client, "cash", pending_order, amount="1.00")
    assert resp.status_code == 409
    details = resp.json()["error"]["details"]
    assert Decimal(details["expected"]) == Decimal("9000")

    resp = await client.get(f"/api/payments/order/{pending_order['id']}")
    assert resp.status_code == 404


@pytest.mark.anyio
async def test_paid_order_cannot_be_paid_again(client, pending_order):
    await _pay(client, "cash", pending_order)
    resp = await _pay(client, "cash", pending_order)
    assert resp.status_code == 409


@pytest.mark.anyio
async def test_cancelled_order_cannot_be_paid(client, pending_order):
    await client.post(f"/api/orders/{pending_order['id']}/cancel")
    resp = await _pay(client, "card", pending_order)
    assert resp.status_code == 409


@pytest.mark.anyio
async def test_refund_cancels_order(client, gateway, admin_headers, pending_order):
    payment = (await _pay(client, "card", pending_order)).json()["data"]

    resp = await client.post(
        f"/api/payments/{payment['id']}/refund",
        json={"reason": "cold coffee"},
        headers=admin_headers,
    )
    assert resp.status_code == 200
    refunded = resp.json()["data"]
    assert refunded["status"] == "REFUNDED"
    assert refunded["failure_reason"] == "refund: cold coffee"
    assert gateway.calls[-1] == ("refund", "GW-1")

    resp = await client.get(f"/api/orders/{pending_order['id']}")
    assert resp.json()["data"]["status"] == "CANCELLED"


@pytest.mark.anyio
async def test_cash_refund_uses_transaction_id(client, gateway, admin_headers, pending_order):
    payment = (await _pay(client, "cash", pending_order)).json()["data"]
    resp = await client.post(
        f"/api/payments/{payment['id']}/refund",
        json={"reason": "wrong table"},
        headers=admin_headers,
    )
    assert resp.status_code == 200
    assert gateway.calls[-1] == ("refund", payment["transaction_id"])


@pytest.mark.anyio
async def test_rejected_refund_changes_nothing(client, gateway, admin_headers, pending_order):
    payment = (await _pay(client, "card", pending_order)).json()["data"]
    gateway.refund_approve = False

    resp = await client.post(
        f"/api/payments/{payment['id']}/refund",
        json={"reason": "late"},
        headers=admin_headers,
    )
    assert resp.status_code == 502

    resp = await client.get(f"/api/payments/{payment['id']}")
    assert resp.json()["data"]["status"] == "COMPLETED"
    resp = await client.get(f"/api/orders/{pending_order['id']}")
    assert resp.json()["data"]["status"] == "PREPARING"


@pytest.mark.anyio
async def test_refund_twice_conflicts(client, admin_headers, pending_order):
    payment = (await _pay(client, "cash", pending_order)).json()["data"]
    url = f"/api/payments/{payment['id']}/refund"
    await client.post(url, json={"reason": "a"}, headers=admin_headers)
    resp = await client.post(url, json={"reason": "b"}, headers=admin_headers)
    assert resp.status_code == 409


@pytest.mark.anyio
async def test_refund_requires_admin(client, pending_order):
    payment = (await _pay(client, "cash", pending_order)).json()["data"]
    resp = await client.post(
        f"/api/payments/{payment['id']}/refund", json={"reason": "x"}
    )
    assert resp.status_code == 401


@pytest.mark.anyio
async def test_payment_stats_today(client, admin_headers, pending_order):
    await _pay(client, "cash", pending_order)
    resp = await client.get("/api/payments/stats/today", headers=admin_headers)
    stats = resp.json()["data"]
    assert stats["count"] == 1
    assert Decimal(stats["total_amount"]) == Decimal("9000")
    assert stats["by_method"]["CASH"]["count"] == 1
