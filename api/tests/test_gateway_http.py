import json
import random
from decimal import Decimal

import httpx
import pytest

from api.tableorder.domain import ExternalServiceError
from api.tableorder.providers import HttpGateway, StubGateway


def _gateway(handler) -> HttpGateway:
    return HttpGateway("http://gw.local/", transport=httpx.MockTransport(handler))


@pytest.mark.anyio
async def test_authorize_posts_amount_as_string():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"approved": True, "transaction_ref": "R-1"})

    result = await _gateway(handler).authorize(Decimal("13500.00"), "CARD")
    assert result.approved is True
    assert result.transaction_ref == "R-1"
    assert seen == {"path": "/authorize", "body": {"amount": "13500.00", "method": "CARD"}}


@pytest.mark.anyio
async def test_decline_is_a_result_not_an_error():
    def handler(request):
        return httpx.Response(200, json={"approved": False, "reason": "stolen card"})

    result = await _gateway(handler).authorize(Decimal("1"), "CARD")
    assert result.approved is False
    assert result.reason == "stolen card"


@pytest.mark.anyio
async def test_server_error_is_external_failure():
    def handler(request):
        return httpx.Response(503)

    with pytest.raises(ExternalServiceError):
        await _gateway(handler).refund("R-1")


@pytest.mark.anyio
async def test_connection_error_is_external_failure():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(ExternalServiceError) as info:
        await _gateway(handler).authorize(Decimal("1"), "CARD")
    assert info.value.details == {"endpoint": "/authorize"}


@pytest.mark.anyio
async def test_malformed_body_is_external_failure():
    def handler(request):
        return httpx.Response(200, content=b"<html>")

    with pytest.raises(ExternalServiceError):
        await _gateway(handler).refund("R-1")


@pytest.mark.anyio
@pytest.mark.parametrize("body", [[1, 2], None, "approved"])
async def test_non_object_body_is_external_failure(body):
    def handler(request):
        return httpx.Response(200, json=body)

    with pytest.raises(ExternalServiceError) as info:
        await _gateway(handler).authorize(Decimal("1"), "CARD")
    assert info.value.details == {"endpoint": "/authorize"}


@pytest.mark.anyio
@pytest.mark.parametrize("approved", ["false", "true", 1, None])
async def test_non_boolean_verdict_is_not_an_approval(approved):
    def handler(request):
        return httpx.Response(200, json={"approved": approved, "transaction_ref": "R-9"})

    with pytest.raises(ExternalServiceError):
        await _gateway(handler).authorize(Decimal("1"), "CARD")


@pytest.mark.anyio
async def test_missing_verdict_is_external_failure():
    def handler(request):
        return httpx.Response(200, json={"transaction_ref": "R-9"})

    with pytest.raises(ExternalServiceError):
        await _gateway(handler).refund("R-9")


@pytest.mark.anyio
async def test_stub_gateway_follows_rates():
    always = StubGateway(approval_rate=1.0, refund_rate=1.0, rng=random.Random(1))
    never = StubGateway(approval_rate=0.0, refund_rate=0.0, rng=random.Random(1))

    approved = await always.authorize(Decimal("10"), "CARD")
    assert approved.approved and approved.transaction_ref.startswith("STUB")
    assert (await always.refund("X")).approved

    assert not (await never.authorize(Decimal("10"), "CARD")).approved
    assert not (await never.refund("X")).approved
