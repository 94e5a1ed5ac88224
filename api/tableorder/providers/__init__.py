"""Payment gateway implementations and the factory choosing between them."""

from __future__ import annotations

from config import GatewayKind, get_settings

from .base import GatewayResult, PaymentGateway
from .http_gateway import HttpGateway
from .stub_gateway import StubGateway


def get_gateway() -> PaymentGateway:
    """Return the gateway selected by ``payment_gateway`` in settings."""
    settings = get_settings()
    if settings.payment_gateway == GatewayKind.HTTP:
        if not settings.gateway_url:
            raise RuntimeError("payment_gateway=http requires gateway_url")
        return HttpGateway(settings.gateway_url, timeout=settings.gateway_timeout_secs)
    return StubGateway(settings.gateway_approval_rate, settings.gateway_refund_rate)


__all__ = ["GatewayResult", "HttpGateway", "PaymentGateway", "StubGateway", "get_gateway"]
