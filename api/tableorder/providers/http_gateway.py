"""Gateway that forwards authorisations and refunds to a remote processor."""

from __future__ import annotations

import logging
from decimal import Decimal

import httpx

from ..domain.errors import ExternalServiceError
from .base import GatewayResult

logger = logging.getLogger("tableorder.gateway")


class HttpGateway:
    """JSON-over-HTTP client for the processor.

    ``POST {base_url}/authorize`` with ``{"amount", "method"}`` and
    ``POST {base_url}/refund`` with ``{"transaction_ref"}``; both answer with
    ``{"approved", "transaction_ref", "reason"}``.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 5.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    async def _post(self, path: str, payload: dict) -> GatewayResult:
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url, timeout=self.timeout, transport=self._transport
            ) as client:
                resp = await client.post(path, json=payload)
                resp.raise_for_status()
                data = resp.json()
        except httpx.HTTPError as exc:
            logger.warning("gateway %s failed: %s", path, exc)
            raise ExternalServiceError(
                "payment gateway unavailable", {"endpoint": path}
            ) from exc
        except ValueError as exc:
            raise ExternalServiceError(
                "payment gateway returned malformed response", {"endpoint": path}
            ) from exc
        # "approved" must be a JSON boolean; "false" or 1 is not a verdict
        if not isinstance(data, dict) or not isinstance(data.get("approved"), bool):
            logger.warning("gateway %s returned malformed body: %r", path, data)
            raise ExternalServiceError(
                "payment gateway returned malformed response", {"endpoint": path}
            )
        return GatewayResult(
            approved=data["approved"],
            transaction_ref=data.get("transaction_ref"),
            reason=data.get("reason"),
        )

    async def authorize(self, amount: Decimal, method: str) -> GatewayResult:
        return await self._post("/authorize", {"amount": str(amount), "method": method})

    async def refund(self, transaction_ref: str) -> GatewayResult:
        return await self._post("/refund", {"transaction_ref": transaction_ref})
