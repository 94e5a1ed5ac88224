"""Base interface for payment gateways."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional, Protocol


@dataclass(frozen=True)
class GatewayResult:
    """Outcome of an authorisation or refund call.

    Attributes:
        approved: Whether the gateway accepted the request.
        transaction_ref: Gateway-side reference, when one was issued.
        reason: Human readable decline reason.
    """

    approved: bool
    transaction_ref: Optional[str] = None
    reason: Optional[str] = None


class PaymentGateway(Protocol):
    """Boundary to the card processor.

    Implementations raise :class:`~api.tableorder.domain.errors.ExternalServiceError`
    when the processor cannot be reached; a decline is a normal
    ``GatewayResult`` with ``approved=False``.
    """

    async def authorize(self, amount: Decimal, method: str) -> GatewayResult:
        ...

    async def refund(self, transaction_ref: str) -> GatewayResult:
        ...
