"""Stub gateway used for development: approves at random, never leaves the process."""

from __future__ import annotations

import logging
import random
from decimal import Decimal

from .base import GatewayResult

logger = logging.getLogger("tableorder.gateway")


class StubGateway:
    def __init__(
        self,
        approval_rate: float = 0.95,
        refund_rate: float = 0.98,
        rng: random.Random | None = None,
    ) -> None:
        self.approval_rate = approval_rate
        self.refund_rate = refund_rate
        self._rng = rng or random.Random()

    async def authorize(self, amount: Decimal, method: str) -> GatewayResult:
        approved = self._rng.random() < self.approval_rate
        logger.info("stub authorize amount=%s method=%s approved=%s", amount, method, approved)
        if approved:
            return GatewayResult(approved=True, transaction_ref=f"STUB{self._rng.getrandbits(32):08X}")
        return GatewayResult(approved=False, reason="card declined by issuer")

    async def refund(self, transaction_ref: str) -> GatewayResult:
        approved = self._rng.random() < self.refund_rate
        logger.info("stub refund ref=%s approved=%s", transaction_ref, approved)
        if approved:
            return GatewayResult(approved=True, transaction_ref=transaction_ref)
        return GatewayResult(approved=False, reason="refund rejected by processor")
