"""Payment states and methods."""

from __future__ import annotations

from enum import Enum


class PaymentStatus(str, Enum):
    """Outcome of a payment attempt."""

    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    REFUNDED = "REFUNDED"


class PaymentMethod(str, Enum):
    """Supported settlement methods.

    ``CARD`` is authorised through the gateway; ``CASH`` is taken at the
    counter and completes immediately.
    """

    CARD = "CARD"
    CASH = "CASH"
