"""Domain error hierarchy.

Each error carries the HTTP status and envelope code it maps to so the
application-level exception handler can render it without a lookup table.
"""

from __future__ import annotations

from typing import Any


class DomainError(Exception):
    """Base class for failures raised by the service layer."""

    status_code = 400
    code = "DOMAIN_ERROR"

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class NotFoundError(DomainError):
    """Referenced row does not exist or is soft-deleted."""

    status_code = 404
    code = "NOT_FOUND"


class ConflictError(DomainError):
    """A precondition of the requested operation does not hold."""

    status_code = 409
    code = "CONFLICT"


class InvalidStateError(DomainError):
    """Illegal state-machine edge."""

    status_code = 400
    code = "INVALID_STATE"


class ExternalServiceError(DomainError):
    """The payment gateway declined or failed."""

    status_code = 502
    code = "EXTERNAL_SERVICE"


class PaymentDeclinedError(ExternalServiceError):
    status_code = 402
    code = "PAYMENT_DECLINED"


__all__ = [
    "ConflictError",
    "DomainError",
    "ExternalServiceError",
    "InvalidStateError",
    "NotFoundError",
    "PaymentDeclinedError",
]
