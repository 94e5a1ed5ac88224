"""Domain enums, transition rules and errors."""

from .errors import (
    ConflictError,
    DomainError,
    ExternalServiceError,
    InvalidStateError,
    NotFoundError,
    PaymentDeclinedError,
)
from .order_status import ACTIVE_STATUSES, TRANSITIONS, OrderStatus, can_transition
from .payment_status import PaymentMethod, PaymentStatus
from .table_status import TableStatus

__all__ = [
    "ACTIVE_STATUSES",
    "ConflictError",
    "DomainError",
    "ExternalServiceError",
    "InvalidStateError",
    "NotFoundError",
    "OrderStatus",
    "PaymentDeclinedError",
    "PaymentMethod",
    "PaymentStatus",
    "TRANSITIONS",
    "TableStatus",
    "can_transition",
]
