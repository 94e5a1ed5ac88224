"""Database models for tables, catalog, carts, orders and payments.

Each model carries the state rules that only concern its own row (a table
occupying itself, a cart merging lines, an order checking a transition).
Anything that touches more than one aggregate lives in ``services``.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import declarative_base, relationship

from .domain import (
    ConflictError,
    InvalidStateError,
    NotFoundError,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    TableStatus,
    can_transition,
)

Base = declarative_base()

ZERO = Decimal("0.00")


def _enum(enum_cls) -> Enum:
    return Enum(enum_cls, native_enum=False, length=20, validate_strings=True)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TimestampMixin:
    """``created_at``/``updated_at`` audit columns."""

    created_at = Column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now()
    )
    updated_at = Column(
        DateTime(timezone=True),
        default=_utcnow,
        server_default=func.now(),
        onupdate=_utcnow,
    )

    # Fetch server-generated columns during flush; async sessions cannot
    # lazy-load them afterwards.
    __mapper_args__ = {"eager_defaults": True}


class CafeTable(TimestampMixin, Base):
    """A physical table identified by its QR code."""

    __tablename__ = "tables"
    __table_args__ = (CheckConstraint("seat_count >= 1", name="ck_tables_seats"),)

    id = Column(Integer, primary_key=True)
    table_number = Column(String(20), unique=True, nullable=False)
    seat_count = Column(Integer, nullable=False)
    qr_code = Column(String(100), unique=True, nullable=False)
    location_description = Column(String(200), nullable=True)
    status = Column(_enum(TableStatus), nullable=False, default=TableStatus.AVAILABLE)
    is_active = Column(Boolean, nullable=False, default=True)

    def occupy(self) -> None:
        if self.status != TableStatus.AVAILABLE:
            raise InvalidStateError(
                f"table {self.table_number} is {self.status.value}, not AVAILABLE",
                {"table_id": self.id, "status": self.status.value},
            )
        self.status = TableStatus.OCCUPIED

    def make_available(self) -> None:
        self.status = TableStatus.AVAILABLE

    def set_maintenance(self) -> None:
        self.status = TableStatus.MAINTENANCE

    @property
    def is_occupied(self) -> bool:
        return self.status == TableStatus.OCCUPIED


class Category(TimestampMixin, Base):
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True)
    name = Column(String(50), nullable=False)
    description = Column(String(200), nullable=True)
    display_order = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)


class Menu(TimestampMixin, Base):
    """A sellable item in the catalog."""

    __tablename__ = "menus"

    id = Column(Integer, primary_key=True)
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=False)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Numeric(10, 2), nullable=False)
    image_url = Column(String(500), nullable=True)
    is_available = Column(Boolean, nullable=False, default=True)

    category = relationship("Category", lazy="selectin")
    options = relationship(
        "MenuOption",
        back_populates="menu",
        lazy="selectin",
        cascade="all, delete-orphan",
        order_by="MenuOption.id",
    )


class MenuOption(TimestampMixin, Base):
    """Catalog-only add-on shown next to a menu (size, extra shot, ...)."""

    __tablename__ = "menu_options"

    id = Column(Integer, primary_key=True)
    menu_id = Column(Integer, ForeignKey("menus.id"), nullable=False)
    name = Column(String(50), nullable=False)
    description = Column(String(200), nullable=True)
    additional_price = Column(Numeric(10, 2), nullable=False, default=ZERO)
    is_required = Column(Boolean, nullable=False, default=False)
    max_selections = Column(Integer, nullable=False, default=1)
    is_available = Column(Boolean, nullable=False, default=True)

    menu = relationship("Menu", back_populates="options")


class Cart(TimestampMixin, Base):
    """Pre-order basket owned by exactly one table."""

    __tablename__ = "carts"

    id = Column(Integer, primary_key=True)
    table_id = Column(Integer, ForeignKey("tables.id"), unique=True, nullable=False)

    items = relationship(
        "CartItem",
        back_populates="cart",
        lazy="selectin",
        cascade="all, delete-orphan",
        order_by="CartItem.id",
    )

    def find_item(self, item_id: int) -> "CartItem":
        for item in self.items:
            if item.id == item_id:
                return item
        raise NotFoundError(
            f"cart item {item_id} not found", {"item_id": item_id, "cart_id": self.id}
        )

    def add_item(self, menu: "Menu", quantity: int, notes: str | None = None) -> "CartItem":
        """Merge ``quantity`` into the line for ``menu`` or append a new line."""
        _check_quantity(quantity)
        for item in self.items:
            if item.menu_id == menu.id:
                item.quantity += quantity
                if notes:
                    item.notes = notes
                item.recalculate()
                return item
        item = CartItem(
            menu_id=menu.id,
            menu=menu,
            quantity=quantity,
            unit_price=menu.price,
            notes=notes,
        )
        item.recalculate()
        self.items.append(item)
        return item

    def update_item_quantity(self, item_id: int, quantity: int) -> "CartItem":
        _check_quantity(quantity)
        item = self.find_item(item_id)
        item.quantity = quantity
        item.recalculate()
        return item

    def remove_item(self, item_id: int) -> None:
        self.items.remove(self.find_item(item_id))

    def clear(self) -> None:
        self.items.clear()

    @property
    def total(self) -> Decimal:
        return sum((item.subtotal for item in self.items), ZERO)

    @property
    def item_count(self) -> int:
        return sum(item.quantity for item in self.items)

    @property
    def is_empty(self) -> bool:
        return not self.items


def _check_quantity(quantity: int) -> None:
    if quantity < 1:
        raise ConflictError("quantity must be at least 1", {"quantity": quantity})


class CartItem(TimestampMixin, Base):
    __tablename__ = "cart_items"
    __table_args__ = (
        UniqueConstraint("cart_id", "menu_id", name="uq_cart_items_cart_menu"),
    )

    id = Column(Integer, primary_key=True)
    cart_id = Column(Integer, ForeignKey("carts.id"), nullable=False)
    menu_id = Column(Integer, ForeignKey("menus.id"), nullable=False)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(10, 2), nullable=False)
    subtotal = Column(Numeric(10, 2), nullable=False)
    notes = Column(String(200), nullable=True)

    cart = relationship("Cart", back_populates="items")
    menu = relationship("Menu", lazy="selectin")

    def recalculate(self) -> None:
        self.subtotal = Decimal(self.unit_price) * self.quantity


class Order(TimestampMixin, Base):
    """A placed order: frozen line items plus a mutable status."""

    __tablename__ = "orders"

    id = Column(Integer, primary_key=True)
    table_id = Column(Integer, ForeignKey("tables.id"), nullable=False, index=True)
    total_amount = Column(Numeric(10, 2), nullable=False, default=ZERO)
    used_points = Column(Integer, nullable=False, default=0)
    payment_amount = Column(Numeric(10, 2), nullable=False, default=ZERO)
    status = Column(_enum(OrderStatus), nullable=False, default=OrderStatus.PENDING)
    notes = Column(Text, nullable=True)
    version = Column(Integer, nullable=False)

    items = relationship(
        "OrderItem",
        back_populates="order",
        lazy="selectin",
        cascade="all, delete-orphan",
        order_by="OrderItem.id",
    )
    table = relationship("CafeTable", lazy="selectin")

    __mapper_args__ = {"version_id_col": version, "eager_defaults": True}

    @classmethod
    def from_cart(cls, table_id: int, cart: Cart, notes: str | None = None) -> "Order":
        """Snapshot every cart line into a new PENDING order."""
        order = cls(table_id=table_id, status=OrderStatus.PENDING, notes=notes)
        for line in cart.items:
            order.items.append(
                OrderItem(
                    menu_id=line.menu_id,
                    menu_name=line.menu.name,
                    quantity=line.quantity,
                    unit_price=line.unit_price,
                    subtotal=line.subtotal,
                    notes=line.notes,
                )
            )
        order.recalculate_totals()
        return order

    def recalculate_totals(self) -> None:
        self.total_amount = sum((item.subtotal for item in self.items), ZERO)
        self.used_points = self.used_points or 0
        self.payment_amount = self.total_amount - self.used_points

    def transition_to(self, target: OrderStatus) -> None:
        if not can_transition(self.status, target):
            raise InvalidStateError(
                f"order {self.id} cannot move from {self.status.value} to {target.value}",
                {"order_id": self.id, "from": self.status.value, "to": target.value},
            )
        self.status = target

    def cancel(self, reason: str | None = None) -> None:
        self.transition_to(OrderStatus.CANCELLED)
        if reason:
            suffix = f"[cancel reason: {reason}]"
            self.notes = f"{self.notes} {suffix}" if self.notes else suffix

    def cancel_for_refund(self) -> None:
        """Cancel after a refund, from any stage the order reached.

        The transition table governs guest and kitchen moves only.
        """
        self.status = OrderStatus.CANCELLED


class OrderItem(TimestampMixin, Base):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False)
    menu_id = Column(Integer, ForeignKey("menus.id"), nullable=False)
    menu_name = Column(String(100), nullable=False)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(10, 2), nullable=False)
    subtotal = Column(Numeric(10, 2), nullable=False)
    notes = Column(String(200), nullable=True)

    order = relationship("Order", back_populates="items")


class Payment(TimestampMixin, Base):
    """Single settlement record for an order."""

    __tablename__ = "payments"

    id = Column(Integer, primary_key=True)
    order_id = Column(Integer, ForeignKey("orders.id"), unique=True, nullable=False)
    payment_method = Column(_enum(PaymentMethod), nullable=False)
    amount = Column(Numeric(10, 2), nullable=False)
    status = Column(_enum(PaymentStatus), nullable=False, default=PaymentStatus.PENDING)
    transaction_id = Column(String(100), nullable=True)
    gateway_ref = Column(String(100), nullable=True)
    payment_time = Column(DateTime(timezone=True), nullable=True)
    failure_reason = Column(String(500), nullable=True)

    def restart(self, method: PaymentMethod, amount: Decimal, transaction_id: str) -> None:
        """Reset a failed attempt so the row can be reused for a new one."""
        if self.status != PaymentStatus.FAILED:
            raise ConflictError(
                f"payment {self.id} is {self.status.value}",
                {"payment_id": self.id, "status": self.status.value},
            )
        self.payment_method = method
        self.amount = amount
        self.status = PaymentStatus.PENDING
        self.transaction_id = transaction_id
        self.payment_time = None
        self.failure_reason = None
        self.gateway_ref = None

    def complete(self, gateway_ref: str | None = None) -> None:
        self.status = PaymentStatus.COMPLETED
        self.gateway_ref = gateway_ref
        self.payment_time = datetime.now(timezone.utc)
        self.failure_reason = None

    def fail(self, reason: str) -> None:
        self.status = PaymentStatus.FAILED
        self.failure_reason = reason

    def mark_refunded(self, reason: str) -> None:
        if self.status != PaymentStatus.COMPLETED:
            raise ConflictError(
                f"payment {self.id} is {self.status.value}, not COMPLETED",
                {"payment_id": self.id, "status": self.status.value},
            )
        self.status = PaymentStatus.REFUNDED
        self.failure_reason = f"refund: {reason}"


class AdminUser(TimestampMixin, Base):
    """Back-office account allowed to manage the café."""

    __tablename__ = "admin_users"

    id = Column(Integer, primary_key=True)
    email = Column(String(100), unique=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    name = Column(String(50), nullable=False)
    role = Column(String(20), nullable=False, default="MANAGER")
    is_active = Column(Boolean, nullable=False, default=True)


__all__ = [
    "AdminUser",
    "Base",
    "CafeTable",
    "Cart",
    "CartItem",
    "Category",
    "Menu",
    "MenuOption",
    "Order",
    "OrderItem",
    "Payment",
]
