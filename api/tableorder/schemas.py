# schemas.py

"""Pydantic models for API payloads and responses.

Money fields are ``Decimal`` and serialise as strings so amounts survive the
round trip without float drift.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from .domain import OrderStatus, PaymentMethod, PaymentStatus, TableStatus

Money = Decimal


class ORMModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


# Tables


class TableIn(BaseModel):
    """Input schema for creating a table."""

    table_number: str = Field(..., min_length=1, max_length=20)
    seat_count: int = Field(..., ge=1)
    location_description: Optional[str] = Field(None, max_length=200)


class TableUpdate(BaseModel):
    table_number: Optional[str] = Field(None, min_length=1, max_length=20)
    seat_count: Optional[int] = Field(None, ge=1)
    location_description: Optional[str] = Field(None, max_length=200)


class TableStatusIn(BaseModel):
    status: TableStatus


class Table(ORMModel):
    """Table representation returned from the API."""

    id: int
    table_number: str
    seat_count: int
    qr_code: str
    location_description: Optional[str] = None
    status: TableStatus
    is_active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ScanResult(BaseModel):
    """What a guest sees after scanning a table QR code."""

    table_id: int
    table_number: str
    seat_count: int
    location_description: Optional[str] = None
    status: TableStatus
    has_active_cart: bool = False


class TableStats(BaseModel):
    total: int
    available: int
    occupied: int
    maintenance: int


# Catalog


class CategoryIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=50)
    description: Optional[str] = Field(None, max_length=200)
    display_order: int = 0


class Category(ORMModel):
    id: int
    name: str
    description: Optional[str] = None
    display_order: int


class MenuOptionIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=50)
    description: Optional[str] = Field(None, max_length=200)
    additional_price: Money = Field(Decimal("0"), ge=0, max_digits=10, decimal_places=2)
    is_required: bool = False
    max_selections: int = Field(1, ge=1)


class MenuOption(ORMModel):
    id: int
    menu_id: int
    name: str
    description: Optional[str] = None
    additional_price: Money
    is_required: bool
    max_selections: int
    is_available: bool


class MenuIn(BaseModel):
    """Input schema for creating a menu."""

    category_id: int
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    price: Money = Field(..., gt=0, max_digits=10, decimal_places=2)
    image_url: Optional[str] = Field(None, max_length=500)
    is_available: bool = True


class MenuUpdate(BaseModel):
    category_id: Optional[int] = None
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    price: Optional[Money] = Field(None, gt=0, max_digits=10, decimal_places=2)
    image_url: Optional[str] = Field(None, max_length=500)
    is_available: Optional[bool] = None


class AvailabilityIn(BaseModel):
    is_available: bool


class Menu(ORMModel):
    """Menu with its category name and catalog options."""

    id: int
    category_id: int
    category_name: Optional[str] = None
    name: str
    description: Optional[str] = None
    price: Money
    image_url: Optional[str] = None
    is_available: bool
    options: list[MenuOption] = []

    @classmethod
    def of(cls, menu) -> "Menu":
        out = cls.model_validate(menu)
        out.category_name = menu.category.name if menu.category else None
        return out


class CategoryCount(BaseModel):
    category_id: int
    count: int


# Cart


class CartItemIn(BaseModel):
    menu_id: int
    # Range is enforced by the cart itself and reported as a conflict.
    quantity: int = 1
    notes: Optional[str] = Field(None, max_length=200)


class CartQuantityIn(BaseModel):
    quantity: int


class CartItem(ORMModel):
    id: int
    menu_id: int
    menu_name: str
    quantity: int
    unit_price: Money
    subtotal: Money
    notes: Optional[str] = None

    @classmethod
    def of(cls, item) -> "CartItem":
        return cls(
            id=item.id,
            menu_id=item.menu_id,
            menu_name=item.menu.name,
            quantity=item.quantity,
            unit_price=item.unit_price,
            subtotal=item.subtotal,
            notes=item.notes,
        )


class Cart(BaseModel):
    cart_id: Optional[int] = None
    table_id: int
    items: list[CartItem] = []
    total_amount: Money = Decimal("0.00")
    item_count: int = 0

    @classmethod
    def of(cls, table_id: int, cart=None) -> "Cart":
        if cart is None:
            return cls(table_id=table_id)
        return cls(
            cart_id=cart.id,
            table_id=table_id,
            items=[CartItem.of(i) for i in cart.items],
            total_amount=cart.total,
            item_count=cart.item_count,
        )


class CartTotal(BaseModel):
    table_id: int
    total_amount: Money


# Orders


class OrderIn(BaseModel):
    notes: Optional[str] = Field(None, max_length=500)


class OrderStatusIn(BaseModel):
    status: OrderStatus


class CancelIn(BaseModel):
    reason: Optional[str] = Field(None, max_length=200)


class OrderItem(ORMModel):
    id: int
    menu_id: int
    menu_name: str
    quantity: int
    unit_price: Money
    subtotal: Money
    notes: Optional[str] = None


class Order(ORMModel):
    """Order representation returned from the API."""

    id: int
    table_id: int
    table_number: Optional[str] = None
    items: list[OrderItem] = []
    total_amount: Money
    used_points: int
    payment_amount: Money
    status: OrderStatus
    notes: Optional[str] = None
    version: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def of(cls, order) -> "Order":
        out = cls.model_validate(order)
        out.table_number = order.table.table_number if order.table else None
        return out


class OrderStats(BaseModel):
    total_orders: int
    completed_orders: int
    revenue: Money


# Payments


class PaymentIn(BaseModel):
    order_id: int
    amount: Money = Field(..., ge=0, max_digits=12, decimal_places=2)


class RefundIn(BaseModel):
    reason: str = Field(..., min_length=1, max_length=200)


class Payment(ORMModel):
    id: int
    order_id: int
    payment_method: PaymentMethod
    amount: Money
    status: PaymentStatus
    transaction_id: Optional[str] = None
    payment_time: Optional[datetime] = None
    failure_reason: Optional[str] = None
    created_at: Optional[datetime] = None


class MethodStats(BaseModel):
    count: int
    amount: Money


class PaymentStats(BaseModel):
    count: int
    total_amount: Money
    by_method: dict[str, MethodStats] = {}


# Auth


class LoginIn(BaseModel):
    email: EmailStr
    password: str


class RefreshIn(BaseModel):
    refresh_token: str


class RegisterIn(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=8)
    name: str = Field(..., min_length=1, max_length=50)
    role: str = "MANAGER"


class Admin(ORMModel):
    id: int
    email: str
    name: str
    role: str
    is_active: bool
    created_at: Optional[datetime] = None


class TokenPair(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    role: str
