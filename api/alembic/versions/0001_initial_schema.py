"""initial schema: tables, catalog, carts, orders, payments, admins

Revision ID: 0001_initial_schema
Revises: None
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa


revision: str = "0001_initial_schema"
down_revision: str | None = None
branch_labels: tuple[str, ...] | None = None
depends_on: tuple[str, ...] | None = None


def _audit() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    ]


def _money(name: str, **kwargs) -> sa.Column:
    return sa.Column(name, sa.Numeric(10, 2), **kwargs)


def upgrade() -> None:
    op.create_table(
        "tables",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("table_number", sa.String(20), nullable=False, unique=True),
        sa.Column("seat_count", sa.Integer(), nullable=False),
        sa.Column("qr_code", sa.String(100), nullable=False, unique=True),
        sa.Column("location_description", sa.String(200), nullable=True),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        *_audit(),
        sa.CheckConstraint("seat_count >= 1", name="ck_tables_seats"),
    )
    op.create_table(
        "categories",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(50), nullable=False),
        sa.Column("description", sa.String(200), nullable=True),
        sa.Column("display_order", sa.Integer(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        *_audit(),
    )
    op.create_table(
        "menus",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("category_id", sa.Integer(), sa.ForeignKey("categories.id"), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        _money("price", nullable=False),
        sa.Column("image_url", sa.String(500), nullable=True),
        sa.Column("is_available", sa.Boolean(), nullable=False),
        *_audit(),
    )
    op.create_table(
        "menu_options",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("menu_id", sa.Integer(), sa.ForeignKey("menus.id"), nullable=False),
        sa.Column("name", sa.String(50), nullable=False),
        sa.Column("description", sa.String(200), nullable=True),
        _money("additional_price", nullable=False),
        sa.Column("is_required", sa.Boolean(), nullable=False),
        sa.Column("max_selections", sa.Integer(), nullable=False),
        sa.Column("is_available", sa.Boolean(), nullable=False),
        *_audit(),
    )
    op.create_table(
        "carts",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("table_id", sa.Integer(), sa.ForeignKey("tables.id"), nullable=False, unique=True),
        *_audit(),
    )
    op.create_table(
        "cart_items",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("cart_id", sa.Integer(), sa.ForeignKey("carts.id"), nullable=False),
        sa.Column("menu_id", sa.Integer(), sa.ForeignKey("menus.id"), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        _money("unit_price", nullable=False),
        _money("subtotal", nullable=False),
        sa.Column("notes", sa.String(200), nullable=True),
        *_audit(),
        sa.UniqueConstraint("cart_id", "menu_id", name="uq_cart_items_cart_menu"),
    )
    op.create_table(
        "orders",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("table_id", sa.Integer(), sa.ForeignKey("tables.id"), nullable=False),
        _money("total_amount", nullable=False),
        sa.Column("used_points", sa.Integer(), nullable=False),
        _money("payment_amount", nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False),
        *_audit(),
    )
    op.create_index("ix_orders_table_id", "orders", ["table_id"])
    op.create_table(
        "order_items",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("order_id", sa.Integer(), sa.ForeignKey("orders.id"), nullable=False),
        sa.Column("menu_id", sa.Integer(), sa.ForeignKey("menus.id"), nullable=False),
        sa.Column("menu_name", sa.String(100), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        _money("unit_price", nullable=False),
        _money("subtotal", nullable=False),
        sa.Column("notes", sa.String(200), nullable=True),
        *_audit(),
    )
    op.create_table(
        "payments",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("order_id", sa.Integer(), sa.ForeignKey("orders.id"), nullable=False, unique=True),
        sa.Column("payment_method", sa.String(20), nullable=False),
        _money("amount", nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("transaction_id", sa.String(100), nullable=True),
        sa.Column("gateway_ref", sa.String(100), nullable=True),
        sa.Column("payment_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("failure_reason", sa.String(500), nullable=True),
        *_audit(),
    )
    op.create_table(
        "admin_users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("email", sa.String(100), nullable=False, unique=True),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("name", sa.String(50), nullable=False),
        sa.Column("role", sa.String(20), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        *_audit(),
    )


def downgrade() -> None:
    for name in (
        "admin_users",
        "payments",
        "order_items",
        "orders",
        "cart_items",
        "carts",
        "menu_options",
        "menus",
        "categories",
        "tables",
    ):
        if name == "orders":
            op.drop_index("ix_orders_table_id", table_name="orders")
        op.drop_table(name)
