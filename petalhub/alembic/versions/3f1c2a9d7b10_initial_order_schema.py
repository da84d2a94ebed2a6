"""initial order schema

Revision ID: 3f1c2a9d7b10
Revises:
Create Date: 2026-10-19
"""

from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "3f1c2a9d7b10"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ROLE = sa.Enum("CUSTOMER", "EMPLOYEE", "SUPPLIER", name="role")
ORDER_STATUS = sa.Enum(
    "DRAFT",
    "PENDING_VALIDATION",
    "VALIDATED",
    "COMPLETED",
    "DECLINED",
    name="order_status",
)

PK = sa.BigInteger().with_variant(sa.Integer(), "sqlite")


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", PK, primary_key=True),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("role", ROLE, nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "products",
        sa.Column("id", PK, primary_key=True),
        sa.Column("sku", sa.String(64), nullable=False, unique=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("base_price", sa.Numeric(14, 2), nullable=False),
        sa.Column("stock", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("supplier_id", sa.BigInteger(), sa.ForeignKey("users.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("stock >= 0", name="ck_product_stock_nonneg"),
        sa.CheckConstraint("base_price >= 0", name="ck_product_base_price_nonneg"),
    )
    op.create_index("ix_products_supplier_id", "products", ["supplier_id"])

    op.create_table(
        "pricing_tiers",
        sa.Column("id", PK, primary_key=True),
        sa.Column("product_id", sa.BigInteger(), sa.ForeignKey("products.id", ondelete="CASCADE"), nullable=False),
        sa.Column("min_qty", sa.Integer(), nullable=False),
        sa.Column("percent_off", sa.Numeric(5, 2), nullable=False),
        sa.CheckConstraint("min_qty >= 1", name="ck_pricing_tier_min_qty_pos"),
        sa.CheckConstraint("percent_off >= 0 AND percent_off <= 100", name="ck_pricing_tier_percent_0_100"),
    )
    op.create_index("ix_pricing_tiers_product_id", "pricing_tiers", ["product_id"])

    op.create_table(
        "orders",
        sa.Column("id", PK, primary_key=True),
        sa.Column("customer_id", sa.BigInteger(), sa.ForeignKey("users.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("status", ORDER_STATUS, nullable=False),
        sa.Column("currency", sa.String(3), nullable=False),
        sa.Column("subtotal", sa.Numeric(20, 6), nullable=False),
        sa.Column("discount", sa.Numeric(20, 6), nullable=False),
        sa.Column("total", sa.Numeric(20, 6), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("consolidated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_orders_customer_id", "orders", ["customer_id"])
    op.create_index("ix_orders_status_consolidated", "orders", ["status", "consolidated_at"])

    op.create_table(
        "order_items",
        sa.Column("id", PK, primary_key=True),
        sa.Column("order_id", sa.BigInteger(), sa.ForeignKey("orders.id", ondelete="CASCADE"), nullable=False),
        sa.Column("product_id", sa.BigInteger(), sa.ForeignKey("products.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("qty", sa.Integer(), nullable=False),
        sa.Column("unit_price", sa.Numeric(20, 6), nullable=False),
        sa.Column("line_total", sa.Numeric(20, 6), nullable=False),
        sa.UniqueConstraint("order_id", "product_id", name="uq_order_item_product"),
        sa.CheckConstraint("qty > 0", name="ck_order_item_qty_pos"),
        sa.CheckConstraint("unit_price >= 0", name="ck_order_item_unit_price_nonneg"),
    )
    op.create_index("ix_order_items_order_id", "order_items", ["order_id"])

    op.create_table(
        "consolidated_orders",
        sa.Column("id", PK, primary_key=True),
        sa.Column("supplier_id", sa.BigInteger(), sa.ForeignKey("users.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_consolidated_orders_supplier_id", "consolidated_orders", ["supplier_id"])

    op.create_table(
        "consolidated_order_items",
        sa.Column("id", PK, primary_key=True),
        sa.Column(
            "consolidated_order_id",
            sa.BigInteger(),
            sa.ForeignKey("consolidated_orders.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("product_id", sa.BigInteger(), sa.ForeignKey("products.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("total_qty", sa.Integer(), nullable=False),
        sa.Column("unit_price", sa.Numeric(20, 6), nullable=False),
        sa.Column("line_total", sa.Numeric(20, 6), nullable=False),
        sa.UniqueConstraint("consolidated_order_id", "product_id", name="uq_consolidated_item_product"),
        sa.CheckConstraint("total_qty > 0", name="ck_consolidated_item_qty_pos"),
    )
    op.create_index(
        "ix_consolidated_order_items_consolidated_order_id",
        "consolidated_order_items",
        ["consolidated_order_id"],
    )


def downgrade() -> None:
    op.drop_table("consolidated_order_items")
    op.drop_table("consolidated_orders")
    op.drop_table("order_items")
    op.drop_table("orders")
    op.drop_table("pricing_tiers")
    op.drop_table("products")
    op.drop_table("users")
    ORDER_STATUS.drop(op.get_bind(), checkfirst=True)
    ROLE.drop(op.get_bind(), checkfirst=True)
