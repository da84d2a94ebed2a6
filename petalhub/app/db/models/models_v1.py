from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import (
    String,
    Integer,
    BigInteger,
    DateTime,
    Boolean,
    ForeignKey,
    Numeric,
    Enum,
    UniqueConstraint,
    Index,
    CheckConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from petalhub.app.db.base import Base
from petalhub.app.db.models.core_types import Role, OrderStatus

# SQLite only autoincrements INTEGER PRIMARY KEY
BigIntPK = BigInteger().with_variant(Integer, "sqlite")

# Unit prices and totals keep full precision, rounding is a presentation concern
Money = Numeric(20, 6)
CatalogPrice = Numeric(14, 2)
Percent = Numeric(5, 2)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _enum(enum_cls, name: str) -> Enum:
    return Enum(enum_cls, name=name, values_callable=lambda members: [m.value for m in members])


# ---------- DIRECTORY ----------
class User(Base):
    __tablename__ = "users"
    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    role: Mapped[Role] = mapped_column(_enum(Role, "role"), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        nullable=False,
    )


# ---------- CATALOGUE ----------
class Product(Base):
    __tablename__ = "products"
    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    sku: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    base_price: Mapped[Decimal] = mapped_column(CatalogPrice, nullable=False)
    stock: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    supplier_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="RESTRICT"), nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        nullable=False,
    )

    supplier: Mapped[User] = relationship()
    pricing_tiers: Mapped[list["PricingTier"]] = relationship(
        back_populates="product",
        cascade="all, delete-orphan",
        order_by="PricingTier.min_qty",
    )

    __table_args__ = (
        CheckConstraint("stock >= 0", name="ck_product_stock_nonneg"),
        CheckConstraint("base_price >= 0", name="ck_product_base_price_nonneg"),
    )


class PricingTier(Base):
    __tablename__ = "pricing_tiers"
    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    product_id: Mapped[int] = mapped_column(
        ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    min_qty: Mapped[int] = mapped_column(Integer, nullable=False)
    percent_off: Mapped[Decimal] = mapped_column(Percent, nullable=False)

    product: Mapped[Product] = relationship(back_populates="pricing_tiers")

    __table_args__ = (
        CheckConstraint("min_qty >= 1", name="ck_pricing_tier_min_qty_pos"),
        CheckConstraint("percent_off >= 0 AND percent_off <= 100", name="ck_pricing_tier_percent_0_100"),
    )


# ---------- ORDERS ----------
class Order(Base):
    __tablename__ = "orders"
    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    customer_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="RESTRICT"), nullable=False, index=True)
    status: Mapped[OrderStatus] = mapped_column(
        _enum(OrderStatus, "order_status"),
        default=OrderStatus.draft,
        nullable=False,
    )
    currency: Mapped[str] = mapped_column(String(3), default="USD", nullable=False)

    subtotal: Mapped[Decimal] = mapped_column(Money, default=Decimal("0"), nullable=False)
    discount: Mapped[Decimal] = mapped_column(Money, default=Decimal("0"), nullable=False)
    total: Mapped[Decimal] = mapped_column(Money, default=Decimal("0"), nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    consolidated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    customer: Mapped[User] = relationship()
    items: Mapped[list["OrderItem"]] = relationship(
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.id",
    )

    __table_args__ = (Index("ix_orders_status_consolidated", "status", "consolidated_at"),)


class OrderItem(Base):
    __tablename__ = "order_items"
    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    order_id: Mapped[int] = mapped_column(ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id: Mapped[int] = mapped_column(ForeignKey("products.id", ondelete="RESTRICT"), nullable=False)
    qty: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(Money, nullable=False)
    line_total: Mapped[Decimal] = mapped_column(Money, nullable=False)

    order: Mapped[Order] = relationship(back_populates="items")
    product: Mapped[Product] = relationship()

    __table_args__ = (
        UniqueConstraint("order_id", "product_id", name="uq_order_item_product"),
        CheckConstraint("qty > 0", name="ck_order_item_qty_pos"),
        CheckConstraint("unit_price >= 0", name="ck_order_item_unit_price_nonneg"),
    )


# ---------- CONSOLIDATION ----------
class ConsolidatedOrder(Base):
    __tablename__ = "consolidated_orders"
    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    supplier_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="RESTRICT"), nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    supplier: Mapped[User] = relationship()
    items: Mapped[list["ConsolidatedOrderItem"]] = relationship(
        back_populates="consolidated_order",
        cascade="all, delete-orphan",
        order_by="ConsolidatedOrderItem.id",
    )


class ConsolidatedOrderItem(Base):
    __tablename__ = "consolidated_order_items"
    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    consolidated_order_id: Mapped[int] = mapped_column(
        ForeignKey("consolidated_orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    product_id: Mapped[int] = mapped_column(ForeignKey("products.id", ondelete="RESTRICT"), nullable=False)
    total_qty: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(Money, nullable=False)
    line_total: Mapped[Decimal] = mapped_column(Money, nullable=False)

    consolidated_order: Mapped[ConsolidatedOrder] = relationship(back_populates="items")
    product: Mapped[Product] = relationship()

    __table_args__ = (
        UniqueConstraint("consolidated_order_id", "product_id", name="uq_consolidated_item_product"),
        CheckConstraint("total_qty > 0", name="ck_consolidated_item_qty_pos"),
    )
