"""
Catalogue produits et paliers de prix.

Un produit appartient à un fournisseur (User role SUPPLIER). Le stock est
modifié ici (réassort) ou décrémenté par le fulfilment (services.inventory).
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from petalhub.app.db.models.models_v1 import Product, PricingTier, OrderItem, ConsolidatedOrderItem
from petalhub.app.db.models.core_types import Role
from petalhub.app.db.session import transaction
from petalhub.services.errors import InvalidArgument, InvalidState, NotFound
from petalhub.services.pricing import validate_tier
from petalhub.services.users import require_role

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


def _base_price(value) -> Decimal:
    if isinstance(value, (bool, float)) or not isinstance(value, (Decimal, int, str)):
        raise InvalidArgument(f"base_price must be a decimal, got {value!r}")
    try:
        price = Decimal(value)
    except ArithmeticError as exc:
        raise InvalidArgument(f"base_price is not a valid decimal: {value!r}") from exc
    if not price.is_finite() or price < 0:
        raise InvalidArgument("base_price must be >= 0")
    if price != price.quantize(CENT):
        raise InvalidArgument("base_price has more than 2 decimal places")
    return price


def _stock(value) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise InvalidArgument(f"stock must be an integer >= 0, got {value!r}")
    return value


def _ensure_sku_free(db: Session, sku: str, product_id: int | None = None) -> None:
    existing = db.execute(select(Product).where(Product.sku == sku)).scalar_one_or_none()
    if existing and existing.id != product_id:
        raise InvalidArgument("SKU already exists")


def _load(db: Session, product_id: int) -> Product:
    product = (
        db.execute(
            select(Product)
            .where(Product.id == product_id)
            .options(selectinload(Product.pricing_tiers), selectinload(Product.supplier))
        )
        .scalars()
        .first()
    )
    if not product:
        raise NotFound("Product not found")
    return product


def create_product(
    db: Session,
    *,
    sku: str,
    name: str,
    base_price,
    stock: int,
    supplier_id: int,
) -> Product:
    sku = (sku or "").strip()
    if not sku:
        raise InvalidArgument("SKU is required")
    if not (name or "").strip():
        raise InvalidArgument("Name is required")
    price = _base_price(base_price)
    stock = _stock(stock)

    with transaction(db):
        require_role(db, supplier_id, Role.supplier, "Supplier")
        _ensure_sku_free(db, sku)

        product = Product(
            sku=sku,
            name=name.strip(),
            base_price=price,
            stock=stock,
            supplier_id=supplier_id,
        )
        db.add(product)
        db.flush()

    logger.info("product created: id=%s sku=%s supplier_id=%s", product.id, product.sku, supplier_id)
    return product


def list_products(db: Session) -> list[Product]:
    with transaction(db):
        rows = (
            db.execute(
                select(Product)
                .options(selectinload(Product.pricing_tiers), selectinload(Product.supplier))
                .order_by(Product.name, Product.id)
            )
            .scalars()
            .all()
        )
    return list(rows)


def get_product(db: Session, product_id: int) -> Product:
    with transaction(db):
        return _load(db, product_id)


def update_product(
    db: Session,
    product_id: int,
    *,
    sku: str | None = None,
    name: str | None = None,
    base_price=None,
    stock: int | None = None,
) -> Product:
    """
    Mise à jour partielle. Les lignes de commande déjà écrites gardent leur
    prix unitaire (snapshot) : changer base_price n'a aucun effet rétroactif.
    """
    with transaction(db):
        product = _load(db, product_id)

        if sku is not None:
            sku = sku.strip()
            if not sku:
                raise InvalidArgument("SKU is required")
            _ensure_sku_free(db, sku, product_id=product.id)
            product.sku = sku
        if name is not None:
            if not name.strip():
                raise InvalidArgument("Name is required")
            product.name = name.strip()
        if base_price is not None:
            product.base_price = _base_price(base_price)
        if stock is not None:
            product.stock = _stock(stock)
        db.flush()

    logger.info("product updated: id=%s", product.id)
    return product


def remove_product(db: Session, product_id: int) -> None:
    with transaction(db):
        product = _load(db, product_id)

        used = db.execute(select(OrderItem.id).where(OrderItem.product_id == product_id).limit(1)).first()
        if used is None:
            used = db.execute(
                select(ConsolidatedOrderItem.id).where(ConsolidatedOrderItem.product_id == product_id).limit(1)
            ).first()
        if used is not None:
            raise InvalidState("Cannot delete product with existing order items")

        db.delete(product)

    logger.info("product removed: id=%s", product_id)


def set_pricing_tiers(db: Session, product_id: int, tiers: Iterable[tuple[int, object]]) -> Product:
    """
    Remplace l'ensemble des paliers (min_qty, percent_off) du produit.
    Deux paliers au même min_qty sont refusés ici ; price_line reste
    déterministe si la base en contient malgré tout.
    """
    validated = [validate_tier(min_qty, pct) for min_qty, pct in tiers]
    thresholds = [min_qty for min_qty, _ in validated]
    if len(thresholds) != len(set(thresholds)):
        raise InvalidArgument("Duplicate min_qty in pricing tiers")

    with transaction(db):
        product = _load(db, product_id)
        product.pricing_tiers.clear()
        db.flush()
        for min_qty, pct in sorted(validated):
            product.pricing_tiers.append(PricingTier(min_qty=min_qty, percent_off=pct))
        db.flush()

    logger.info("pricing tiers replaced: product_id=%s tiers=%s", product_id, thresholds)
    return product
