from __future__ import annotations

import logging
from typing import Iterable

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from petalhub.app.db.models.models_v1 import Product, OrderItem
from petalhub.services.errors import InsufficientStock

logger = logging.getLogger(__name__)


def lock_products(db: Session, product_ids: Iterable[int]) -> dict[int, Product]:
    """
    Verrouille (FOR UPDATE) les lignes produit touchées et retourne un
    snapshot {product_id: Product} rafraîchi depuis la base.

    Ordre de verrouillage déterministe (id croissant) pour éviter les
    deadlocks entre deux fulfilments concurrents.
    """
    product_ids = sorted({int(pid) for pid in product_ids if pid is not None})
    if not product_ids:
        return {}

    rows = (
        db.execute(
            select(Product)
            .where(Product.id.in_(product_ids))
            .order_by(Product.id.asc())
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        .scalars()
        .all()
    )
    return {int(p.id): p for p in rows}


def check_stock(lines: Iterable[OrderItem], snapshot: dict[int, Product]) -> None:
    """
    Valide toutes les lignes contre un même snapshot, avant toute écriture.
    Lève InsufficientStock sur le premier produit en défaut (ordre des lignes).
    """
    for line in lines:
        product = snapshot[int(line.product_id)]
        if product.stock < line.qty:
            raise InsufficientStock(
                product_id=int(product.id),
                product_name=product.name,
                available=int(product.stock),
                required=int(line.qty),
            )


def decrement_stock(db: Session, *, product_id: int, qty: int) -> None:
    """
    Décrément gardé : UPDATE ... WHERE stock >= qty.

    Si une autre transaction a consommé le stock entre-temps, aucune ligne
    n'est modifiée et on lève InsufficientStock (la transaction appelante
    rollback l'ensemble).
    """
    result = db.execute(
        update(Product)
        .where(Product.id == product_id)
        .where(Product.stock >= qty)
        .values(stock=Product.stock - qty)
    )
    if result.rowcount != 1:
        product = db.execute(
            select(Product).where(Product.id == product_id).execution_options(populate_existing=True)
        ).scalar_one()
        raise InsufficientStock(
            product_id=int(product.id),
            product_name=product.name,
            available=int(product.stock),
            required=int(qty),
        )
    logger.info("stock decremented: product_id=%s qty=%s", product_id, qty)
