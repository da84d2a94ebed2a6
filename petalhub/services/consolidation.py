from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal

from sqlalchemy import select, update
from sqlalchemy.orm import Session, selectinload

from petalhub.app.db.models.models_v1 import (
    ConsolidatedOrder,
    ConsolidatedOrderItem,
    Order,
    OrderItem,
    utcnow,
)
from petalhub.app.db.models.core_types import OrderStatus
from petalhub.app.db.session import transaction
from petalhub.services.errors import InvalidState, NotFound

logger = logging.getLogger(__name__)


@dataclass
class ConsolidationResult:
    consolidated_orders: list[ConsolidatedOrder] = field(default_factory=list)
    orders_processed: int = 0


@dataclass
class _Group:
    product_id: int
    qty: int
    unit_price: Decimal


def _eligible_orders(db: Session) -> list[Order]:
    return list(
        db.execute(
            select(Order)
            .where(Order.status == OrderStatus.validated)
            .where(Order.consolidated_at.is_(None))
            .options(selectinload(Order.items).selectinload(OrderItem.product))
            .order_by(Order.created_at.asc(), Order.id.asc())
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        .scalars()
        .all()
    )


def group_by_supplier(orders: list[Order]) -> dict[int, dict[int, _Group]]:
    """
    {supplier_id: {product_id: _Group}} dans l'ordre de rencontre.

    Le prix unitaire d'un couple (fournisseur, produit) est celui de la
    première ligne rencontrée ; il n'est jamais re-calculé.
    """
    groups: dict[int, dict[int, _Group]] = {}
    for order in orders:
        for item in order.items:
            supplier_items = groups.setdefault(int(item.product.supplier_id), {})
            existing = supplier_items.get(int(item.product_id))
            if existing:
                existing.qty += item.qty
            else:
                supplier_items[int(item.product_id)] = _Group(
                    product_id=int(item.product_id),
                    qty=item.qty,
                    unit_price=Decimal(item.unit_price),
                )
    return groups


def consolidate(db: Session) -> ConsolidationResult:
    """
    Regroupe toutes les commandes VALIDATED non consolidées par fournisseur.

    Dans la même transaction :
    - un ConsolidatedOrder par fournisseur (une ligne par produit)
    - chaque commande source : consolidated_at = now, status = COMPLETED

    Pas de décrément de stock ici : l'envoi au fournisseur vaut complétion.
    """
    with transaction(db):
        orders = _eligible_orders(db)
        if not orders:
            raise InvalidState("Nothing to consolidate: no validated orders pending")

        now = utcnow()
        result = ConsolidationResult(orders_processed=len(orders))

        for supplier_id, items in group_by_supplier(orders).items():
            consolidated = ConsolidatedOrder(supplier_id=supplier_id, created_at=now)
            for g in items.values():
                consolidated.items.append(
                    ConsolidatedOrderItem(
                        product_id=g.product_id,
                        total_qty=g.qty,
                        unit_price=g.unit_price,
                        line_total=g.unit_price * g.qty,
                    )
                )
            db.add(consolidated)
            result.consolidated_orders.append(consolidated)

        order_ids = [o.id for o in orders]
        marked = db.execute(
            update(Order)
            .where(Order.id.in_(order_ids))
            .where(Order.status == OrderStatus.validated)
            .where(Order.consolidated_at.is_(None))
            .values(status=OrderStatus.completed, consolidated_at=now, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        if marked.rowcount != len(order_ids):
            raise InvalidState("Orders changed during consolidation, nothing was consolidated")

        db.flush()
        for order in orders:
            db.refresh(order)

    logger.info(
        "consolidation run: orders=%s suppliers=%s",
        result.orders_processed,
        len(result.consolidated_orders),
    )
    return result


def _consolidated_query():
    return select(ConsolidatedOrder).options(
        selectinload(ConsolidatedOrder.supplier),
        selectinload(ConsolidatedOrder.items).selectinload(ConsolidatedOrderItem.product),
    )


def list_consolidated(db: Session, supplier_id: int | None = None) -> list[ConsolidatedOrder]:
    with transaction(db):
        stmt = _consolidated_query().order_by(ConsolidatedOrder.created_at.desc(), ConsolidatedOrder.id.desc())
        if supplier_id is not None:
            stmt = stmt.where(ConsolidatedOrder.supplier_id == supplier_id)
        return list(db.execute(stmt).scalars().all())


def get_consolidated(db: Session, consolidated_id: int) -> ConsolidatedOrder:
    with transaction(db):
        consolidated = (
            db.execute(_consolidated_query().where(ConsolidatedOrder.id == consolidated_id))
            .scalars()
            .first()
        )
    if not consolidated:
        raise NotFound("Consolidated order not found")
    return consolidated
