"""
Order aggregate and lifecycle.

Cycle de vie :

    DRAFT -> PENDING_VALIDATION -> VALIDATED -> COMPLETED
    DRAFT | PENDING_VALIDATION -> DECLINED          (terminal)
    PENDING_VALIDATION | VALIDATED -> DRAFT         (reject)

Chaque opération publique est une unité de travail (services/db transaction) :
tout est commit ensemble ou rien. Les transitions sont des UPDATE gardés sur
le statut attendu, donc deux appels concurrents ne peuvent pas appliquer la
même transition deux fois.
"""

from __future__ import annotations

import logging
from decimal import Decimal

from sqlalchemy import select, update
from sqlalchemy.orm import Session, selectinload

from petalhub.app.core.config import get_settings
from petalhub.app.db.models.models_v1 import Order, OrderItem, Product, utcnow
from petalhub.app.db.models.core_types import OrderStatus, Role
from petalhub.app.db.session import transaction
from petalhub.services.errors import Forbidden, InsufficientStock, InvalidArgument, InvalidState, NotFound
from petalhub.services.inventory import check_stock, decrement_stock, lock_products
from petalhub.services.pricing import price_line
from petalhub.services.users import require_role

logger = logging.getLogger(__name__)

ZERO = Decimal("0")

DECLINABLE = {OrderStatus.draft, OrderStatus.pending_validation}
REJECTABLE = {OrderStatus.pending_validation, OrderStatus.validated}


# ---------- Helpers ----------
def _load_order(db: Session, order_id: int, *, for_update: bool = False) -> Order:
    stmt = (
        select(Order)
        .where(Order.id == order_id)
        .options(
            selectinload(Order.items).selectinload(OrderItem.product),
            selectinload(Order.customer),
        )
        .execution_options(populate_existing=True)
    )
    if for_update:
        stmt = stmt.with_for_update()

    order = db.execute(stmt).scalars().first()
    if not order:
        raise NotFound("Order not found")
    return order


def _load_product(db: Session, product_id: int) -> Product:
    product = (
        db.execute(
            select(Product)
            .where(Product.id == product_id)
            .options(selectinload(Product.pricing_tiers))
            .execution_options(populate_existing=True)
        )
        .scalars()
        .first()
    )
    if not product:
        raise NotFound("Product not found")
    return product


def _require_draft(order: Order, action: str) -> None:
    if order.status != OrderStatus.draft:
        raise InvalidState(f"Can only {action} draft orders")


def _transition(db: Session, order: Order, allowed: set[OrderStatus], target: OrderStatus, **values) -> Order:
    """UPDATE gardé : ne s'applique que si le statut en base est toujours dans `allowed`."""
    previous = order.status
    result = db.execute(
        update(Order)
        .where(Order.id == order.id)
        .where(Order.status.in_(allowed))
        .values(status=target, updated_at=utcnow(), **values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise InvalidState("Order status changed concurrently")

    db.refresh(order)
    logger.info("order %s: %s -> %s", order.id, previous.value, target.value)
    return order


def recalculate_totals(order: Order) -> Order:
    """subtotal = somme des lignes ; discount réservé aux promos (toujours 0)."""
    subtotal = sum((Decimal(item.line_total) for item in order.items), ZERO)
    discount = ZERO
    order.subtotal = subtotal
    order.discount = discount
    order.total = subtotal - discount
    order.updated_at = utcnow()
    return order


# ---------- Queries ----------
def list_orders(db: Session, customer_id: int | None = None) -> list[Order]:
    with transaction(db):
        stmt = (
            select(Order)
            .options(
                selectinload(Order.items).selectinload(OrderItem.product).selectinload(Product.supplier),
                selectinload(Order.customer),
            )
            .order_by(Order.created_at.desc(), Order.id.desc())
        )
        if customer_id is not None:
            stmt = stmt.where(Order.customer_id == customer_id)
        return list(db.execute(stmt).scalars().all())


def get_order(db: Session, order_id: int) -> Order:
    with transaction(db):
        return _load_order(db, order_id)


# ---------- Aggregate ----------
def create_order(db: Session, *, customer_id: int, currency: str | None = None) -> Order:
    currency = (currency or get_settings().default_currency).upper()
    if len(currency) != 3:
        raise InvalidArgument(f"Invalid currency {currency!r}")

    with transaction(db):
        require_role(db, customer_id, Role.customer, "Customer")

        now = utcnow()
        order = Order(
            customer_id=customer_id,
            status=OrderStatus.draft,
            currency=currency,
            subtotal=ZERO,
            discount=ZERO,
            total=ZERO,
            created_at=now,
            updated_at=now,
        )
        db.add(order)
        db.flush()

    logger.info("order created: id=%s customer_id=%s", order.id, customer_id)
    return order


def add_item(db: Session, order_id: int, product_id: int, qty: int) -> Order:
    """
    Ajoute ou remplace la ligne du produit (la quantité est écrasée, pas
    incrémentée). Le prix unitaire est recalculé sur le prix de base et les
    paliers *actuels* du produit, puis figé dans la ligne.
    """
    if isinstance(qty, bool) or not isinstance(qty, int) or qty < 1:
        raise InvalidArgument(f"qty must be an integer >= 1, got {qty!r}")

    with transaction(db):
        order = _load_order(db, order_id, for_update=True)
        _require_draft(order, "add items to")

        product = _load_product(db, product_id)
        unit_price = price_line(product.base_price, qty, product.pricing_tiers)
        line_total = unit_price * qty

        existing = next((i for i in order.items if i.product_id == product.id), None)
        if existing:
            existing.qty = qty
            existing.unit_price = unit_price
            existing.line_total = line_total
        else:
            order.items.append(
                OrderItem(
                    product_id=product.id,
                    product=product,
                    qty=qty,
                    unit_price=unit_price,
                    line_total=line_total,
                )
            )

        recalculate_totals(order)
        db.flush()

    logger.info(
        "order %s: item product_id=%s qty=%s unit_price=%s",
        order.id,
        product_id,
        qty,
        unit_price,
    )
    return order


def remove_item(db: Session, order_id: int, product_id: int) -> Order:
    with transaction(db):
        order = _load_order(db, order_id, for_update=True)
        _require_draft(order, "remove items from")

        item = next((i for i in order.items if i.product_id == product_id), None)
        if not item:
            raise NotFound("Item not found in order")

        order.items.remove(item)
        recalculate_totals(order)
        db.flush()

    logger.info("order %s: item product_id=%s removed", order.id, product_id)
    return order


# ---------- Lifecycle ----------
def submit(db: Session, order_id: int, *, caller_id: int, caller_role: Role) -> Order:
    try:
        caller_role = Role(caller_role)
    except ValueError as exc:
        raise InvalidArgument(f"Invalid role {caller_role!r}") from exc

    with transaction(db):
        order = _load_order(db, order_id, for_update=True)

        if caller_role != Role.employee and order.customer_id != caller_id:
            logger.warning("order %s: submit refused for caller %s (%s)", order.id, caller_id, caller_role)
            raise Forbidden("Can only submit own orders")
        if order.status != OrderStatus.draft:
            raise InvalidState("Order is not in draft status")
        if not order.items:
            raise InvalidState("Cannot submit empty order")

        return _transition(db, order, {OrderStatus.draft}, OrderStatus.pending_validation)


def decline(db: Session, order_id: int) -> Order:
    with transaction(db):
        order = _load_order(db, order_id, for_update=True)
        if order.status not in DECLINABLE:
            raise InvalidState("Order cannot be declined from its current status")
        return _transition(db, order, DECLINABLE, OrderStatus.declined)


def approve(db: Session, order_id: int) -> Order:
    with transaction(db):
        order = _load_order(db, order_id, for_update=True)
        if order.status != OrderStatus.pending_validation:
            raise InvalidState("Order is not pending validation")
        return _transition(db, order, {OrderStatus.pending_validation}, OrderStatus.validated)


def reject(db: Session, order_id: int) -> Order:
    with transaction(db):
        order = _load_order(db, order_id, for_update=True)
        if order.status not in REJECTABLE:
            raise InvalidState("Order must be PENDING_VALIDATION or VALIDATED to be rejected")
        return _transition(db, order, REJECTABLE, OrderStatus.draft)


def complete(db: Session, order_id: int) -> Order:
    """
    VALIDATED -> COMPLETED avec décrément de stock.

    1) verrouille les produits (FOR UPDATE, id croissant)
    2) valide toutes les lignes sur ce snapshot
    3) bascule le statut (UPDATE gardé) : un second appel concurrent échoue
       ici en InvalidState, avant tout décrément
    4) décrémente le stock (UPDATE gardé)
    Le tout dans une seule transaction : rien n'est appliqué si une étape échoue.
    """
    with transaction(db):
        order = _load_order(db, order_id, for_update=True)
        if order.status != OrderStatus.validated:
            raise InvalidState("Order is not validated")

        snapshot = lock_products(db, (item.product_id for item in order.items))
        try:
            check_stock(order.items, snapshot)
        except InsufficientStock as exc:
            logger.warning("order %s: fulfilment blocked: %s", order.id, exc)
            raise

        lines = [(item.product_id, item.qty) for item in order.items]
        _transition(db, order, {OrderStatus.validated}, OrderStatus.completed)

        for product_id, qty in lines:
            decrement_stock(db, product_id=product_id, qty=qty)

    return order


def remove_order(db: Session, order_id: int) -> None:
    with transaction(db):
        order = db.get(Order, order_id)
        if not order:
            raise NotFound(f"Order with ID {order_id} not found")
        db.delete(order)

    logger.info("order removed: id=%s", order_id)
