from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from petalhub.app.api.deps import Caller, get_db, require_permissions, require_roles
from petalhub.app.db.models.core_types import Permission, Role
from petalhub.app.schemas.order import OrderRead
from petalhub.services import orders as orders_svc

router = APIRouter(prefix="/orders")


class OrderCreate(BaseModel):
    customer_id: int | None = None
    currency: str | None = Field(default=None, min_length=3, max_length=3)


class AddItem(BaseModel):
    product_id: int
    qty: int = Field(ge=1)


def _ensure_own_order(db: Session, order_id: int, caller: Caller) -> None:
    # Les clients ne manipulent que leurs propres commandes
    if caller.role != Role.customer:
        return
    order = orders_svc.get_order(db, order_id)
    if order.customer_id != caller.id:
        raise HTTPException(status_code=403, detail="Can only access own orders")


@router.post("", status_code=201)
def create_order(
    payload: OrderCreate,
    db: Session = Depends(get_db),
    caller: Caller = Depends(require_permissions(Permission.order_create)),
):
    customer_id = payload.customer_id
    if caller.role == Role.customer:
        if customer_id is not None and customer_id != caller.id:
            raise HTTPException(status_code=403, detail="Customers can only create their own orders")
        customer_id = caller.id
    if customer_id is None:
        raise HTTPException(status_code=400, detail="customer_id is required")

    order = orders_svc.create_order(db, customer_id=customer_id, currency=payload.currency)
    return OrderRead.model_validate(order)


@router.get("")
def list_orders(
    db: Session = Depends(get_db),
    caller: Caller = Depends(require_roles(Role.employee, Role.customer)),
):
    customer_id = caller.id if caller.role == Role.customer else None
    return [OrderRead.model_validate(o) for o in orders_svc.list_orders(db, customer_id=customer_id)]


@router.get("/{order_id}")
def get_order(
    order_id: int,
    db: Session = Depends(get_db),
    caller: Caller = Depends(require_roles(Role.employee, Role.customer)),
):
    _ensure_own_order(db, order_id, caller)
    return OrderRead.model_validate(orders_svc.get_order(db, order_id))


@router.post("/{order_id}/items")
def add_item(
    order_id: int,
    payload: AddItem,
    db: Session = Depends(get_db),
    caller: Caller = Depends(require_permissions(Permission.order_create)),
):
    _ensure_own_order(db, order_id, caller)
    order = orders_svc.add_item(db, order_id, payload.product_id, payload.qty)
    return OrderRead.model_validate(order)


@router.delete("/{order_id}/items/{product_id}")
def remove_item(
    order_id: int,
    product_id: int,
    db: Session = Depends(get_db),
    caller: Caller = Depends(require_permissions(Permission.order_create)),
):
    _ensure_own_order(db, order_id, caller)
    order = orders_svc.remove_item(db, order_id, product_id)
    return OrderRead.model_validate(order)


@router.patch("/{order_id}/submit")
def submit_order(
    order_id: int,
    db: Session = Depends(get_db),
    caller: Caller = Depends(require_permissions(Permission.order_submit)),
):
    order = orders_svc.submit(db, order_id, caller_id=caller.id, caller_role=caller.role)
    return OrderRead.model_validate(order)


@router.patch("/{order_id}/decline")
def decline_order(
    order_id: int,
    db: Session = Depends(get_db),
    caller: Caller = Depends(require_permissions(Permission.order_decline)),
):
    return OrderRead.model_validate(orders_svc.decline(db, order_id))


@router.patch("/{order_id}/approve")
def approve_order(
    order_id: int,
    db: Session = Depends(get_db),
    caller: Caller = Depends(require_permissions(Permission.order_approve)),
):
    return OrderRead.model_validate(orders_svc.approve(db, order_id))


@router.patch("/{order_id}/reject")
def reject_order(
    order_id: int,
    db: Session = Depends(get_db),
    caller: Caller = Depends(require_permissions(Permission.order_approve)),
):
    return OrderRead.model_validate(orders_svc.reject(db, order_id))


@router.patch("/{order_id}/complete")
def complete_order(
    order_id: int,
    db: Session = Depends(get_db),
    caller: Caller = Depends(require_permissions(Permission.order_complete)),
):
    return OrderRead.model_validate(orders_svc.complete(db, order_id))


@router.delete("/{order_id}", status_code=204)
def delete_order(
    order_id: int,
    db: Session = Depends(get_db),
    caller: Caller = Depends(require_permissions(Permission.order_delete)),
):
    _ensure_own_order(db, order_id, caller)
    orders_svc.remove_order(db, order_id)
