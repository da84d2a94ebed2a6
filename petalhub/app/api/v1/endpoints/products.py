from __future__ import annotations

from decimal import Decimal

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from petalhub.app.api.deps import Caller, get_db, require_permissions
from petalhub.app.db.models.core_types import Permission
from petalhub.app.schemas.product import ProductRead
from petalhub.services import products as products_svc

router = APIRouter(prefix="/products")


class ProductCreate(BaseModel):
    sku: str = Field(min_length=1, max_length=64)
    name: str = Field(min_length=1, max_length=255)
    base_price: Decimal = Field(ge=0, decimal_places=2)
    stock: int = Field(default=0, ge=0)
    supplier_id: int


class ProductUpdate(BaseModel):
    sku: str | None = Field(default=None, min_length=1, max_length=64)
    name: str | None = Field(default=None, min_length=1, max_length=255)
    base_price: Decimal | None = Field(default=None, ge=0, decimal_places=2)
    stock: int | None = Field(default=None, ge=0)


class PricingTierIn(BaseModel):
    min_qty: int = Field(ge=1)
    percent_off: Decimal = Field(ge=0, le=100, decimal_places=2)


@router.get("")
def list_products(
    db: Session = Depends(get_db),
    caller: Caller = Depends(require_permissions(Permission.product_read)),
):
    return [ProductRead.model_validate(p) for p in products_svc.list_products(db)]


@router.get("/{product_id}")
def get_product(
    product_id: int,
    db: Session = Depends(get_db),
    caller: Caller = Depends(require_permissions(Permission.product_read)),
):
    return ProductRead.model_validate(products_svc.get_product(db, product_id))


@router.post("", status_code=201)
def create_product(
    payload: ProductCreate,
    db: Session = Depends(get_db),
    caller: Caller = Depends(require_permissions(Permission.product_manage)),
):
    p = products_svc.create_product(
        db,
        sku=payload.sku,
        name=payload.name,
        base_price=payload.base_price,
        stock=payload.stock,
        supplier_id=payload.supplier_id,
    )
    return ProductRead.model_validate(products_svc.get_product(db, p.id))


@router.patch("/{product_id}")
def update_product(
    product_id: int,
    payload: ProductUpdate,
    db: Session = Depends(get_db),
    caller: Caller = Depends(require_permissions(Permission.product_manage)),
):
    p = products_svc.update_product(db, product_id, **payload.model_dump(exclude_none=True))
    return ProductRead.model_validate(p)


@router.put("/{product_id}/pricing-tiers")
def replace_pricing_tiers(
    product_id: int,
    payload: list[PricingTierIn],
    db: Session = Depends(get_db),
    caller: Caller = Depends(require_permissions(Permission.pricing_manage)),
):
    p = products_svc.set_pricing_tiers(db, product_id, [(t.min_qty, t.percent_off) for t in payload])
    return ProductRead.model_validate(p)


@router.delete("/{product_id}", status_code=204)
def delete_product(
    product_id: int,
    db: Session = Depends(get_db),
    caller: Caller = Depends(require_permissions(Permission.product_manage)),
):
    products_svc.remove_product(db, product_id)
