from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel

from petalhub.app.schemas.user import UserRef


class PricingTierRead(BaseModel):
    min_qty: int
    percent_off: Decimal

    class Config:
        from_attributes = True


class ProductRead(BaseModel):
    id: int
    sku: str
    name: str
    base_price: Decimal
    stock: int
    supplier_id: int
    supplier: UserRef
    pricing_tiers: list[PricingTierRead]
    created_at: datetime

    class Config:
        from_attributes = True


class ProductRef(BaseModel):
    id: int
    sku: str
    name: str

    class Config:
        from_attributes = True
