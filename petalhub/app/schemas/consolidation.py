from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel

from petalhub.app.schemas.product import ProductRef
from petalhub.app.schemas.user import UserRef


class ConsolidatedOrderItemRead(BaseModel):
    product_id: int
    product: ProductRef
    total_qty: int
    unit_price: Decimal
    line_total: Decimal

    class Config:
        from_attributes = True


class ConsolidatedOrderRead(BaseModel):
    id: int
    supplier_id: int
    supplier: UserRef
    created_at: datetime
    items: list[ConsolidatedOrderItemRead]

    class Config:
        from_attributes = True


class ConsolidationRunRead(BaseModel):
    consolidated_orders: list[ConsolidatedOrderRead]
    orders_processed: int
