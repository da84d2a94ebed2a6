from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel

from petalhub.app.db.models.core_types import OrderStatus
from petalhub.app.schemas.product import ProductRef
from petalhub.app.schemas.user import UserRef


class OrderItemRead(BaseModel):
    product_id: int
    product: ProductRef
    qty: int
    unit_price: Decimal  # snapshot, jamais recalculé
    line_total: Decimal

    class Config:
        from_attributes = True


class OrderRead(BaseModel):
    id: int
    customer_id: int
    customer: UserRef
    status: OrderStatus
    currency: str
    subtotal: Decimal
    discount: Decimal
    total: Decimal
    created_at: datetime
    updated_at: datetime
    consolidated_at: datetime | None
    items: list[OrderItemRead]

    class Config:
        from_attributes = True
