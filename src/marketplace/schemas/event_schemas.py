from typing import List, Optional

from pydantic import BaseModel, Field

from marketplace.schemas.common_schemas import MoneyField

ORDER_PLACED = "order.placed"


class OrderPlacedLine(BaseModel):
    """One purchased line as it appears in the confirmation email"""
    product_id: int
    name: str
    quantity: int = Field(ge=1)
    price: MoneyField


class OrderPlacedPayload(BaseModel):
    """Payload of the ``order.placed`` outbox event"""
    order_id: int
    customer_name: str
    customer_email: str
    total: MoneyField
    sub_order_count: int = Field(ge=1)
    lines: List[OrderPlacedLine] = Field(default_factory=list)
    shipping_to: Optional[str] = None
