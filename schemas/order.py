from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from schemas.payment import PaymentRequestOut


class ShippingDetails(BaseModel):
    full_name: str = Field(min_length=1, max_length=200)
    address: str = Field(min_length=1, max_length=500)
    city: str = Field(min_length=1, max_length=100)
    postal_code: str = Field(min_length=1, max_length=20)
    country: str = Field(min_length=1, max_length=100)
    phone: Optional[str] = Field(default=None, max_length=50)


class OrderCreate(BaseModel):
    shipping_details: ShippingDetails


class OrderItemOut(BaseModel):
    id: int
    product_id: Optional[int] = None
    product_name: str
    size: str
    color: str
    design_url: Optional[str] = None
    custom_text: Optional[str] = None
    quantity: int
    price_at_purchase: float

    class Config:
        from_attributes = True


class OrderOut(BaseModel):
    order_id: str
    user_id: int
    total_amount: float
    payment_status: str
    payment_details: Optional[Dict[str, Any]] = None
    order_status: str
    shipping_details: Optional[Dict[str, Any]] = None
    created_at: datetime
    items: List[OrderItemOut]

    class Config:
        from_attributes = True


class OrderStatusOut(BaseModel):
    order_id: str
    payment_status: str
    total_amount: float
    created_at: datetime

    class Config:
        from_attributes = True


class CheckoutOut(BaseModel):
    order: OrderOut
    payment: PaymentRequestOut


class FulfillmentUpdate(BaseModel):
    status: Literal["Processing", "Shipped", "Delivered", "Cancelled"]
