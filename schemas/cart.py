from typing import List, Optional

from pydantic import BaseModel


class CartItemOut(BaseModel):
    id: int
    product_id: int
    size: str
    color: str
    design_url: Optional[str] = None
    custom_text: Optional[str] = None
    quantity: int
    price_at_addition: float

    class Config:
        from_attributes = True


class CartOut(BaseModel):
    id: int
    total: float
    items: List[CartItemOut]

    class Config:
        from_attributes = True
