from typing import Dict

from pydantic import BaseModel


class PaymentRequestOut(BaseModel):
    gateway_url: str
    fields: Dict[str, str]

    class Config:
        from_attributes = True
