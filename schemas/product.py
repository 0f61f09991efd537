from typing import List, Literal, Optional

from pydantic import BaseModel, Field

Size = Literal["Small", "Medium", "Large", "X-Large"]


class ProductCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    price: float = Field(gt=0)
    available_sizes: List[Size] = Field(min_length=1)
    available_colors: List[str] = Field(min_length=1)
    style: str = "Regular"
    description: Optional[str] = None


class ProductUpdate(BaseModel):
    name: Optional[str] = None
    price: Optional[float] = Field(default=None, gt=0)
    available_sizes: Optional[List[Size]] = None
    available_colors: Optional[List[str]] = None
    style: Optional[str] = None
    description: Optional[str] = None


class ProductOut(BaseModel):
    id: int
    name: str
    price: float
    available_sizes: List[str]
    available_colors: List[str]
    style: str
    description: Optional[str] = None
    image_url: Optional[str] = None

    class Config:
        from_attributes = True
