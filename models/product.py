from datetime import datetime
from decimal import Decimal

from sqlalchemy import String, DateTime, Numeric, Text, JSON
from sqlalchemy.orm import Mapped, mapped_column

from core.db import Base

SIZES = ("Small", "Medium", "Large", "X-Large")


class Product(Base):
    __tablename__ = "products"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(200), index=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2))
    available_sizes: Mapped[list] = mapped_column(JSON, default=list)
    available_colors: Mapped[list] = mapped_column(JSON, default=list)
    style: Mapped[str] = mapped_column(String(100), default="Regular")
    image_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    # Cloudinary public_id, kept so the image can be deleted later
    cloudinary_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    def has_size(self, size: str) -> bool:
        return size in (self.available_sizes or [])

    def has_color(self, color: str) -> bool:
        return color.lower() in [c.lower() for c in (self.available_colors or [])]
