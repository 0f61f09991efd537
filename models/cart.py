from datetime import datetime
from decimal import Decimal

from sqlalchemy import String, DateTime, ForeignKey, Integer, Numeric, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.db import Base


class Cart(Base):
    __tablename__ = "carts"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), unique=True, index=True)
    total: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0.00"))
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    user = relationship("User", back_populates="cart")
    items = relationship(
        "CartItem",
        back_populates="cart",
        cascade="all, delete-orphan",
        order_by="CartItem.id",
    )

    def recalculate_total(self) -> Decimal:
        self.total = sum((item.line_total for item in self.items), Decimal("0.00"))
        return self.total


class CartItem(Base):
    __tablename__ = "cart_items"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    cart_id: Mapped[int] = mapped_column(ForeignKey("carts.id", ondelete="CASCADE"), index=True)
    product_id: Mapped[int] = mapped_column(ForeignKey("products.id", ondelete="CASCADE"), index=True)
    size: Mapped[str] = mapped_column(String(20))
    color: Mapped[str] = mapped_column(String(50))
    design_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    design_public_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    custom_text: Mapped[str | None] = mapped_column(Text, nullable=True)
    quantity: Mapped[int] = mapped_column(Integer, default=1)
    price_at_addition: Mapped[Decimal] = mapped_column(Numeric(12, 2))

    cart = relationship("Cart", back_populates="items")
    product = relationship("Product")

    @property
    def line_total(self) -> Decimal:
        return Decimal(str(self.price_at_addition)) * self.quantity

    def merge_key(self) -> tuple:
        """Items with equal keys are the same line and get their quantities merged."""
        return (
            self.product_id,
            self.size,
            (self.color or "").lower(),
            self.custom_text or None,
            self.design_url or None,
        )
