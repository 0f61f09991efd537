from datetime import datetime
from decimal import Decimal

from sqlalchemy import String, DateTime, ForeignKey, Numeric, JSON
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.db import Base

PAYMENT_PENDING = "Pending"
PAYMENT_PAID = "Paid"
PAYMENT_FAILED = "Failed"
TERMINAL_PAYMENT_STATUSES = (PAYMENT_PAID, PAYMENT_FAILED)

FULFILLMENT_STATUSES = ("Processing", "Shipped", "Delivered", "Cancelled")


class Order(Base):
    __tablename__ = "orders"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    order_id: Mapped[str] = mapped_column(String(64), unique=True, index=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="RESTRICT"), index=True)
    shipping_details: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    total_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2))
    payment_status: Mapped[str] = mapped_column(String(20), default=PAYMENT_PENDING, index=True)
    payment_details: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    order_status: Mapped[str] = mapped_column(String(20), default="Processing")
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    user = relationship("User", back_populates="orders")
    items = relationship(
        "OrderItem",
        cascade="all, delete-orphan",
        back_populates="order",
        order_by="OrderItem.position",
    )

    @property
    def is_payment_final(self) -> bool:
        return self.payment_status in TERMINAL_PAYMENT_STATUSES
