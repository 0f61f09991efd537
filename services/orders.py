import logging
import secrets
import time
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from core.db import commit
from core.errors import (
    EmptyCartError,
    NotAuthorizedError,
    NotFoundError,
    OrderNotFoundError,
    PersistenceError,
    ValidationError,
)
from models.cart import Cart
from models.order import Order, FULFILLMENT_STATUSES, PAYMENT_PENDING
from models.order_item import OrderItem
from models.user import User

logger = logging.getLogger(__name__)


def generate_order_id() -> str:
    """ORD-<unix millis>-<random hex>; the suffix keeps same-millisecond checkouts apart."""
    return f"ORD-{int(time.time() * 1000)}-{secrets.token_hex(4).upper()}"


def create_order(db: Session, user: User, shipping_details: Dict[str, Any], gateway):
    """
    Snapshot the user's cart into a Pending order and sign its payment request.

    The cart is left intact; it is cleared once the bank confirms payment.
    Returns (order, payment_request).
    """
    cart = db.query(Cart).filter(Cart.user_id == user.id).one_or_none()
    if not cart or not cart.items:
        raise EmptyCartError()

    order = Order(
        order_id=generate_order_id(),
        user_id=user.id,
        shipping_details=shipping_details,
        total_amount=Decimal(str(cart.total)),
        payment_status=PAYMENT_PENDING,
    )

    items_sum = Decimal("0.00")
    for position, item in enumerate(cart.items):
        product = item.product
        if product is None:
            raise NotFoundError(f"Product {item.product_id} is no longer available")
        items_sum += item.line_total
        order.items.append(
            OrderItem(
                product_id=product.id,
                position=position,
                product_name=product.name,
                size=item.size,
                color=item.color,
                design_url=item.design_url,
                custom_text=item.custom_text,
                quantity=item.quantity,
                price_at_purchase=item.price_at_addition,
            )
        )

    if items_sum != order.total_amount:
        logger.warning(
            "Cart %s total %s disagrees with its items (%s); using the cart total",
            cart.id, order.total_amount, items_sum,
        )

    payment_request = gateway.build_payment_request(order)

    db.add(order)
    commit(db)
    db.refresh(order)
    logger.info("Created order %s for user %s, total %s", order.order_id, user.id, order.total_amount)
    return order, payment_request


def find_order(db: Session, order_id: str) -> Optional[Order]:
    return (
        db.query(Order)
        .options(selectinload(Order.items))
        .filter(Order.order_id == order_id)
        .one_or_none()
    )


def get_order_for_user(db: Session, order_id: str, user: User) -> Order:
    order = find_order(db, order_id)
    if not order:
        raise OrderNotFoundError()
    if order.user_id != user.id and not user.is_admin:
        raise NotAuthorizedError("Not authorized to view this order")
    return order


def list_orders_for_user(db: Session, user: User) -> List[Order]:
    return (
        db.query(Order)
        .options(selectinload(Order.items))
        .filter(Order.user_id == user.id)
        .order_by(Order.created_at.desc())
        .all()
    )


def list_all_orders(db: Session) -> List[Order]:
    return db.query(Order).options(selectinload(Order.items)).order_by(Order.created_at.desc()).all()


def update_fulfillment_status(db: Session, order_id: str, status: str) -> Order:
    if status not in FULFILLMENT_STATUSES:
        raise ValidationError(f"Unknown order status: {status}")
    order = find_order(db, order_id)
    if not order:
        raise OrderNotFoundError()
    order.order_status = status
    commit(db)
    db.refresh(order)
    return order


def transition_payment_status(db: Session, order: Order, new_status: str, details: Dict[str, Any]) -> bool:
    """
    Move the order out of Pending with a conditional UPDATE.

    Returns False when the row is no longer Pending (another callback got there
    first). The caller owns the commit.
    """
    try:
        updated = (
            db.query(Order)
            .filter(Order.id == order.id, Order.payment_status == PAYMENT_PENDING)
            .update(
                {Order.payment_status: new_status, Order.payment_details: details},
                synchronize_session=False,
            )
        )
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Payment status update failed for order %s", order.order_id)
        raise PersistenceError() from exc
    return updated == 1
