import logging
from decimal import Decimal
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from core.db import commit
from core.errors import NotFoundError, PersistenceError, ValidationError
from models.cart import Cart, CartItem
from models.product import Product
from services.cloudinary import cloudinary_service

logger = logging.getLogger(__name__)


def _find_cart(db: Session, user_id: int):
    return db.query(Cart).filter(Cart.user_id == user_id).one_or_none()


def get_or_create_cart(db: Session, user_id: int) -> Cart:
    cart = _find_cart(db, user_id)
    if cart is not None:
        return cart

    cart = Cart(user_id=user_id, total=Decimal("0.00"))
    db.add(cart)
    try:
        db.flush()
    except IntegrityError:
        # a concurrent request created the cart first
        db.rollback()
        logger.info("Cart for user %s created concurrently; reusing it", user_id)
        cart = _find_cart(db, user_id)
        if cart is None:
            raise PersistenceError()
        return cart
    commit(db)
    db.refresh(cart)
    return cart


def _validate_variant(product: Product, size: str, color: str) -> None:
    if not product.has_size(size):
        raise ValidationError("Invalid size for this product")
    if not product.has_color(color):
        raise ValidationError("Invalid color for this product")


def _upload_design(design: Optional[bytes], user_id: int):
    if not design:
        return None, None
    success, url, public_id, error = cloudinary_service.upload_design(design, user_id)
    if not success:
        raise ValidationError(f"Failed to upload design: {error}")
    return url, public_id


def _discard_design(public_id: Optional[str]) -> None:
    if not public_id:
        return
    success, error = cloudinary_service.delete(public_id)
    if not success:
        logger.warning("Could not delete design %s: %s", public_id, error)


def add_item(
    db: Session,
    user_id: int,
    product_id: int,
    size: str,
    color: str,
    quantity: int,
    custom_text: Optional[str] = None,
    design: Optional[bytes] = None,
) -> Cart:
    if quantity < 1:
        raise ValidationError("Quantity must be at least 1")
    product = db.get(Product, product_id)
    if not product:
        raise NotFoundError("Product not found")
    _validate_variant(product, size, color)

    design_url, design_public_id = _upload_design(design, user_id)
    cart = get_or_create_cart(db, user_id)
    candidate = CartItem(
        product_id=product.id,
        size=size,
        color=color,
        design_url=design_url,
        design_public_id=design_public_id,
        custom_text=custom_text or None,
        quantity=quantity,
        price_at_addition=product.price,
    )

    existing = next((item for item in cart.items if item.merge_key() == candidate.merge_key()), None)
    if existing:
        existing.quantity += quantity
    else:
        cart.items.append(candidate)

    cart.recalculate_total()
    commit(db)
    db.refresh(cart)
    return cart


def _find_item(cart: Cart, item_id: int) -> CartItem:
    item = next((i for i in cart.items if i.id == item_id), None)
    if item is None:
        raise NotFoundError("Item not found in cart")
    return item


def update_item(
    db: Session,
    user_id: int,
    item_id: int,
    quantity: Optional[int] = None,
    size: Optional[str] = None,
    color: Optional[str] = None,
    custom_text: Optional[str] = None,
    design: Optional[bytes] = None,
) -> Cart:
    cart = _find_cart(db, user_id)
    if not cart:
        raise NotFoundError("Cart not found")
    item = _find_item(cart, item_id)

    if quantity is not None:
        if quantity < 1:
            raise ValidationError("Quantity must be at least 1")
        item.quantity = quantity
    if size is not None or color is not None:
        _validate_variant(item.product, size or item.size, color or item.color)
        item.size = size or item.size
        item.color = color or item.color
    if custom_text is not None:
        item.custom_text = custom_text or None
    if design:
        old_public_id = item.design_public_id
        item.design_url, item.design_public_id = _upload_design(design, user_id)
        _discard_design(old_public_id)

    cart.recalculate_total()
    commit(db)
    db.refresh(cart)
    return cart


def remove_item(db: Session, user_id: int, item_id: int) -> Cart:
    cart = _find_cart(db, user_id)
    if not cart:
        raise NotFoundError("Cart not found")
    item = _find_item(cart, item_id)
    public_id = item.design_public_id

    cart.items.remove(item)
    cart.recalculate_total()
    commit(db)
    db.refresh(cart)
    _discard_design(public_id)
    return cart


def clear_cart(db: Session, user_id: int) -> None:
    """Empty the cart inside the caller's transaction; designs stay referenced by orders."""
    cart = _find_cart(db, user_id)
    if cart is None:
        return
    cart.items.clear()
    cart.total = Decimal("0.00")
