import logging
from decimal import Decimal
from typing import List

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from sqlalchemy.orm import Session

from core.db import commit, get_db
from models.cart import Cart, CartItem
from models.product import Product
from models.user import User
from schemas.product import ProductCreate, ProductUpdate, ProductOut
from security.deps import get_current_admin
from services.cloudinary import cloudinary_service, read_image_upload

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/products", tags=["products"])


def _get_product(db: Session, product_id: int) -> Product:
    product = db.get(Product, product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    return product


@router.get("/", response_model=List[ProductOut])
def list_products(db: Session = Depends(get_db)):
    return db.query(Product).order_by(Product.created_at.desc()).all()


@router.get("/{product_id}", response_model=ProductOut)
def get_product(product_id: int, db: Session = Depends(get_db)):
    return _get_product(db, product_id)


@router.post("/", response_model=ProductOut, status_code=201)
def create_product(data: ProductCreate, admin: User = Depends(get_current_admin), db: Session = Depends(get_db)):
    product = Product(
        name=data.name,
        description=data.description,
        price=Decimal(str(data.price)),
        available_sizes=list(data.available_sizes),
        available_colors=data.available_colors,
        style=data.style or "Regular",
    )
    db.add(product)
    commit(db)
    db.refresh(product)
    return product


@router.patch("/{product_id}", response_model=ProductOut)
def update_product(
    product_id: int, data: ProductUpdate, admin: User = Depends(get_current_admin), db: Session = Depends(get_db)
):
    product = _get_product(db, product_id)
    # price changes only affect items added from now on
    for field, value in data.model_dump(exclude_unset=True).items():
        if value is None:
            continue
        if field == "price":
            value = Decimal(str(value))
        setattr(product, field, value)
    commit(db)
    db.refresh(product)
    return product


@router.post("/{product_id}/image", response_model=ProductOut)
async def upload_product_image(
    product_id: int,
    file: UploadFile = File(...),
    admin: User = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    product = _get_product(db, product_id)
    file_data = await read_image_upload(file)

    success, url, public_id, error = cloudinary_service.upload_product_image(file_data)
    if not success:
        raise HTTPException(status_code=500, detail=f"Failed to upload image: {error}")

    old_public_id = product.cloudinary_id
    product.image_url = url
    product.cloudinary_id = public_id
    commit(db)
    db.refresh(product)
    if old_public_id:
        cloudinary_service.delete(old_public_id)
    return product


@router.delete("/{product_id}", status_code=204)
def delete_product(product_id: int, admin: User = Depends(get_current_admin), db: Session = Depends(get_db)):
    product = _get_product(db, product_id)
    public_id = product.cloudinary_id

    # drop the product from open carts and keep their totals right
    carts = db.query(Cart).join(CartItem).filter(CartItem.product_id == product.id).distinct().all()
    for cart in carts:
        cart.items[:] = [item for item in cart.items if item.product_id != product.id]
        cart.recalculate_total()

    db.delete(product)
    commit(db)
    if public_id:
        success, error = cloudinary_service.delete(public_id)
        if not success:
            logger.warning("Image %s of deleted product %s left behind: %s", public_id, product_id, error)
    return None
