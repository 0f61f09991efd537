from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy.orm import Session

from core.db import get_db
from models.user import User
from schemas.cart import CartOut
from security.deps import get_current_user
from services import cart as cart_service
from services.cloudinary import read_image_upload

router = APIRouter(prefix="/cart", tags=["cart"])


async def _design_bytes(design: Optional[UploadFile]) -> Optional[bytes]:
    if design is None or not design.filename:
        return None
    return await read_image_upload(design)


@router.get("/", response_model=CartOut)
def get_cart(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return cart_service.get_or_create_cart(db, current_user.id)


@router.post("/", response_model=CartOut, status_code=201)
async def add_to_cart(
    product_id: int = Form(...),
    size: str = Form(...),
    color: str = Form(...),
    quantity: int = Form(1),
    custom_text: Optional[str] = Form(None),
    design: Optional[UploadFile] = File(None),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    design_data = await _design_bytes(design)
    return cart_service.add_item(
        db,
        current_user.id,
        product_id=product_id,
        size=size,
        color=color,
        quantity=quantity,
        custom_text=custom_text,
        design=design_data,
    )


@router.put("/{item_id}", response_model=CartOut)
async def update_cart_item(
    item_id: int,
    quantity: Optional[int] = Form(None),
    size: Optional[str] = Form(None),
    color: Optional[str] = Form(None),
    custom_text: Optional[str] = Form(None),
    design: Optional[UploadFile] = File(None),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    design_data = await _design_bytes(design)
    return cart_service.update_item(
        db,
        current_user.id,
        item_id,
        quantity=quantity,
        size=size,
        color=color,
        custom_text=custom_text,
        design=design_data,
    )


@router.delete("/{item_id}", response_model=CartOut)
def remove_from_cart(item_id: int, current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return cart_service.remove_item(db, current_user.id, item_id)
