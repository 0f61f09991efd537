from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from core.db import get_db
from models.user import User
from routes.payments import get_gateway
from schemas.order import CheckoutOut, FulfillmentUpdate, OrderCreate, OrderOut, OrderStatusOut
from security.deps import get_current_admin, get_current_user
from services import orders as order_service
from services.payment_gateway import BankGateway

router = APIRouter(prefix="/orders", tags=["orders"])


@router.post("/", response_model=CheckoutOut, status_code=status.HTTP_201_CREATED)
def create_order(
    data: OrderCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    gateway: BankGateway = Depends(get_gateway),
):
    order, payment = order_service.create_order(db, current_user, data.shipping_details.model_dump(), gateway)
    return {"order": order, "payment": payment}


@router.get("/", response_model=List[OrderOut])
def list_my_orders(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return order_service.list_orders_for_user(db, current_user)


@router.get("/admin/all", response_model=List[OrderOut])
def list_all_orders(admin: User = Depends(get_current_admin), db: Session = Depends(get_db)):
    return order_service.list_all_orders(db)


@router.put("/admin/{order_id}", response_model=OrderOut)
def update_order_status(
    order_id: str,
    data: FulfillmentUpdate,
    admin: User = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    return order_service.update_fulfillment_status(db, order_id, data.status)


@router.get("/{order_id}", response_model=OrderOut)
def get_order(order_id: str, current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return order_service.get_order_for_user(db, order_id, current_user)


@router.get("/{order_id}/status", response_model=OrderStatusOut)
def get_order_status(order_id: str, current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return order_service.get_order_for_user(db, order_id, current_user)
