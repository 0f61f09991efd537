import json
import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, Request, status
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import HTMLResponse
from sqlalchemy.orm import Session

from core.config import settings
from core.db import get_db
from core.errors import (
    CallbackAuthenticationError,
    NotFoundError,
    PaymentProcessingError,
    ValidationError,
)
from core.templating import render_template
from models.order import PAYMENT_PAID
from models.user import User
from schemas.payment import PaymentRequestOut
from security.deps import get_current_user
from services.email import send_order_confirmation
from services.orders import get_order_for_user
from services.payment_gateway import BankGateway

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/payments", tags=["payments"])

# Built once at startup; the signing secret is never re-read afterwards
bank_gateway = BankGateway(settings.gateway_config(), notifier=send_order_confirmation)


def get_gateway() -> BankGateway:
    return bank_gateway


def _payable_order(db: Session, order_id: str, user: User):
    order = get_order_for_user(db, order_id, user)
    if order.payment_status == PAYMENT_PAID:
        raise ValidationError("Order is already paid")
    if order.is_payment_final:
        raise ValidationError("Order payment has already failed")
    return order


@router.post("/{order_id}/initiate", response_model=PaymentRequestOut)
def initiate_payment(
    order_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    gateway: BankGateway = Depends(get_gateway),
):
    order = _payable_order(db, order_id, current_user)
    return gateway.build_payment_request(order)


@router.post("/{order_id}/redirect", response_class=HTMLResponse)
def payment_redirect(
    order_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    gateway: BankGateway = Depends(get_gateway),
):
    """Auto-submitting form that hands the browser over to the bank."""
    order = _payable_order(db, order_id, current_user)
    return HTMLResponse(gateway.build_payment_request(order).render_form())


def _json_text(value: Any) -> str:
    if value is None:
        return ""
    if value is True:
        return "true"
    if value is False:
        return "false"
    if isinstance(value, (dict, list)):
        return json.dumps(value, separators=(",", ":"))
    return str(value)


async def _read_callback_fields(request: Request) -> Dict[str, str]:
    if request.headers.get("content-type", "").startswith("application/json"):
        raw = await request.body()
        try:
            # keep numbers as the exact text the bank signed (50.00 must not become 50.0)
            body = json.loads(raw, parse_float=str, parse_int=str)
        except ValueError:
            return {}
        if not isinstance(body, dict):
            return {}
        return {str(k): _json_text(v) for k, v in body.items()}
    form = await request.form()
    return {k: v for k, v in form.items() if isinstance(v, str)}


def _result_page(paid: bool, message: str, order_id=None, transaction_id=None, status_code=status.HTTP_200_OK):
    body = render_template(
        "payment/result.html",
        {"paid": paid, "message": message, "order_id": order_id, "transaction_id": transaction_id},
    )
    return HTMLResponse(body, status_code=status_code)


@router.post("/callback", response_class=HTMLResponse)
async def bank_callback(
    request: Request,
    db: Session = Depends(get_db),
    gateway: BankGateway = Depends(get_gateway),
):
    """Public endpoint the bank posts the 3-D Secure outcome to. Always answers definitively."""
    fields = await _read_callback_fields(request)
    try:
        result = await run_in_threadpool(gateway.handle_callback, db, fields)
    except CallbackAuthenticationError as e:
        return _result_page(False, e.detail, status_code=e.status_code)
    except NotFoundError as e:
        return _result_page(False, e.detail, status_code=e.status_code)
    except PaymentProcessingError as e:
        return _result_page(False, e.detail, order_id=e.order_id)

    order = result.order
    details = order.payment_details or {}
    if result.paid:
        return _result_page(True, "Payment successful", order.order_id, details.get("transaction_id"))
    return _result_page(False, details.get("error") or "Payment failed", order.order_id)
