"""
Bank 3-D Secure hosted payment page integration.

Outbound: the browser is sent to the bank with a form whose fields are
signed by ``compute_hash``. Inbound: the bank posts the outcome back to a
public endpoint and the same ``compute_hash`` rule is applied to the posted
fields. Both sides must canonicalize identically or every payment fails.

Canonical form: every non-hash field sorted by key (code point order),
joined as ``key=value`` with ``&``, then ``&storekey=<secret>`` appended.
The hash is base64(SHA-512(utf-8 bytes)).
"""
import base64
import hashlib
import hmac
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Callable, Dict, Mapping, Optional

from sqlalchemy.orm import Session

from core.config import GatewayConfig
from core.db import commit
from core.errors import (
    CallbackAuthenticationError,
    OrderNotFoundError,
    PaymentProcessingError,
    ValidationError,
)
from core.templating import render_template
from models.order import Order, PAYMENT_PAID, PAYMENT_FAILED
from services import cart as cart_service
from services import orders as order_service

logger = logging.getLogger(__name__)

HASH_FIELD = "hash"
STORE_KEY_FIELD = "storekey"

APPROVED_RESPONSE = "Approved"
APPROVED_RETURN_CODE = "00"

OUTCOME_PAID = "paid"
OUTCOME_FAILED = "failed"
OUTCOME_DUPLICATE = "duplicate"


def is_hash_field(name: str) -> bool:
    """The bank posts the signature as HASH, Hash or hash."""
    return name.lower() == HASH_FIELD


def canonicalize(params: Mapping[str, str], store_key: str) -> str:
    pairs = [f"{key}={params[key]}" for key in sorted(params) if not is_hash_field(key)]
    pairs.append(f"{STORE_KEY_FIELD}={store_key}")
    return "&".join(pairs)


def compute_hash(params: Mapping[str, str], store_key: str) -> str:
    digest = hashlib.sha512(canonicalize(params, store_key).encode("utf-8")).digest()
    return base64.b64encode(digest).decode("ascii")


def format_amount(amount) -> str:
    return str(Decimal(str(amount)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def _pick(fields: Mapping[str, str], *names: str) -> Optional[str]:
    """Case-insensitive lookup over the posted fields, first name wins."""
    lowered = {key.lower(): value for key, value in fields.items()}
    for name in names:
        value = lowered.get(name.lower())
        if value not in (None, ""):
            return value
    return None


@dataclass(frozen=True)
class PaymentRequest:
    gateway_url: str
    fields: Dict[str, str]

    def render_form(self) -> str:
        return render_template(
            "payment/redirect.html",
            {"gateway_url": self.gateway_url, "fields": self.fields},
        )


@dataclass
class CallbackResult:
    order: Order
    outcome: str

    @property
    def paid(self) -> bool:
        return self.order.payment_status == PAYMENT_PAID


Notifier = Callable[[object, Order], None]


class BankGateway:
    def __init__(self, config: GatewayConfig, notifier: Optional[Notifier] = None):
        self.config = config
        self.notifier = notifier

    def sign(self, params: Mapping[str, str]) -> str:
        return compute_hash(params, self.config.store_key)

    def build_payment_request(self, order: Order) -> PaymentRequest:
        if not order.order_id:
            raise ValidationError("Order has no order id")
        if order.total_amount is None:
            raise ValidationError("Order has no total amount")

        fields = {
            "clientid": self.config.client_id,
            "storetype": self.config.store_type,
            "amount": format_amount(order.total_amount),
            "oid": order.order_id,
            "okUrl": self.config.ok_url,
            "failUrl": self.config.fail_url,
            "tranType": self.config.tran_type,
            "taksit": self.config.installment,
            "rnd": uuid.uuid4().hex,
            "currency": self.config.currency,
            "lang": self.config.lang,
            "encoding": self.config.encoding,
        }
        fields["hash"] = self.sign(fields)
        return PaymentRequest(gateway_url=self.config.gateway_url, fields=fields)

    def verify_callback(self, fields: Mapping[str, str]) -> None:
        """Raise CallbackAuthenticationError unless the posted hash matches."""
        received = _pick(fields, "HASH", "hash")
        order_ref = _pick(fields, "oid", "OrderId", "ReturnOid")
        if not received:
            logger.warning("Bank callback for order %s carries no hash", order_ref)
            raise CallbackAuthenticationError("Missing callback hash")

        expected = self.sign(fields)
        if not hmac.compare_digest(expected.encode("utf-8"), received.encode("utf-8")):
            logger.warning("Bank callback for order %s failed hash verification", order_ref)
            raise CallbackAuthenticationError()

    def handle_callback(self, db: Session, fields: Mapping[str, str]) -> CallbackResult:
        self.verify_callback(fields)

        order_ref = _pick(fields, "oid", "OrderId", "ReturnOid")
        order = order_service.find_order(db, order_ref) if order_ref else None
        if not order:
            logger.warning("Verified bank callback references unknown order %s", order_ref)
            raise OrderNotFoundError()

        if order.is_payment_final:
            logger.info("Duplicate bank callback for order %s (%s)", order.order_id, order.payment_status)
            return CallbackResult(order=order, outcome=OUTCOME_DUPLICATE)

        response = _pick(fields, "Response")
        return_code = _pick(fields, "ProcReturnCode")
        now = datetime.utcnow().isoformat()

        if response == APPROVED_RESPONSE and return_code == APPROVED_RETURN_CODE:
            details = {
                "transaction_id": _pick(fields, "TransId"),
                "auth_code": _pick(fields, "AuthCode"),
                "proc_return_code": return_code,
                "timestamp": now,
            }
            if not order_service.transition_payment_status(db, order, PAYMENT_PAID, details):
                db.rollback()
                db.refresh(order)
                return CallbackResult(order=order, outcome=OUTCOME_DUPLICATE)
            cart_service.clear_cart(db, order.user_id)
            commit(db)
            db.refresh(order)
            logger.info("Order %s paid (transaction %s)", order.order_id, details["transaction_id"])
            self._notify(order)
            return CallbackResult(order=order, outcome=OUTCOME_PAID)

        error = _pick(fields, "ErrMsg", "mdErrorMsg") or "Payment declined"
        details = {
            "error": error,
            "proc_return_code": return_code,
            "error_code": _pick(fields, "ErrorCode"),
            "transaction_id": _pick(fields, "TransId"),
            "timestamp": now,
        }
        if not order_service.transition_payment_status(db, order, PAYMENT_FAILED, details):
            db.rollback()
            db.refresh(order)
            return CallbackResult(order=order, outcome=OUTCOME_DUPLICATE)
        commit(db)
        db.refresh(order)
        logger.info("Order %s payment declined: %s (code %s)", order.order_id, error, return_code)
        raise PaymentProcessingError(error, order_id=order.order_id)

    def _notify(self, order: Order) -> None:
        if self.notifier is None:
            return
        try:
            self.notifier(order.user, order)
        except Exception:
            # the payment is committed; a lost email must not undo it
            logger.exception("Order confirmation for %s could not be dispatched", order.order_id)
