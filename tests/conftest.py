from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from main import app
from core.db import Base, get_db
from core import config as core_config
from core.config import GatewayConfig
from routes.payments import get_gateway
from services import email as email_service
from services.payment_gateway import BankGateway, compute_hash
from models.cart import Cart, CartItem
from models.product import Product
from models.user import User
from security.password import hash_password
from security import jwt as jwt_utils

TEST_GATEWAY_CONFIG = GatewayConfig(
    client_id="180000069",
    store_key="SKEY0069",
    gateway_url="https://bank.test/fim/est3Dgate",
    ok_url="http://testserver/payments/callback",
    fail_url="http://testserver/payments/callback",
)


@pytest.fixture(scope="session", autouse=True)
def test_settings():
    core_config.settings.JWT_SECRET = "test-secret"
    core_config.settings.REFRESH_SECRET = "test-refresh"
    core_config.settings.TESTING = True
    yield


@pytest.fixture()
def db_session_override():
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    TestingSessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)
    Base.metadata.create_all(bind=engine)

    db = TestingSessionLocal()

    def _get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = _get_db
    try:
        yield db
    finally:
        db.close()
        app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def mock_email_send(monkeypatch):
    sent = []

    def _fake_send(to_email: str, subject: str, body: str, inline_fallback: bool = True) -> None:
        sent.append({"to": to_email, "subject": subject, "body": body, "inline_fallback": inline_fallback})

    monkeypatch.setattr(email_service, "send_email", _fake_send)
    return sent


@pytest.fixture()
def gateway_config():
    return TEST_GATEWAY_CONFIG


@pytest.fixture()
def notifications():
    """Orders the gateway asked to confirm, in call order."""
    return []


@pytest.fixture()
def gateway(db_session_override, notifications):
    def _notify(user, order):
        notifications.append((user.id, order.order_id))

    bank = BankGateway(TEST_GATEWAY_CONFIG, notifier=_notify)
    app.dependency_overrides[get_gateway] = lambda: bank
    return bank


@pytest.fixture()
def client(db_session_override, gateway):
    with TestClient(app) as c:
        yield c


def _make_user(db, email, is_admin=False, first_name="Test"):
    user = User(
        first_name=first_name,
        last_name="User",
        email=email,
        password_hash=hash_password("testpass123"),
        is_admin=is_admin,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def test_user(db_session_override):
    """Create a test user."""
    return _make_user(db_session_override, "test@example.com")


@pytest.fixture
def other_user(db_session_override):
    return _make_user(db_session_override, "other@example.com", first_name="Other")


@pytest.fixture
def admin_user(db_session_override):
    return _make_user(db_session_override, "admin@example.com", is_admin=True, first_name="Admin")


def _headers(user):
    return {"Authorization": f"Bearer {jwt_utils.create_access_token(str(user.id))}"}


@pytest.fixture
def auth_headers(test_user):
    """Return authorization headers with valid token."""
    return _headers(test_user)


@pytest.fixture
def other_headers(other_user):
    return _headers(other_user)


@pytest.fixture
def admin_headers(admin_user):
    return _headers(admin_user)


@pytest.fixture
def product(db_session_override):
    """Plain tee, 24.99."""
    item = Product(
        name="Classic Tee",
        description="Heavyweight cotton",
        price=Decimal("24.99"),
        available_sizes=["Small", "Medium", "Large"],
        available_colors=["White", "Black"],
        style="Regular",
    )
    db_session_override.add(item)
    db_session_override.commit()
    db_session_override.refresh(item)
    return item


@pytest.fixture
def filled_cart(db_session_override, test_user, product):
    """Two Medium White tees: total 49.98."""
    cart = Cart(user_id=test_user.id, total=Decimal("0.00"))
    cart.items.append(
        CartItem(
            product_id=product.id,
            size="Medium",
            color="White",
            quantity=2,
            price_at_addition=Decimal("24.99"),
        )
    )
    cart.recalculate_total()
    db_session_override.add(cart)
    db_session_override.commit()
    db_session_override.refresh(cart)
    return cart


@pytest.fixture
def signed_callback():
    """Build bank callback fields signed with the test store key."""

    def _build(order_id, response="Approved", proc_return_code="00", hash_field="HASH", **extra):
        fields = {
            "clientid": TEST_GATEWAY_CONFIG.client_id,
            "oid": order_id,
            "Response": response,
            "ProcReturnCode": proc_return_code,
            "TransId": "24123ABC",
            "AuthCode": "P12345",
            "amount": "49.98",
            "currency": TEST_GATEWAY_CONFIG.currency,
        }
        fields.update(extra)
        fields[hash_field] = compute_hash(fields, TEST_GATEWAY_CONFIG.store_key)
        return fields

    return _build
