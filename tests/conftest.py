"""
Shared fixtures: in-memory SQLite database, users, a fake Razorpay gateway
and a TestClient wired to both through dependency overrides.
"""
import hashlib
import hmac

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.main import app
from app.db.base import Base
from app.db.models import User
from app.core.auth_dependency import get_db
from app.core.rate_limit import rate_limit_store
from app.services.payment_errors import GatewayError
from app.services.razorpay_client import RazorpayGateway, get_payment_gateway

TEST_KEY_ID = "rzp_test_key"
TEST_KEY_SECRET = "rzp_test_secret"

# Setup in-memory SQLite database for testing
TEST_DATABASE_URL = "sqlite:///:memory:"
test_engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)


def sign(gateway_order_id, gateway_payment_id, key_secret=TEST_KEY_SECRET):
    """Signature Razorpay Checkout returns for a successful payment."""
    message = f"{gateway_order_id}|{gateway_payment_id}".encode("utf-8")
    return hmac.new(key_secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


class FakeGateway(RazorpayGateway):
    """RazorpayGateway that records orders instead of calling Razorpay. Signature checks are real."""

    def __init__(self, key_id=TEST_KEY_ID, key_secret=TEST_KEY_SECRET, fail=False):
        super().__init__(key_id, key_secret)
        self.fail = fail
        self.orders = []

    def create_order(self, amount_paise, receipt, notes, currency="INR"):
        if self.fail:
            raise GatewayError()
        order = {
            "id": f"order_rzp{len(self.orders) + 1:06d}",
            "entity": "order",
            "amount": amount_paise,
            "currency": currency,
            "receipt": receipt,
            "notes": notes,
            "status": "created",
        }
        self.orders.append(order)
        return order


@pytest.fixture(scope="function")
def db():
    """Create a fresh database for each test."""
    Base.metadata.create_all(bind=test_engine)
    session = TestSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=test_engine)


@pytest.fixture(autouse=True)
def clear_rate_limits():
    rate_limit_store.clear()
    yield
    rate_limit_store.clear()


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def client(db, gateway):
    """TestClient using the test database and the fake gateway."""
    def override_get_db():
        session = TestSessionLocal()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_payment_gateway] = lambda: gateway
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def make_user(db, external_id, role="basic", name="Test Chef", email=None):
    user = User(
        external_id=external_id,
        name=name,
        email=email or f"{external_id}@example.com",
        role=role,
        chef="no",
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def basic_user(db):
    return make_user(db, "ext_123")


@pytest.fixture
def admin_user(db):
    return make_user(db, "ext_admin", role="admin", name="Admin")


@pytest.fixture
def user_factory(db):
    def factory(external_id, **kwargs):
        return make_user(db, external_id, **kwargs)
    return factory
