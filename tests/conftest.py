"""Pytest configuration and fixtures.

This module provides fixtures for:
- An in-memory record store (mongomock-motor) with the production indexes
- A fake Razorpay gateway that records orders and serves captured payments
- An HTTP client bound to the app, with store and gateway overridden
- An Enrollment Manager that reaches the payment functions through the same app
"""

import os

os.environ.setdefault("SUPABASE_JWT_SECRET", "test_jwt_secret")
os.environ.setdefault("RAZORPAY_KEY_ID", "rzp_test_key")
os.environ.setdefault("RAZORPAY_KEY_SECRET", "test_secret")

import httpx
import pytest
from jose import jwt
from mongomock_motor import AsyncMongoMockClient

from skillhub import config
from skillhub.auth.auth_utils import SessionUser
from skillhub.dependencies import get_enrollment_manager, get_store
from skillhub.enrollment.functions_client import RemoteFunctions
from skillhub.enrollment.manager import EnrollmentManager
from skillhub.enrollment.models import EnrollmentContext, Skill
from skillhub.errors import VerificationFailed
from skillhub.main import app
from skillhub.payments.gateway import get_gateway
from skillhub.payments.signature import compute_razorpay_signature
from skillhub.store.records import RecordStore
from skillhub.store.schemas import create_all_indexes

KEY_ID = "rzp_test_key"
KEY_SECRET = "test_secret"
JWT_SECRET = "test_jwt_secret"
USER_ID = "user-1"
USER_EMAIL = "learner@example.com"


class FakeGateway:
    """Stands in for RazorpayGateway: sequential order ids, payments set up by the test."""

    __test__ = False

    def __init__(self):
        self.key_id = KEY_ID
        self.orders = []
        self.payments = {}

    async def create_order(self, order_data):
        order = {
            "id": f"order_{len(self.orders) + 1:04d}",
            "entity": "order",
            "status": "created",
            **order_data
        }
        self.orders.append(order)
        return order

    def add_payment(self, payment_id, order_id, amount, status="captured", currency="INR"):
        self.payments[payment_id] = {
            "id": payment_id,
            "entity": "payment",
            "order_id": order_id,
            "amount": amount,
            "currency": currency,
            "status": status,
            "method": "upi"
        }

    async def fetch_payment(self, payment_id):
        if payment_id not in self.payments:
            raise VerificationFailed("Invalid payment ID")
        return self.payments[payment_id]


def sign(order_id: str, payment_id: str, secret: str = KEY_SECRET) -> str:
    return compute_razorpay_signature(secret, order_id, payment_id)


def make_token(user_id: str = USER_ID, email: str = USER_EMAIL, **claims) -> str:
    payload = {"sub": user_id, "email": email, "aud": "authenticated", **claims}
    return jwt.encode(payload, JWT_SECRET, algorithm="HS256")


@pytest.fixture(autouse=True)
def payment_config(monkeypatch):
    monkeypatch.setattr(config, "RAZORPAY_KEY_ID", KEY_ID)
    monkeypatch.setattr(config, "RAZORPAY_KEY_SECRET", KEY_SECRET)
    monkeypatch.setattr(config, "SESSION_JWT_SECRET", JWT_SECRET)


@pytest.fixture
async def db():
    database = AsyncMongoMockClient()["skillhub_test"]
    await create_all_indexes(database)
    return database


@pytest.fixture
def store(db):
    return RecordStore(db)


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def functions():
    return RemoteFunctions(
        f"http://test{config.FUNCTIONS_PREFIX}",
        transport=httpx.ASGITransport(app=app)
    )


@pytest.fixture
def manager(functions):
    return EnrollmentManager(functions)


@pytest.fixture(autouse=True)
def overrides(store, gateway, manager):
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_gateway] = lambda: gateway
    app.dependency_overrides[get_enrollment_manager] = lambda: manager
    yield
    app.dependency_overrides.clear()


@pytest.fixture
async def client():
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as c:
        yield c


@pytest.fixture
def auth_headers():
    return {"Authorization": f"Bearer {make_token()}"}


@pytest.fixture
def ctx(store):
    return EnrollmentContext(
        user=SessionUser(id=USER_ID, email=USER_EMAIL),
        store=store
    )


@pytest.fixture
async def free_skill(store):
    row = await store.insert("skills", {
        "skill_id": "skill-free",
        "slug": "intro-to-python",
        "name": "Intro to Python",
        "description": "Start here",
        "price": "Free"
    })
    return Skill(**row)


@pytest.fixture
async def paid_skill(store):
    row = await store.insert("skills", {
        "skill_id": "skill-paid",
        "slug": "data-structures",
        "name": "Data Structures",
        "description": "Arrays to graphs",
        "price": 500
    })
    return Skill(**row)
