"""
Shared pytest fixtures for all tests.

Provides in-memory stand-ins for Firestore and Firebase Auth, a fake Razorpay
API served through httpx.MockTransport, and a TestClient wired to them.
"""
import copy
import itertools
import json
import os
from collections import defaultdict
from datetime import datetime, timezone
from typing import Any, Dict

import httpx
import pytest
from fastapi.testclient import TestClient

# Keep real credentials out of the test process. Empty values also stop a
# local .env file from filling them in when the app module is imported.
for var in (
    "FIREBASE_PROJECT_ID", "FIREBASE_CLIENT_EMAIL", "FIREBASE_PRIVATE_KEY",
    "CLOUDINARY_CLOUD_NAME", "CLOUDINARY_API_KEY", "CLOUDINARY_API_SECRET",
    "RAZORPAY_KEY_ID", "RAZORPAY_KEY_SECRET",
):
    os.environ[var] = ""
os.environ["NODE_ENV"] = "test"
os.environ["ENVIRONMENT"] = "test"

from electromart.clients.cloudinary_client import MediaStore  # noqa: E402
from electromart.clients.razorpay_client import PaymentGateway  # noqa: E402
from electromart.config import CloudinarySettings, RazorpaySettings, ServerSettings, Settings  # noqa: E402
from electromart.exceptions import NotFoundError, UnauthenticatedError  # noqa: E402

RAZORPAY_KEY_SECRET = "test_secret_for_signatures"
AGENT_TOKEN = "agent-token"
OTHER_AGENT_TOKEN = "other-agent-token"
ADMIN_TOKEN = "admin-token"


# ============================================================================
# FIRESTORE
# ============================================================================


class FakeDocumentStore:
    """In-memory DocumentStore with the same async interface."""

    is_configured = True

    def __init__(self):
        self.collections: Dict[str, Dict[str, Dict[str, Any]]] = defaultdict(dict)
        self.writes = 0
        self._ids = itertools.count(1)

    def seed(self, collection: str, doc_id: str, data: Dict[str, Any]) -> None:
        self.collections[collection][doc_id] = copy.deepcopy(data)

    def raw(self, collection: str, doc_id: str) -> Dict[str, Any]:
        return self.collections[collection][doc_id]

    async def get_document(self, collection, doc_id):
        data = self.collections[collection].get(doc_id)
        if data is None:
            return None
        return {"id": doc_id, **copy.deepcopy(data)}

    async def list_documents(self, collection):
        return [{"id": doc_id, **copy.deepcopy(data)} for doc_id, data in self.collections[collection].items()]

    async def find_documents(self, collection, **equals):
        return [
            doc for doc in await self.list_documents(collection)
            if all(doc.get(field) == value for field, value in equals.items())
        ]

    async def add_document(self, collection, data):
        doc_id = f"doc{next(self._ids)}"
        self.collections[collection][doc_id] = copy.deepcopy(data)
        self.writes += 1
        return {"id": doc_id, **data}

    async def update_document(self, collection, doc_id, data):
        if doc_id not in self.collections[collection]:
            raise NotFoundError("Document not found")
        self.collections[collection][doc_id].update(copy.deepcopy(data))
        self.writes += 1
        return {"id": doc_id, **data}

    async def delete_document(self, collection, doc_id):
        self.collections[collection].pop(doc_id, None)
        self.writes += 1

    async def update_in_transaction(self, collection, doc_id, mutate):
        current = await self.get_document(collection, doc_id)
        updates = mutate(current)
        self.collections[collection][doc_id].update(copy.deepcopy(updates))
        self.writes += 1
        return {**current, **updates}


class FakeIdentityVerifier:
    is_configured = True

    def __init__(self, tokens: Dict[str, Dict[str, Any]]):
        self.tokens = tokens

    async def verify(self, token):
        if token not in self.tokens:
            raise UnauthenticatedError("Invalid or expired token")
        return self.tokens[token]


@pytest.fixture
def store() -> FakeDocumentStore:
    return FakeDocumentStore()


@pytest.fixture
def identity() -> FakeIdentityVerifier:
    return FakeIdentityVerifier({
        AGENT_TOKEN: {"uid": "agent-1", "email": "a@x.com"},
        OTHER_AGENT_TOKEN: {"uid": "agent-2", "email": "b@x.com"},
        ADMIN_TOKEN: {"uid": "admin-1", "email": "ops@electromart.com"},
    })


def make_order(**overrides) -> Dict[str, Any]:
    """Build an order document as stored in Firestore."""
    now = datetime(2026, 1, 10, 9, 30, tzinfo=timezone.utc)
    order = {
        "userId": "customer-1",
        "products": [
            {"productId": "p-1", "name": "Smart TV", "price": 45000, "quantity": 1, "image": "products/tv.png"},
        ],
        "totalAmount": 50000,
        "shippingCharges": 900,
        "taxAmount": 4100,
        "paymentId": "pay_123",
        "paymentStatus": "PAID",
        "deliveryAddress": {
            "name": "Customer", "email": "c@x.com", "phone": "9876543210",
            "address": "12 MG Road", "city": "Pune", "state": "MH", "zipCode": "411001",
        },
        "orderStatus": "ORDER_PLACED",
        "statusTimeline": [{"status": "ORDER_PLACED", "timestamp": now, "description": "Order placed"}],
        "assignedDeliveryBoyId": "agent-1",
        "createdAt": now,
        "updatedAt": now,
    }
    order.update(overrides)
    return order


# ============================================================================
# RAZORPAY
# ============================================================================


class FakeRazorpayAPI:
    """Minimal Razorpay REST API for httpx.MockTransport."""

    def __init__(self):
        self.orders: Dict[str, Dict[str, Any]] = {}
        self.payments: Dict[str, Dict[str, Any]] = {
            "pay_123": {"id": "pay_123", "amount": 50000, "currency": "INR", "status": "captured"},
        }
        self.requests = []
        self._ids = itertools.count(1)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if "authorization" not in request.headers:
            return httpx.Response(401, json={"error": {"description": "Authentication failed"}})

        path = request.url.path
        if request.method == "POST" and path == "/v1/orders":
            body = json.loads(request.content)
            order_id = f"order_{next(self._ids)}"
            order = {
                "id": order_id,
                "entity": "order",
                "amount": body["amount"],
                "currency": body["currency"],
                "receipt": body["receipt"],
                "status": "created",
                "created_at": 1767000000,
            }
            self.orders[order_id] = order
            return httpx.Response(200, json=order)

        if request.method == "GET" and path.startswith("/v1/orders/"):
            order = self.orders.get(path.rsplit("/", 1)[-1])
            if order is None:
                return httpx.Response(404, json={"error": {"description": "The id provided does not exist"}})
            return httpx.Response(200, json=order)

        if request.method == "GET" and path.startswith("/v1/payments/"):
            payment = self.payments.get(path.rsplit("/", 1)[-1])
            if payment is None:
                return httpx.Response(404, json={"error": {"description": "The id provided does not exist"}})
            return httpx.Response(200, json=payment)

        if request.method == "POST" and path.endswith("/refund"):
            payment_id = path.split("/")[-2]
            if payment_id not in self.payments:
                return httpx.Response(400, json={"error": {"description": "The payment id is invalid"}})
            body = json.loads(request.content or b"{}")
            amount = body.get("amount", self.payments[payment_id]["amount"])
            return httpx.Response(200, json={
                "id": "rfnd_1", "payment_id": payment_id, "amount": amount, "notes": body.get("notes", {}),
            })

        return httpx.Response(400, json={"error": {"description": "Bad request"}})


@pytest.fixture
def razorpay_api() -> FakeRazorpayAPI:
    return FakeRazorpayAPI()


@pytest.fixture
def razorpay_settings() -> RazorpaySettings:
    return RazorpaySettings(key_id="rzp_test_K3yId0001", key_secret=RAZORPAY_KEY_SECRET)


@pytest.fixture
def payments(razorpay_settings, razorpay_api) -> PaymentGateway:
    return PaymentGateway(razorpay_settings, transport=httpx.MockTransport(razorpay_api.handler))


# ============================================================================
# CLOUDINARY
# ============================================================================


@pytest.fixture
def cloudinary_settings() -> CloudinarySettings:
    return CloudinarySettings(cloud_name="demo-cloud", api_key="987654321", api_secret="cloud-secret")


@pytest.fixture
def media(cloudinary_settings) -> MediaStore:
    return MediaStore(cloudinary_settings)


# ============================================================================
# APPLICATION
# ============================================================================


@pytest.fixture
def settings(razorpay_settings, cloudinary_settings) -> Settings:
    return Settings(
        razorpay=razorpay_settings,
        cloudinary=cloudinary_settings,
        server=ServerSettings(environment="test", admin_email_domain="@electromart.com"),
    )


@pytest.fixture
def client(store, identity, media, payments, settings):
    """TestClient with every integration replaced by a test double."""
    from electromart import dependencies
    from electromart.main import app

    app.dependency_overrides[dependencies.get_store] = lambda: store
    app.dependency_overrides[dependencies.get_identity] = lambda: identity
    app.dependency_overrides[dependencies.get_media] = lambda: media
    app.dependency_overrides[dependencies.get_payments] = lambda: payments
    app.dependency_overrides[dependencies.get_settings] = lambda: settings

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


def bearer(token: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {token}"}
