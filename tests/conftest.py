"""Pytest configuration and shared fixtures."""

import hashlib
import hmac
import json
import time

import pytest
from fastapi.testclient import TestClient

from local_store import LocalStore
from main import app, get_gateway, get_generator, get_mailer
from object_urls import ObjectUrlRegistry
from payments import PaymentGateway, PaymentGatewayError, WebhookVerificationError
from schemas import AgendaItem

ADMIN_SECRET = "test-secret"


class FakeGateway(PaymentGateway):
    """In-memory payment provider recording every create/update call.

    Products are remembered by event id, so an event published again without
    its product id finds the product created for it earlier.
    """

    def __init__(self, ids=None):
        self.ids = dict(ids or {})
        self.products = {}
        self.created = []
        self.updated = []
        self.checkouts = []
        self.fail = False
        self.fail_on = set()

    def sync_product(self, event, currency):
        if self.fail or event.id in self.fail_on:
            raise PaymentGatewayError("provider down")
        if event.stripe_product_id:
            self.updated.append(event.stripe_product_id)
            return event.stripe_product_id, event.stripe_price_id
        if event.id in self.products:
            product_id, price_id = self.products[event.id]
            self.updated.append(product_id)
            return product_id, price_id
        self.created.append(event.id)
        self.products[event.id] = self.ids.get(event.id, (f"prod_{event.id}", f"price_{event.id}"))
        return self.products[event.id]

    def create_checkout_session(self, price_id, event_id, success_url, cancel_url):
        self.checkouts.append((price_id, event_id, success_url, cancel_url))
        return f"https://checkout.test/{price_id}"

    def parse_webhook(self, payload, signature):
        if signature != "good-sig":
            raise WebhookVerificationError("bad signature")
        return json.loads(payload)


class FakeMailer:
    def __init__(self):
        self.sent = []

    def send_booking_confirmation(self, event, to_email):
        self.sent.append((event.id, to_email))


class FakeGenerator:
    def description(self, title, vibe, key_details):
        return f"{title} ({vibe})"

    def agenda(self, title, duration_hours):
        return [AgendaItem(time="09:00", title="Doors", description="Welcome")]

    def tags(self, description):
        return ["Music", "Gala"]


@pytest.fixture
def server_env(tmp_path, monkeypatch):
    public_dir = tmp_path / "public"
    monkeypatch.setenv("ADMIN_SECRET", ADMIN_SECRET)
    monkeypatch.setenv("PUBLIC_DIR", str(public_dir))
    monkeypatch.setenv("DIST_DIR", str(tmp_path / "dist"))
    monkeypatch.setenv("SITE_URL", "http://site.test")
    for name in ("STRIPE_SECRET_KEY", "STRIPE_WEBHOOK_SECRET", "STRIPE_CURRENCY", "RESEND_API_KEY", "GEMINI_API_KEY"):
        monkeypatch.delenv(name, raising=False)
    return public_dir


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway(ids={"e1": ("prod_X", "price_Y")})


@pytest.fixture
def mailer() -> FakeMailer:
    return FakeMailer()


@pytest.fixture
def api_client(server_env, gateway, mailer):
    app.dependency_overrides[get_gateway] = lambda: gateway
    app.dependency_overrides[get_mailer] = lambda: mailer
    app.dependency_overrides[get_generator] = lambda: FakeGenerator()
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers() -> dict:
    return {"Authorization": f"Bearer {ADMIN_SECRET}"}


@pytest.fixture
def store(tmp_path):
    store = LocalStore(f"sqlite:///{tmp_path / 'local.db'}")
    yield store
    store.close()


@pytest.fixture
def registry() -> ObjectUrlRegistry:
    return ObjectUrlRegistry()


@pytest.fixture
def sign_webhook():
    """Build a Stripe-Signature header the way the provider does."""

    def sign(payload: str, secret: str) -> str:
        timestamp = int(time.time())
        digest = hmac.new(secret.encode(), f"{timestamp}.{payload}".encode(), hashlib.sha256).hexdigest()
        return f"t={timestamp},v1={digest}"

    return sign
