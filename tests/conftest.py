import pytest
from fastapi.testclient import TestClient

from mock_services import mock_backend, mock_stripe
from order_lifecycle.clients import BackendClient, PaymentClient
from order_lifecycle.config import Settings, get_settings
from order_lifecycle.dependencies import get_backend_client, get_payment_client
from order_lifecycle.main import app

WEBHOOK_SECRET = "test_secret_123"
STRIPE_KEY = "sk_test_123"


@pytest.fixture
def stripe_http():
    """The mock payment provider, reachable through an httpx-compatible client."""
    mock_stripe.REFUNDS.clear()
    with TestClient(mock_stripe.app, base_url="https://api.stripe.com") as client:
        yield client


@pytest.fixture
def backend_http():
    mock_backend.reset_orders()
    with TestClient(mock_backend.app, base_url="http://backend:1337") as client:
        yield client


@pytest.fixture
def payment_client(stripe_http):
    return PaymentClient(api_key=STRIPE_KEY, client=stripe_http)


@pytest.fixture
def backend_client(backend_http):
    return BackendClient(base_url="http://backend:1337", client=backend_http)


@pytest.fixture
def settings():
    return Settings(webhook_secret=WEBHOOK_SECRET, stripe_secret_key=STRIPE_KEY)


@pytest.fixture
def api(settings, payment_client, backend_client):
    """The service app wired to the mock provider and mock backend."""
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_payment_client] = lambda: payment_client
    app.dependency_overrides[get_backend_client] = lambda: backend_client
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
