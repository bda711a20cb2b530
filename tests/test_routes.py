"""
Tests for the HTTP surface.
"""

import pytest
from fastapi.testclient import TestClient

from billing.checkout import CheckoutOrchestrator
from billing.errors import ProviderError
from billing.routes import get_orchestrator
from server import create_app


@pytest.fixture
def client(orchestrator):
    app = create_app()
    app.dependency_overrides[get_orchestrator] = lambda: orchestrator
    return TestClient(app)


def test_subscribe_returns_client_secret(client, provider):
    response = client.post(
        "/subscribe",
        json={"customerEmail": "new@example.com", "amount": 1000, "currency": "gbp"},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["clientSecret"]
    assert body["paymentIntentId"]
    assert len(provider.calls_to("create_customer")) == 1


def test_missing_email_is_400(client, provider):
    response = client.post("/subscribe", json={})

    assert response.status_code == 400
    assert response.json()["detail"] == "Missing customer email"
    assert provider.calls == []


def test_invalid_json_is_400(client):
    response = client.post(
        "/subscribe", content=b"{not json", headers={"Content-Type": "application/json"}
    )

    assert response.status_code == 400


def test_provider_failure_is_502(client, provider):
    provider.failures["list_customers_by_email"] = ProviderError("API connection error")

    response = client.post("/subscribe", json={"customerEmail": "a@example.com"})

    assert response.status_code == 502
    assert response.json()["detail"] == "API connection error"


def test_idempotency_header_forwarded(client, provider):
    client.post(
        "/subscribe",
        json={"customerEmail": "a@example.com"},
        headers={"Idempotency-Key": "checkout-abc"},
    )

    _, _, key = provider.calls_to("create_payment_intent")[0]
    assert key == "checkout-abc"


def test_unexpected_error_is_500(settings):
    class BrokenOrchestrator(CheckoutOrchestrator):
        async def initiate_checkout(self, request, idempotency_key=None):
            raise RuntimeError("boom")

    app = create_app()
    app.dependency_overrides[get_orchestrator] = lambda: BrokenOrchestrator(None, None, settings)

    response = TestClient(app).post("/subscribe", json={"customerEmail": "a@example.com"})

    assert response.status_code == 500
    assert response.json()["detail"] == "Internal server error"


def test_health_endpoints(client, monkeypatch):
    monkeypatch.delenv("STRIPE_API_KEY", raising=False)

    assert client.get("/health/live").json()["alive"] == "true"
    assert client.get("/health").json()["status"] in ("healthy", "degraded")
    assert client.get("/health/ready").json()["ready"] is False

    monkeypatch.setenv("STRIPE_API_KEY", "sk_test_123")
    assert client.get("/health/ready").json()["ready"] is True


@pytest.mark.parametrize(
    "body",
    [
        {"customerEmail": "a@example.com", "amount": 10},
        {"customerEmail": "a@example.com", "amount": -1},
        {"customerEmail": "a@example.com", "currency": "xyz"},
        {"customerEmail": "a@example.com", "currency": "pounds"},
    ],
)
def test_bad_amount_or_currency_is_400(client, provider, body):
    response = client.post("/subscribe", json=body)

    assert response.status_code == 400
    assert provider.calls == []


def test_provider_timeout_is_504(provider, settings):
    provider.lookup_delay = 0.5
    orchestrator = CheckoutOrchestrator.from_provider(
        provider, settings.model_copy(update={"provider_timeout_seconds": 0.05})
    )
    app = create_app()
    app.dependency_overrides[get_orchestrator] = lambda: orchestrator

    response = TestClient(app).post("/subscribe", json={"customerEmail": "a@example.com"})

    assert response.status_code == 504
    assert "did not respond" in response.json()["detail"]
    assert provider.calls_to("create_payment_intent") == []
