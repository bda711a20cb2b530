"""
Pytest configuration and fixtures.
"""

import os

import pytest
from dotenv import load_dotenv

# Load test environment variables
load_dotenv(".env.local")

from auth.state import AuthStateStore  # noqa: E402
from billing.checkout import CheckoutOrchestrator  # noqa: E402
from billing.config import CheckoutSettings  # noqa: E402
from monitoring.metrics import get_metrics_collector  # noqa: E402
from tests.fakes import FakeBillingProvider  # noqa: E402


@pytest.fixture(scope="session", autouse=True)
def setup_test_environment():
    """Set up test environment."""
    os.environ["ENVIRONMENT"] = "test"
    os.environ["LOG_LEVEL"] = "DEBUG"

    yield


@pytest.fixture(autouse=True)
def reset_metrics():
    get_metrics_collector().reset()
    yield


@pytest.fixture
def provider():
    """Provider with no existing customers."""
    return FakeBillingProvider()


@pytest.fixture
def settings():
    return CheckoutSettings(
        default_amount=1000,
        default_currency="gbp",
        min_amount=30,
        supported_currencies=frozenset({"gbp", "usd", "eur"}),
        customer_lookup_limit=10,
        provider_timeout_seconds=2.0,
    )


@pytest.fixture
def orchestrator(provider, settings):
    return CheckoutOrchestrator.from_provider(provider, settings)


@pytest.fixture
def auth_store():
    return AuthStateStore()
