"""
Tests for customer resolution.
"""

import asyncio

import pytest

from billing.customer_resolver import CustomerResolver, customer_idempotency_key
from billing.errors import ProviderError, ValidationError
from billing.models import Customer
from monitoring.metrics import Metrics, get_metrics_collector
from tests.fakes import FakeBillingProvider


@pytest.mark.asyncio
async def test_creates_customer_when_none_exists(provider):
    resolver = CustomerResolver(provider)

    customer = await resolver.resolve("new@example.com")

    assert customer.id
    assert customer.email == "new@example.com"
    assert len(provider.calls_to("create_customer")) == 1
    _, fields, key = provider.calls_to("create_customer")[0]
    assert fields == {"email": "new@example.com"}
    assert key.startswith("customer-create-")
    assert get_metrics_collector().counters[Metrics.CUSTOMERS_CREATED] == 1


@pytest.mark.asyncio
async def test_returns_first_existing_match_without_creating():
    provider = FakeBillingProvider(customers=[
        Customer(id="cus_first", email="known@example.com"),
        Customer(id="cus_second", email="known@example.com"),
        Customer(id="cus_other", email="other@example.com"),
    ])
    resolver = CustomerResolver(provider)

    customer = await resolver.resolve("known@example.com")

    assert customer.id == "cus_first"
    assert provider.calls_to("create_customer") == []
    assert get_metrics_collector().counters[Metrics.CUSTOMERS_FOUND] == 1


@pytest.mark.asyncio
async def test_lookup_uses_page_size(provider):
    resolver = CustomerResolver(provider, lookup_limit=3)

    await resolver.resolve("someone@example.com")

    assert provider.calls_to("list_customers_by_email") == [
        ("list_customers_by_email", "someone@example.com", 3)
    ]


@pytest.mark.asyncio
@pytest.mark.parametrize("email", ["", "   "])
async def test_empty_email_rejected_before_provider(provider, email):
    resolver = CustomerResolver(provider)

    with pytest.raises(ValidationError):
        await resolver.resolve(email)

    assert provider.calls == []


@pytest.mark.asyncio
async def test_lookup_failure_is_not_retried(provider):
    provider.failures["list_customers_by_email"] = ProviderError("Stripe is down")
    resolver = CustomerResolver(provider)

    with pytest.raises(ProviderError, match="Stripe is down"):
        await resolver.resolve("a@example.com")

    assert len(provider.calls_to("list_customers_by_email")) == 1
    assert provider.calls_to("create_customer") == []


@pytest.mark.asyncio
async def test_creation_failure_propagates(provider):
    provider.failures["create_customer"] = ProviderError("Invalid email address")
    resolver = CustomerResolver(provider)

    with pytest.raises(ProviderError, match="Invalid email address"):
        await resolver.resolve("a@example.com")

    assert len(provider.calls_to("create_customer")) == 1


@pytest.mark.asyncio
async def test_concurrent_resolutions_create_one_customer():
    provider = FakeBillingProvider(lookup_delay=0.02)
    resolver = CustomerResolver(provider)

    first, second = await asyncio.gather(
        resolver.resolve("same@example.com"),
        resolver.resolve("same@example.com"),
    )

    assert first.id == second.id
    assert len(provider.calls_to("create_customer")) == 1
    assert len(resolver._locks) == 0


@pytest.mark.asyncio
async def test_concurrent_resolutions_converge_across_case():
    provider = FakeBillingProvider(lookup_delay=0.02)
    resolver = CustomerResolver(provider)

    first, second = await asyncio.gather(
        resolver.resolve("Same@Example.com"),
        resolver.resolve("same@example.com"),
    )

    assert first.id == second.id
    assert len(provider.calls_to("create_customer")) == 1
    assert provider.calls_to("create_customer")[0][1] == {"email": "same@example.com"}


@pytest.mark.asyncio
async def test_retry_after_failed_create_uses_new_key(provider):
    provider.failures["create_customer"] = ProviderError("An unknown error occurred")
    resolver = CustomerResolver(provider)

    with pytest.raises(ProviderError):
        await resolver.resolve("a@example.com")

    del provider.failures["create_customer"]
    customer = await resolver.resolve("a@example.com")

    first_key, second_key = [call[2] for call in provider.calls_to("create_customer")]
    assert first_key != second_key
    assert customer.id


@pytest.mark.asyncio
async def test_caller_attempt_scopes_create_key(provider):
    provider.failures["create_customer"] = ProviderError("An unknown error occurred")
    resolver = CustomerResolver(provider)

    for _ in range(2):
        with pytest.raises(ProviderError):
            await resolver.resolve("a@example.com", attempt="checkout-1")

    first_key, second_key = [call[2] for call in provider.calls_to("create_customer")]
    assert first_key == second_key == customer_idempotency_key("a@example.com", "checkout-1")


@pytest.mark.asyncio
async def test_idempotency_keys_can_be_disabled(provider):
    resolver = CustomerResolver(provider, use_idempotency_keys=False)

    await resolver.resolve("a@example.com")

    assert provider.calls_to("create_customer")[0][2] is None


@pytest.mark.asyncio
async def test_different_emails_do_not_wait_on_each_other():
    provider = FakeBillingProvider(lookup_delay=0.02)
    resolver = CustomerResolver(provider)

    first, second = await asyncio.gather(
        resolver.resolve("one@example.com"),
        resolver.resolve("two@example.com"),
    )

    assert first.id != second.id
    operations = [call[0] for call in provider.calls]
    assert operations[:2] == ["list_customers_by_email", "list_customers_by_email"]


@pytest.mark.asyncio
async def test_customer_without_id_is_a_provider_error():
    class NoIdProvider(FakeBillingProvider):
        async def create_customer(self, fields, idempotency_key=None):
            return Customer(id=None, email=fields["email"])

    with pytest.raises(ProviderError):
        await CustomerResolver(NoIdProvider()).resolve("a@example.com")


def test_idempotency_key_is_unique_per_attempt():
    assert customer_idempotency_key("a@example.com") != customer_idempotency_key("a@example.com")
    assert customer_idempotency_key(" A@Example.com ", "k1") == customer_idempotency_key("a@example.com", "k1")
    assert customer_idempotency_key("a@example.com", "k1") != customer_idempotency_key("b@example.com", "k1")
