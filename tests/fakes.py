"""
In-memory billing provider for tests.
"""

import asyncio
from typing import Any, Dict, List, Optional

from billing.errors import ProviderError
from billing.models import Customer, PaymentIntent


class FakeBillingProvider:
    """In-memory billing provider that records every call."""

    def __init__(self, customers: Optional[List[Customer]] = None, lookup_delay: float = 0.0):
        self.customers: List[Customer] = list(customers or [])
        self.lookup_delay = lookup_delay
        self.intent_delay = 0.0
        self.calls: List[tuple] = []
        self.failures: Dict[str, ProviderError] = {}
        self._next_id = 0

    def _new_id(self, prefix: str) -> str:
        self._next_id += 1
        return f"{prefix}_{self._next_id:04d}"

    def calls_to(self, operation: str) -> List[tuple]:
        return [call for call in self.calls if call[0] == operation]

    async def list_customers_by_email(self, email: str, limit: int) -> List[Customer]:
        self.calls.append(("list_customers_by_email", email, limit))
        if self.lookup_delay:
            await asyncio.sleep(self.lookup_delay)
        if "list_customers_by_email" in self.failures:
            raise self.failures["list_customers_by_email"]
        return [c for c in self.customers if c.email == email][:limit]

    async def create_customer(self, fields: Dict[str, Any], idempotency_key: Optional[str] = None) -> Customer:
        self.calls.append(("create_customer", dict(fields), idempotency_key))
        if "create_customer" in self.failures:
            raise self.failures["create_customer"]
        customer = Customer(id=self._new_id("cus"), email=fields["email"])
        self.customers.append(customer)
        return customer

    async def create_payment_intent(
        self, params: Dict[str, Any], idempotency_key: Optional[str] = None
    ) -> PaymentIntent:
        self.calls.append(("create_payment_intent", dict(params), idempotency_key))
        if self.intent_delay:
            await asyncio.sleep(self.intent_delay)
        if "create_payment_intent" in self.failures:
            raise self.failures["create_payment_intent"]
        intent_id = self._new_id("pi")
        return PaymentIntent(
            id=intent_id,
            client_secret=f"{intent_id}_secret_test",
            amount=params["amount"],
            currency=params["currency"],
            customer_id=params["customer"],
            status="requires_payment_method",
        )
