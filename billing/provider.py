"""
Billing provider contract.

The provider is the source of truth for customer identity and payment intent
lifecycle; nothing here is persisted locally.
"""

from typing import Any, Dict, List, Optional, Protocol

from billing.models import Customer, PaymentIntent


class BillingProvider(Protocol):
    """Narrow interface any billing provider must implement.

    Implementations raise ``billing.errors.ProviderError`` for every provider
    side failure.
    """

    async def list_customers_by_email(self, email: str, limit: int) -> List[Customer]:
        """Return up to ``limit`` customers whose email equals ``email``, in provider order."""
        ...

    async def create_customer(
        self,
        fields: Dict[str, Any],
        idempotency_key: Optional[str] = None,
    ) -> Customer:
        ...

    async def create_payment_intent(
        self,
        params: Dict[str, Any],
        idempotency_key: Optional[str] = None,
    ) -> PaymentIntent:
        ...
