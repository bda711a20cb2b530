"""
Stripe implementation of the billing provider.
"""

import asyncio
import os
from typing import Any, Callable, Dict, List, Optional
import stripe
from stripe import StripeError

from billing.errors import ProviderError
from billing.models import Customer, PaymentIntent
from monitoring.logger import get_logger

logger = get_logger(__name__)


class StripeBillingProvider:
    """Looks up and creates Stripe customers and opens payment intents."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        api_version: Optional[str] = None,
    ):
        """
        Initialize the Stripe provider.

        Args:
            api_key: Stripe API key (defaults to STRIPE_API_KEY env var)
            api_version: Stripe API version (defaults to STRIPE_API_VERSION env var)
        """
        self.api_key = api_key or os.getenv("STRIPE_API_KEY")
        self.api_version = api_version or os.getenv("STRIPE_API_VERSION", "2023-08-16")

        if not self.api_key:
            raise ValueError(
                "Stripe API key not configured. Set STRIPE_API_KEY environment variable."
            )

        stripe.api_key = self.api_key
        stripe.api_version = self.api_version
        logger.info("Stripe billing provider initialized", extra={"api_version": self.api_version})

    async def _call(self, operation: str, fn: Callable[..., Any], **kwargs: Any) -> Any:
        # The SDK is blocking; keep it off the event loop
        try:
            return await asyncio.to_thread(fn, **kwargs)
        except StripeError as e:
            logger.error(
                f"Stripe {operation} failed",
                extra={
                    "operation": operation,
                    "error_code": getattr(e, "code", None),
                    "error_message": str(e),
                },
                exc_info=True,
            )
            raise ProviderError(
                getattr(e, "user_message", None) or str(e) or f"Stripe {operation} failed",
                code=getattr(e, "code", None),
                operation=operation,
            ) from e

    async def list_customers_by_email(self, email: str, limit: int) -> List[Customer]:
        """
        List customers registered under an email address.

        Args:
            email: Exact email to match
            limit: Maximum number of customers to return

        Returns:
            Matching customers in Stripe's order (most recent first)
        """
        result = await self._call("customer lookup", stripe.Customer.list, email=email, limit=limit)
        return [Customer(id=c.id, email=c.email or email) for c in result.data]

    async def create_customer(
        self,
        fields: Dict[str, Any],
        idempotency_key: Optional[str] = None,
    ) -> Customer:
        params = dict(fields)
        if idempotency_key:
            params["idempotency_key"] = idempotency_key

        customer = await self._call("customer creation", stripe.Customer.create, **params)

        logger.info("Stripe customer created", extra={"customer_id": customer.id})
        return Customer(id=customer.id, email=customer.email or fields.get("email", ""))

    async def create_payment_intent(
        self,
        params: Dict[str, Any],
        idempotency_key: Optional[str] = None,
    ) -> PaymentIntent:
        """
        Create a Stripe Payment Intent.

        Args:
            params: PaymentIntent.create parameters (amount, currency, customer, ...)
            idempotency_key: Optional key Stripe uses to deduplicate retries

        Returns:
            The created payment intent

        Raises:
            ProviderError: If Stripe rejects the request or returns no client secret
        """
        request = dict(params)
        if idempotency_key:
            request["idempotency_key"] = idempotency_key

        intent = await self._call("payment intent creation", stripe.PaymentIntent.create, **request)

        if not intent.id or not intent.client_secret:
            raise ProviderError(
                "Stripe returned a payment intent without a client secret",
                operation="payment intent creation",
            )

        customer_id = intent.customer if isinstance(intent.customer, str) else params["customer"]
        return PaymentIntent(
            id=intent.id,
            client_secret=intent.client_secret,
            amount=intent.amount,
            currency=intent.currency,
            customer_id=customer_id,
            status=intent.status,
        )
