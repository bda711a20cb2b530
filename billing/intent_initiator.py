"""
Opens a payment intent for a resolved customer.
"""

from typing import Iterable, Optional

from billing.errors import PreconditionError, ValidationError
from billing.models import Customer, PaymentIntent
from billing.provider import BillingProvider
from monitoring.logger import get_logger
from monitoring.metrics import Metrics, get_metrics_collector

logger = get_logger(__name__)


class SubscriptionIntentInitiator:
    """Creates a payment intent scoped to a customer."""

    def __init__(
        self,
        provider: BillingProvider,
        min_amount: int = 1,
        supported_currencies: Optional[Iterable[str]] = None,
    ):
        """
        Args:
            provider: Billing provider to open intents with
            min_amount: Smallest accepted amount in minor units
            supported_currencies: Accepted ISO 4217 codes, None accepts any three-letter code
        """
        self.provider = provider
        self.min_amount = min_amount
        self.supported_currencies = (
            frozenset(c.lower() for c in supported_currencies)
            if supported_currencies is not None
            else None
        )

    def check_terms(self, amount: int, currency: str) -> str:
        """
        Validate an amount and currency without calling the provider.

        Returns:
            The currency, normalised to lower case

        Raises:
            ValidationError: If either value is unacceptable
        """
        if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
            raise ValidationError("Amount must be a positive integer in minor currency units")
        if amount < self.min_amount:
            raise ValidationError(f"Amount must be at least {self.min_amount}")

        if not isinstance(currency, str) or len(currency.strip()) != 3 or not currency.strip().isalpha():
            raise ValidationError("Currency must be a three-letter ISO 4217 code")
        currency = currency.strip().lower()
        if self.supported_currencies is not None and currency not in self.supported_currencies:
            raise ValidationError(f"Currency '{currency}' is not supported")
        return currency

    async def create_intent(
        self,
        customer: Customer,
        amount: int,
        currency: str,
        idempotency_key: Optional[str] = None,
    ) -> PaymentIntent:
        """
        Create a payment intent with automatic payment methods.

        Args:
            customer: Resolved customer, must carry a provider id
            amount: Amount in minor currency units
            currency: ISO 4217 currency code
            idempotency_key: Optional provider idempotency key for this attempt

        Returns:
            The created payment intent, including its client secret

        Raises:
            PreconditionError: If the customer has no id
            ValidationError: If amount or currency is unacceptable
            ProviderError: If the provider rejects the intent
        """
        if customer is None or not customer.id:
            raise PreconditionError("Cannot create a payment intent for a customer without an id")

        currency = self.check_terms(amount, currency)

        params = {
            "amount": amount,
            "currency": currency,
            "automatic_payment_methods": {"enabled": True},
            "customer": customer.id,
        }

        intent = await self.provider.create_payment_intent(params, idempotency_key=idempotency_key)

        metrics = get_metrics_collector()
        metrics.increment_counter(Metrics.PAYMENT_INTENTS_CREATED, labels={"currency": currency})
        metrics.record_histogram(Metrics.PAYMENT_AMOUNT, amount, labels={"currency": currency})

        logger.info(
            "Payment intent created",
            extra={
                "payment_intent_id": intent.id,
                "customer_id": customer.id,
                "amount": amount,
                "currency": currency,
            },
        )
        return intent
