"""
Billing customer provisioning and payment intent creation for checkout.
"""

from billing.checkout import CheckoutOrchestrator
from billing.customer_resolver import CustomerResolver
from billing.errors import (
    CheckoutError,
    PreconditionError,
    ProviderError,
    ProviderTimeoutError,
    ValidationError,
)
from billing.intent_initiator import SubscriptionIntentInitiator
from billing.models import CheckoutRequest, CheckoutResult, Customer, PaymentIntent

__all__ = [
    "CheckoutOrchestrator",
    "CustomerResolver",
    "SubscriptionIntentInitiator",
    "CheckoutRequest",
    "CheckoutResult",
    "Customer",
    "PaymentIntent",
    "CheckoutError",
    "ValidationError",
    "PreconditionError",
    "ProviderError",
    "ProviderTimeoutError",
]
