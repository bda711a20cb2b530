"""
Checkout initiation: validate the request, resolve the customer, open a payment intent.
"""

import asyncio
import uuid
from typing import Any, Awaitable, Mapping, Optional, TypeVar, Union

import pydantic
import structlog

from billing.config import CheckoutSettings, get_settings
from billing.customer_resolver import CustomerResolver
from billing.errors import CheckoutError, ProviderError, ProviderTimeoutError, ValidationError
from billing.intent_initiator import SubscriptionIntentInitiator
from billing.models import CheckoutRequest, CheckoutResult, CheckoutState
from billing.provider import BillingProvider
from monitoring.logger import get_logger
from monitoring.metrics import Metrics, get_metrics_collector

logger = get_logger(__name__)

T = TypeVar("T")


def parse_request(request: Union[CheckoutRequest, Mapping[str, Any], None]) -> CheckoutRequest:
    """Turn a request body into a CheckoutRequest, raising ValidationError on bad input."""
    if isinstance(request, CheckoutRequest):
        return request
    if not isinstance(request, Mapping):
        raise ValidationError("Request body must be a JSON object")

    try:
        return CheckoutRequest.model_validate(dict(request))
    except pydantic.ValidationError as e:
        errors = e.errors()
        if any(err["loc"] and err["loc"][0] in ("customerEmail", "customer_email") for err in errors):
            raise ValidationError("Missing customer email") from e
        detail = "; ".join(
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in errors
        )
        raise ValidationError(f"Invalid checkout request: {detail}") from e


class CheckoutOrchestrator:
    """Drives one checkout attempt through its states.

    Validating -> Resolving-Customer -> Creating-Intent -> Completed, or Failed
    from any of them. Provider-bound steps are bounded by
    ``settings.provider_timeout_seconds``.
    """

    def __init__(
        self,
        resolver: CustomerResolver,
        initiator: SubscriptionIntentInitiator,
        settings: Optional[CheckoutSettings] = None,
    ):
        self.resolver = resolver
        self.initiator = initiator
        self.settings = settings or get_settings()

    @classmethod
    def from_provider(
        cls,
        provider: BillingProvider,
        settings: Optional[CheckoutSettings] = None,
    ) -> "CheckoutOrchestrator":
        settings = settings or get_settings()
        resolver = CustomerResolver(provider, lookup_limit=settings.customer_lookup_limit)
        initiator = SubscriptionIntentInitiator(
            provider,
            min_amount=settings.min_amount,
            supported_currencies=settings.supported_currencies,
        )
        return cls(resolver, initiator, settings)

    async def _bounded(self, awaitable: Awaitable[T], step: str) -> T:
        timeout = self.settings.provider_timeout_seconds
        if timeout is None:
            return await awaitable
        try:
            return await asyncio.wait_for(awaitable, timeout)
        except asyncio.TimeoutError as e:
            get_metrics_collector().increment_counter(Metrics.PROVIDER_TIMEOUTS, labels={"step": step})
            raise ProviderTimeoutError(
                f"Billing provider did not respond within {timeout:g}s", operation=step
            ) from e

    async def initiate_checkout(
        self,
        request: Union[CheckoutRequest, Mapping[str, Any], None],
        idempotency_key: Optional[str] = None,
    ) -> CheckoutResult:
        """
        Initiate a checkout.

        Args:
            request: CheckoutRequest or a mapping using the wire names
                (customerEmail, amount, currency)
            idempotency_key: Optional caller key; scopes the customer creation
                attempt and is forwarded to the intent creation

        Returns:
            Client secret and payment intent id

        Raises:
            ValidationError: Missing or invalid input, no provider call made
            ProviderError: Customer lookup/creation or intent creation failed
        """
        checkout_id = uuid.uuid4().hex[:12]
        metrics = get_metrics_collector()
        metrics.increment_counter(Metrics.CHECKOUTS_TOTAL)
        timer = f"{Metrics.CHECKOUT}:{checkout_id}"
        metrics.start_timer(timer)

        state = CheckoutState.VALIDATING
        with structlog.contextvars.bound_contextvars(checkout_id=checkout_id):
            try:
                logger.debug("Checkout state", extra={"state": state.value})
                checkout = parse_request(request)
                amount = checkout.amount if checkout.amount is not None else self.settings.default_amount
                currency = self.initiator.check_terms(
                    amount, checkout.currency or self.settings.default_currency
                )

                state = CheckoutState.RESOLVING_CUSTOMER
                logger.debug("Checkout state", extra={"state": state.value})
                customer = await self._bounded(
                    self.resolver.resolve(checkout.customer_email, attempt=idempotency_key),
                    "customer resolution",
                )

                state = CheckoutState.CREATING_INTENT
                logger.debug("Checkout state", extra={"state": state.value, "customer_id": customer.id})
                intent = await self._bounded(
                    self.initiator.create_intent(
                        customer, amount, currency, idempotency_key=idempotency_key
                    ),
                    "payment intent creation",
                )

            except CheckoutError as e:
                metrics.increment_counter(
                    Metrics.CHECKOUTS_FAILED, labels={"classification": e.classification}
                )
                if isinstance(e, ProviderError):
                    metrics.increment_counter(Metrics.PROVIDER_ERRORS)
                logger.warning(
                    "Checkout failed",
                    extra={
                        "state": CheckoutState.FAILED.value,
                        "failed_in": state.value,
                        "error": type(e).__name__,
                        "reason": e.message,
                    },
                )
                raise
            finally:
                metrics.stop_timer(timer, metric=Metrics.CHECKOUT)

            state = CheckoutState.COMPLETED
            metrics.increment_counter(Metrics.CHECKOUTS_COMPLETED)
            logger.info(
                "Checkout initiated",
                extra={
                    "state": state.value,
                    "customer_id": customer.id,
                    "payment_intent_id": intent.id,
                    "amount": amount,
                    "currency": currency,
                },
            )
            return CheckoutResult(client_secret=intent.client_secret, payment_intent_id=intent.id)
