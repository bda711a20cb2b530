"""
Resolves a checkout email to a billing customer, creating one when needed.
"""

import asyncio
import hashlib
import uuid
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Optional

from billing.errors import ProviderError, ValidationError
from billing.models import Customer
from billing.provider import BillingProvider
from monitoring.logger import get_logger
from monitoring.metrics import Metrics, get_metrics_collector

logger = get_logger(__name__)

DEFAULT_LOOKUP_LIMIT = 10


def normalize_email(email: str) -> str:
    return email.strip().lower()


def customer_idempotency_key(email: str, attempt: Optional[str] = None) -> str:
    """Provider idempotency key for one customer-creation attempt.

    Stripe replays the stored result of a key for 24 hours, failures included,
    so every attempt gets its own key unless the caller supplies ``attempt``
    (e.g. its own Idempotency-Key, to make its retries converge).
    """
    digest = hashlib.sha256(normalize_email(email).encode("utf-8")).hexdigest()[:24]
    return f"customer-create-{digest}-{attempt or uuid.uuid4().hex}"


class _KeyedLocks:
    """asyncio locks keyed by string, dropped once nobody holds or awaits them."""

    def __init__(self):
        self._locks: Dict[str, asyncio.Lock] = {}
        self._users: Dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._users[key] = self._users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[key] -= 1
            if self._users[key] == 0:
                del self._users[key]
                del self._locks[key]

    def __len__(self) -> int:
        return len(self._locks)


class CustomerResolver:
    """Returns the existing customer for an email or creates one.

    Emails are normalised (stripped, lower-cased) before lookup and creation,
    and lookup-then-create for one normalised email is serialised, so
    concurrent resolutions of an unseen email create a single customer.
    """

    def __init__(
        self,
        provider: BillingProvider,
        lookup_limit: int = DEFAULT_LOOKUP_LIMIT,
        use_idempotency_keys: bool = True,
    ):
        self.provider = provider
        self.lookup_limit = lookup_limit
        self.use_idempotency_keys = use_idempotency_keys
        self._locks = _KeyedLocks()

    async def find(self, email: str) -> Optional[Customer]:
        """
        Look up the customer registered under ``email``.

        Returns:
            The first match in provider order, or None when there is none
        """
        matches = await self.provider.list_customers_by_email(email, self.lookup_limit)
        if not matches:
            return None

        if len(matches) > 1:
            logger.warning(
                "Multiple customers share an email, using the first",
                extra={"match_count": len(matches), "customer_id": matches[0].id},
            )
        return matches[0]

    async def create(self, email: str, attempt: Optional[str] = None) -> Customer:
        key = customer_idempotency_key(email, attempt) if self.use_idempotency_keys else None
        return await self.provider.create_customer({"email": email}, idempotency_key=key)

    async def resolve(self, email: str, attempt: Optional[str] = None) -> Customer:
        """
        Resolve an email to a customer.

        Args:
            email: Customer email, must be non-empty
            attempt: Optional caller key reused across retries of one checkout

        Returns:
            A customer with a provider-assigned id

        Raises:
            ValidationError: If the email is empty
            ProviderError: If the lookup or the creation fails
        """
        if not email or not email.strip():
            raise ValidationError("Missing customer email")
        email = normalize_email(email)

        metrics = get_metrics_collector()

        async with self._locks.hold(email):
            customer = await self.find(email)
            if customer is not None:
                metrics.increment_counter(Metrics.CUSTOMERS_FOUND)
                logger.info("Existing customer found", extra={"customer_id": customer.id})
            else:
                customer = await self.create(email, attempt)
                metrics.increment_counter(Metrics.CUSTOMERS_CREATED)
                logger.info("Customer created", extra={"customer_id": customer.id})

        if not customer.id:
            raise ProviderError("Billing provider returned a customer without an id")
        return customer
