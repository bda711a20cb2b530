"""
Environment-driven settings for checkout initiation.
"""

import os
from typing import FrozenSet, Optional
from pydantic import BaseModel, Field


def _csv(value: str) -> FrozenSet[str]:
    return frozenset(part.strip().lower() for part in value.split(",") if part.strip())


class CheckoutSettings(BaseModel):
    """Checkout defaults, validation limits and provider options."""

    stripe_api_key: Optional[str] = Field(None, description="Stripe secret key")
    stripe_api_version: str = Field("2023-08-16", description="Pinned Stripe API version")

    default_amount: int = Field(1000, gt=0, description="Amount used when the request has none")
    default_currency: str = Field("gbp", description="Currency used when the request has none")
    min_amount: int = Field(30, gt=0, description="Smallest accepted amount in minor units")
    supported_currencies: FrozenSet[str] = Field(
        default_factory=lambda: frozenset({"gbp", "usd", "eur"}),
        description="Accepted ISO 4217 codes (lower case)",
    )

    customer_lookup_limit: int = Field(10, gt=0, description="Page size for email lookups")
    provider_timeout_seconds: Optional[float] = Field(
        10.0, description="Budget per provider step, None disables"
    )

    @classmethod
    def from_env(cls) -> "CheckoutSettings":
        """Build settings from environment variables."""
        timeout = float(os.getenv("PROVIDER_TIMEOUT_SECONDS", "10"))
        return cls(
            stripe_api_key=os.getenv("STRIPE_API_KEY"),
            stripe_api_version=os.getenv("STRIPE_API_VERSION", "2023-08-16"),
            default_amount=int(os.getenv("CHECKOUT_DEFAULT_AMOUNT", "1000")),
            default_currency=os.getenv("CHECKOUT_DEFAULT_CURRENCY", "gbp").lower(),
            min_amount=int(os.getenv("CHECKOUT_MIN_AMOUNT", "30")),
            supported_currencies=_csv(os.getenv("CHECKOUT_SUPPORTED_CURRENCIES", "gbp,usd,eur")),
            customer_lookup_limit=int(os.getenv("CUSTOMER_LOOKUP_LIMIT", "10")),
            provider_timeout_seconds=timeout if timeout > 0 else None,
        )


_settings: Optional[CheckoutSettings] = None


def get_settings() -> CheckoutSettings:
    """Get or create the process-wide settings."""
    global _settings
    if _settings is None:
        _settings = CheckoutSettings.from_env()
    return _settings
