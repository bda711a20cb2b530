"""
Data models for checkout initiation.
"""

from typing import Optional
from enum import Enum
from pydantic import BaseModel, Field, validator


class CheckoutState(str, Enum):
    """Per-request checkout states."""
    VALIDATING = "validating"
    RESOLVING_CUSTOMER = "resolving-customer"
    CREATING_INTENT = "creating-intent"
    COMPLETED = "completed"
    FAILED = "failed"


TERMINAL_CHECKOUT_STATES = frozenset({CheckoutState.COMPLETED, CheckoutState.FAILED})


class Customer(BaseModel):
    """A billing customer as known to the provider."""

    id: Optional[str] = Field(None, description="Provider-assigned customer ID")
    email: str = Field(..., description="Customer email")

    class Config:
        frozen = True


class PaymentIntent(BaseModel):
    """A provider-side payment intent opened for one checkout attempt."""

    id: str = Field(..., description="Payment Intent ID")
    client_secret: str = Field(..., description="Secret the client uses to complete payment")
    amount: int = Field(..., description="Amount in minor currency units")
    currency: str = Field(..., description="ISO 4217 currency code")
    customer_id: str = Field(..., description="Customer the intent is scoped to")
    status: str = Field(..., description="Provider status, e.g. requires_payment_method")

    class Config:
        frozen = True


class CheckoutRequest(BaseModel):
    """Body of a checkout initiation request."""

    customer_email: str = Field(..., alias="customerEmail", description="Customer email")
    amount: Optional[int] = Field(None, gt=0, description="Amount in minor currency units")
    currency: Optional[str] = Field(None, min_length=3, max_length=3, description="ISO 4217 code")

    class Config:
        populate_by_name = True

    @validator("customer_email")
    def email_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Missing customer email")
        return v

    @validator("currency")
    def normalise_currency(cls, v: Optional[str]) -> Optional[str]:
        """Stripe expects lower-case currency codes."""
        return v.lower() if v else v


class CheckoutResult(BaseModel):
    """Successful checkout initiation response."""

    client_secret: str = Field(..., alias="clientSecret")
    payment_intent_id: str = Field(..., alias="paymentIntentId")

    class Config:
        populate_by_name = True

    def to_response(self) -> dict:
        return self.model_dump(by_alias=True)
