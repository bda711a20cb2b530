"""
Error taxonomy for the checkout flow.

Every error carries a human-readable message, the HTTP status it maps to and a
classification telling who caused it: the caller (``client``), this service
(``server``) or the billing provider (``provider``).
"""

from typing import Optional


class CheckoutError(Exception):
    """Base class for all checkout failures surfaced to a caller."""

    status_code: int = 500
    classification: str = "server"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    @property
    def is_client_error(self) -> bool:
        return self.classification == "client"

    def to_dict(self) -> dict:
        return {
            "error": type(self).__name__,
            "message": self.message,
            "status_code": self.status_code,
            "classification": self.classification,
        }


class ValidationError(CheckoutError):
    """Missing or invalid caller input. Raised before any provider call."""

    status_code = 400
    classification = "client"


class PreconditionError(ValidationError):
    """An operation was attempted on an incomplete record, e.g. a customer with no id."""

    status_code = 500
    classification = "server"


class ProviderError(CheckoutError):
    """The billing provider rejected or failed a lookup, creation or intent call."""

    status_code = 502
    classification = "provider"

    def __init__(self, message: str, code: Optional[str] = None, operation: Optional[str] = None):
        super().__init__(message)
        self.code = code
        self.operation = operation


class ProviderTimeoutError(ProviderError):
    """A provider call did not complete within its time budget."""

    status_code = 504
