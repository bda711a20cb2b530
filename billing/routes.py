"""
HTTP endpoint for checkout initiation.
"""

import json
from typing import Dict, Optional
from fastapi import APIRouter, Depends, Header, HTTPException, Request

from billing.checkout import CheckoutOrchestrator
from billing.config import get_settings
from billing.errors import CheckoutError
from billing.stripe_client import StripeBillingProvider
from monitoring.logger import get_logger

logger = get_logger(__name__)

router = APIRouter(tags=["checkout"])

_orchestrator: Optional[CheckoutOrchestrator] = None


def get_orchestrator() -> CheckoutOrchestrator:
    """Get or create the Stripe-backed orchestrator."""
    global _orchestrator
    if _orchestrator is None:
        settings = get_settings()
        provider = StripeBillingProvider(
            api_key=settings.stripe_api_key,
            api_version=settings.stripe_api_version,
        )
        _orchestrator = CheckoutOrchestrator.from_provider(provider, settings)
    return _orchestrator


@router.post("/subscribe")
async def subscribe(
    request: Request,
    orchestrator: CheckoutOrchestrator = Depends(get_orchestrator),
    idempotency_key: Optional[str] = Header(None, alias="Idempotency-Key"),
) -> Dict[str, str]:
    """
    Resolve the customer for ``customerEmail`` and open a payment intent.

    Body: ``{"customerEmail": str, "amount"?: int, "currency"?: str}``.
    Returns ``{"clientSecret": str, "paymentIntentId": str}``.
    """
    try:
        payload = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise HTTPException(status_code=400, detail="Request body must be valid JSON")

    try:
        result = await orchestrator.initiate_checkout(payload, idempotency_key=idempotency_key)
        return result.to_response()

    except CheckoutError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"Unexpected error initiating checkout: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal server error")
