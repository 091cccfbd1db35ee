"""Stripe webhook endpoint for payment confirmations."""
import structlog
from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from studio_payments.adapters.stripe_adapter import StripeAdapter
from studio_payments.api.deps import get_db, get_stripe_adapter
from studio_payments.schemas.payment import WebhookAck
from studio_payments.services.webhook_service import WebhookService

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/webhooks/stripe", tags=["webhooks"])


@router.post("", response_model=WebhookAck)
async def handle_stripe_webhook(
    request: Request,
    db: AsyncSession = Depends(get_db),
    stripe_adapter: StripeAdapter = Depends(get_stripe_adapter),
) -> WebhookAck:
    """
    Handle incoming Stripe webhook events.

    The raw body is verified against the ``Stripe-Signature`` header before
    it is parsed. Only ``payment_intent.succeeded`` is recorded and settled;
    other event types are acknowledged and ignored. Redelivered events are
    acknowledged without being processed again.

    Returns:
        ``{"received": true}`` once the event is durably recorded

    Raises:
        WebhookVerificationError: 400 if the signature or payload is invalid
    """
    body = await request.body()
    signature = request.headers.get("stripe-signature")

    service = WebhookService(db, stripe_adapter)
    outcome = await service.receive(body, signature)

    logger.info("stripe_webhook_acknowledged", outcome=outcome.value)
    return WebhookAck()
