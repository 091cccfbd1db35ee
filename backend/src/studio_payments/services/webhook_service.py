"""Service receiving Stripe webhook deliveries and recording processed events."""
from datetime import datetime
from typing import Optional
import enum
import json

import structlog
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from studio_payments import metrics
from studio_payments.adapters.stripe_adapter import StripeAdapter
from studio_payments.config import settings
from studio_payments.exceptions import WebhookVerificationError
from studio_payments.models.payment_event import PaymentEvent, SettlementStatus
from studio_payments.schemas.stripe_event import PaymentSucceeded, StripeEvent, UnhandledEvent, parse_event
from studio_payments.services.settlement_service import SettlementOutcome, SettlementService
from studio_payments.utils.sql import insert_if_absent

logger = structlog.get_logger(__name__)


class WebhookOutcome(enum.Enum):
    """What happened to one webhook delivery."""

    RECORDED = "recorded"
    DUPLICATE = "duplicate"
    IGNORED = "ignored"


class WebhookService:
    """
    Service for inbound Stripe webhooks.

    A delivery is acknowledged once its event row is committed. The row is
    keyed by the Stripe event id, so redeliveries find it and stop there.
    Settlement runs afterwards in its own transaction; a failure is written
    to the event row for the retry worker instead of failing the delivery.
    """

    def __init__(self, db: AsyncSession, stripe_adapter: StripeAdapter):
        """Initialize webhook service."""
        self.db = db
        self.stripe = stripe_adapter

    async def receive(self, payload: bytes, signature: Optional[str]) -> WebhookOutcome:
        """
        Authenticate, parse, deduplicate and settle one delivery.

        Args:
            payload: Raw request body
            signature: Stripe-Signature header value

        Returns:
            WebhookOutcome

        Raises:
            WebhookVerificationError: If the signature or payload is invalid
        """
        event = self.construct_event(payload, signature)

        logger.info("stripe_webhook_received", event_id=event.event_id, event_type=event.type)

        if isinstance(event, UnhandledEvent):
            logger.info("stripe_webhook_unhandled_event", event_id=event.event_id, event_type=event.type)
            metrics.webhook_events_total.labels(event_type=event.type, outcome=WebhookOutcome.IGNORED.value).inc()
            return WebhookOutcome.IGNORED

        created = await self._record_event(event)
        await self.db.commit()

        if not created:
            logger.info("stripe_webhook_duplicate_event", event_id=event.event_id)
            metrics.webhook_events_total.labels(event_type=event.type, outcome=WebhookOutcome.DUPLICATE.value).inc()
            return WebhookOutcome.DUPLICATE

        metrics.webhook_events_total.labels(event_type=event.type, outcome=WebhookOutcome.RECORDED.value).inc()
        logger.info(
            "payment_event_recorded",
            event_id=event.event_id,
            payment_intent_id=event.intent.id,
            amount=event.intent.amount,
            currency=event.intent.currency,
            user_id=event.user_id,
            invoice_id=event.invoice_id,
        )

        if event.invoice_id is not None:
            await self._settle(event)

        return WebhookOutcome.RECORDED

    def construct_event(self, payload: bytes, signature: Optional[str]) -> StripeEvent:
        """
        Verify the signature (when a signing secret is configured) and parse the body.

        Args:
            payload: Raw request body
            signature: Stripe-Signature header value

        Returns:
            Typed event

        Raises:
            WebhookVerificationError: If verification or parsing fails
        """
        secret = settings.stripe_webhook_secret
        if secret:
            try:
                self.stripe.verify_webhook_signature(payload, signature, secret, settings.stripe_webhook_tolerance)
            except WebhookVerificationError as e:
                logger.error("stripe_webhook_verification_failed", error=e.message)
                metrics.webhook_events_total.labels(event_type="unknown", outcome="rejected").inc()
                raise
        else:
            logger.warning("stripe_webhook_unverified", reason="degraded mode: STRIPE_WEBHOOK_SECRET not set")

        try:
            return parse_event(json.loads(payload))
        except (ValueError, ValidationError) as e:
            logger.error("stripe_webhook_invalid_payload", error=str(e))
            metrics.webhook_events_total.labels(event_type="unknown", outcome="rejected").inc()
            raise WebhookVerificationError(f"Invalid payload: {e}") from e

    async def _record_event(self, event: PaymentSucceeded) -> bool:
        """Insert the event row unless it exists. Returns True if this call created it."""
        now = datetime.utcnow()
        has_invoice = event.invoice_id is not None

        return await insert_if_absent(
            self.db,
            PaymentEvent,
            {
                "id": event.event_id,
                "event_type": event.type,
                "payment_intent_id": event.intent.id,
                "amount": event.intent.amount,
                "currency": event.intent.currency.lower(),
                "status": event.intent.status,
                "created": event.created,
                "user_id": event.user_id,
                "invoice_id": event.invoice_id,
                "payment_metadata": dict(event.intent.metadata),
                "processed_at": now,
                "settlement_status": SettlementStatus.PENDING if has_invoice else SettlementStatus.SKIPPED,
                "settlement_attempts": 0,
                "settled_at": None if has_invoice else now,
            },
        )

    async def _settle(self, event: PaymentSucceeded) -> None:
        """Settle a freshly recorded event; failures are recorded for retry."""
        settlement = SettlementService(self.db)
        try:
            outcome = await settlement.reconcile(
                invoice_id=event.invoice_id,
                paid_amount=event.intent.amount,
                transaction_id=event.intent.id,
                event_id=event.event_id,
            )
            await self.db.commit()
        except Exception as e:
            await self.db.rollback()
            logger.exception(
                "settlement_failed",
                event_id=event.event_id,
                invoice_id=event.invoice_id,
                error=str(e),
            )
            await settlement.record_failure(event.event_id, str(e))
            await self.db.commit()
            return

        if outcome == SettlementOutcome.INVOICE_NOT_FOUND:
            logger.warning("stripe_webhook_invoice_not_found", event_id=event.event_id, invoice_id=event.invoice_id)
