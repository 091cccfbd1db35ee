"""Charge initiation: Stripe customer references and payment intents."""
from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Optional

import structlog
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from studio_payments import metrics
from studio_payments.adapters.stripe_adapter import StripeAdapter
from studio_payments.config import settings
from studio_payments.exceptions import ConfigurationError, InvalidArgumentError
from studio_payments.models.user import User, UserRole
from studio_payments.schemas.stripe_event import GUEST_USER_ID, UNKNOWN_INVOICE_ID
from studio_payments.utils.sql import insert_if_absent

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class CallerIdentity:
    """Identity taken from a verified access token."""

    uid: str
    email: Optional[str] = None


def to_minor_units(amount: float) -> int:
    """
    Round an amount already expressed in cents to a whole number of cents.

    Raises:
        InvalidArgumentError: If the amount is not a finite number
    """
    try:
        return int(Decimal(str(amount)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    except (InvalidOperation, ValueError) as e:
        raise InvalidArgumentError("Amount must be a finite number of cents") from e


class ChargeService:
    """Service opening Stripe payment intents for checkouts and invoice payments."""

    def __init__(self, db: AsyncSession, stripe_adapter: StripeAdapter):
        """Initialize charge service."""
        self.db = db
        self.stripe = stripe_adapter

    async def create_charge(
        self,
        amount: float,
        currency: Optional[str] = None,
        invoice_id: Optional[str] = None,
        caller: Optional[CallerIdentity] = None,
        guest_email: Optional[str] = None,
    ) -> str:
        """
        Open a payment intent and return its client secret.

        Identity precedence: the caller's uid and token email, then the guest
        email from the request, then the configured fallback email.

        Args:
            amount: Amount in cents (fractional input is rounded)
            currency: ISO currency code, defaults to the configured currency
            invoice_id: Invoice this payment settles
            caller: Authenticated caller, if any
            guest_email: Email supplied by an unauthenticated checkout

        Returns:
            Client secret of the new payment intent

        Raises:
            ConfigurationError: If Stripe is not configured
            InvalidArgumentError: If the amount rounds to less than one cent
            ExternalServiceError: If Stripe rejects the request
        """
        if not self.stripe.configured:
            logger.error("charge_rejected_stripe_not_configured")
            raise ConfigurationError("Configuration error")

        amount_cents = to_minor_units(amount)
        if amount_cents <= 0:
            raise InvalidArgumentError("Amount must be a positive number of cents")

        currency = (currency or settings.default_currency).lower()

        uid = caller.uid if caller else None
        email = (caller.email if caller else None) or guest_email or settings.guest_fallback_email

        customer_id = None
        if uid:
            customer_id = await self.get_or_create_customer(uid, email)

        intent = await self.stripe.create_payment_intent(
            amount=amount_cents,
            currency=currency,
            metadata={
                "userId": uid or GUEST_USER_ID,
                "invoiceId": invoice_id or UNKNOWN_INVOICE_ID,
                "email": email,
            },
            customer_id=customer_id,
        )

        metrics.payment_intents_created_total.labels(
            currency=currency,
            customer="authenticated" if customer_id else "guest",
        ).inc()

        logger.info(
            "payment_intent_created",
            payment_intent_id=intent["id"],
            amount=amount_cents,
            currency=currency,
            user_id=uid or GUEST_USER_ID,
            invoice_id=invoice_id or UNKNOWN_INVOICE_ID,
        )

        return intent["client_secret"]

    async def get_or_create_customer(self, uid: str, email: str) -> str:
        """
        Resolve the Stripe customer reference for a user, creating it on first use.

        The reference is stored with a conditional write that only succeeds if
        none is stored yet. A request that loses the race adopts the stored
        reference. Stripe's idempotency key makes both racers receive the same
        customer in the common case. The reference is committed here, so it
        survives a payment intent that Stripe later rejects.

        Args:
            uid: Portal user id
            email: Customer email

        Returns:
            Stripe customer ID
        """
        await insert_if_absent(
            self.db,
            User,
            {"id": uid, "email": email, "role": UserRole.CLIENT, "is_super_admin": False},
        )
        user = await self.db.get(User, uid, populate_existing=True)

        if user.stripe_customer_id:
            return user.stripe_customer_id

        customer_id = await self.stripe.create_customer(email=email, user_id=uid)

        result = await self.db.execute(
            update(User)
            .where(User.id == uid, User.stripe_customer_id.is_(None))
            .values(stripe_customer_id=customer_id, updated_at=datetime.utcnow())
            .execution_options(synchronize_session=False)
        )
        # Committed before the intent is requested so the reference outlives a rejected intent
        await self.db.commit()

        if result.rowcount == 0:
            await self.db.refresh(user)
            logger.warning(
                "customer_reference_race_lost",
                user_id=uid,
                created_customer_id=customer_id,
                stored_customer_id=user.stripe_customer_id,
            )
            return user.stripe_customer_id

        await self.db.refresh(user)
        metrics.customer_references_created_total.inc()
        logger.info("customer_reference_created", user_id=uid, customer_id=customer_id)
        return customer_id
