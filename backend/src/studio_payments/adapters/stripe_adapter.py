"""Stripe payment gateway adapter."""
from typing import Any, Optional

import stripe
import structlog

from studio_payments.config import Settings
from studio_payments.exceptions import ConfigurationError, ExternalServiceError, WebhookVerificationError

logger = structlog.get_logger(__name__)


class StripeAdapter:
    """
    Adapter for Stripe payment gateway integration.

    Holds one ``stripe.StripeClient`` built by the application root. When no
    secret key is configured the adapter still verifies webhook signatures,
    but every API call raises ``ConfigurationError``.
    """

    def __init__(self, client: Optional[stripe.StripeClient] = None):
        """Initialize Stripe adapter with a constructed client (or None when unconfigured)."""
        self._client = client

    @classmethod
    def from_settings(cls, settings: Settings) -> "StripeAdapter":
        """
        Build the adapter from application settings.

        Args:
            settings: Application settings

        Returns:
            StripeAdapter, unconfigured if the secret key is missing
        """
        if not settings.stripe_secret_key:
            logger.error("stripe_secret_key_missing")
            return cls(None)
        return cls(stripe.StripeClient(settings.stripe_secret_key))

    @property
    def configured(self) -> bool:
        """Whether API calls can be made."""
        return self._client is not None

    def _require_client(self) -> stripe.StripeClient:
        if self._client is None:
            raise ConfigurationError("Configuration error")
        return self._client

    async def create_customer(self, email: str, user_id: str) -> str:
        """
        Create a Stripe customer for a portal user.

        The idempotency key is derived from the user id, so concurrent first
        charges by the same user resolve to one Stripe customer.

        Args:
            email: Customer email
            user_id: Portal user id

        Returns:
            Stripe customer ID
        """
        client = self._require_client()
        try:
            customer = await client.v1.customers.create_async(
                params={"email": email, "metadata": {"portalUid": user_id}},
                options={"idempotency_key": f"customer-{user_id}"},
            )
        except stripe.StripeError as e:
            logger.error("stripe_customer_create_failed", user_id=user_id, error=str(e))
            raise ExternalServiceError(e.user_message or str(e)) from e
        return customer.id

    async def create_payment_intent(
        self,
        amount: int,
        currency: str,
        metadata: dict[str, str],
        customer_id: Optional[str] = None,
    ) -> dict[str, Any]:
        """
        Create a payment intent confirmed later by the client widget.

        Args:
            amount: Amount in cents
            currency: ISO currency code
            metadata: {userId, invoiceId, email}
            customer_id: Stripe customer ID (optional)

        Returns:
            Payment intent details
        """
        client = self._require_client()

        params: dict[str, Any] = {
            "amount": amount,
            "currency": currency.lower(),
            "metadata": metadata,
            "automatic_payment_methods": {"enabled": True},
        }

        if customer_id:
            params["customer"] = customer_id
            params["setup_future_usage"] = "off_session"

        try:
            payment_intent = await client.v1.payment_intents.create_async(params=params)
        except stripe.StripeError as e:
            logger.error("stripe_payment_intent_failed", amount=amount, currency=currency, error=str(e))
            raise ExternalServiceError(e.user_message or str(e)) from e

        return {
            "id": payment_intent.id,
            "status": payment_intent.status,
            "amount": payment_intent.amount,
            "currency": payment_intent.currency,
            "client_secret": payment_intent.client_secret,
        }

    async def create_webhook_endpoint(self, url: str, enabled_events: list[str]) -> dict[str, Any]:
        """
        Register a webhook endpoint.

        Args:
            url: Public URL of the webhook receiver
            enabled_events: Event types to deliver

        Returns:
            Endpoint id and signing secret
        """
        client = self._require_client()
        try:
            endpoint = await client.v1.webhook_endpoints.create_async(
                params={
                    "url": url,
                    "enabled_events": enabled_events,
                    "description": "Studio payments settlement webhook",
                }
            )
        except stripe.StripeError as e:
            raise ExternalServiceError(e.user_message or str(e)) from e
        return {"id": endpoint.id, "secret": endpoint.secret}

    async def check_connectivity(self) -> int:
        """
        Make a cheap authenticated call.

        Returns:
            Number of customers returned (0 or 1)
        """
        client = self._require_client()
        try:
            customers = await client.v1.customers.list_async(params={"limit": 1})
        except stripe.StripeError as e:
            raise ExternalServiceError(e.user_message or str(e)) from e
        return len(customers.data)

    @staticmethod
    def verify_webhook_signature(payload: bytes, signature: Optional[str], secret: str, tolerance: int) -> None:
        """
        Verify a webhook body against its Stripe-Signature header.

        Args:
            payload: Raw request body, unparsed
            signature: Stripe-Signature header value
            secret: Endpoint signing secret
            tolerance: Maximum timestamp age in seconds

        Raises:
            WebhookVerificationError: If the header is missing or does not match
        """
        if not signature:
            raise WebhookVerificationError("Missing Stripe signature")
        try:
            stripe.WebhookSignature.verify_header(payload.decode("utf-8"), signature, secret, tolerance)
        except UnicodeDecodeError as e:
            raise WebhookVerificationError(f"Invalid payload: {e}") from e
        except stripe.SignatureVerificationError as e:
            raise WebhookVerificationError(f"Invalid signature: {e}") from e
