"""Parsed Stripe webhook events.

Only the event types this service acts on get a typed variant; everything
else is an ``UnhandledEvent`` that is acknowledged and ignored.
"""
from datetime import datetime, timezone
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

PAYMENT_INTENT_SUCCEEDED = "payment_intent.succeeded"

# Metadata placeholders written by the charge initiator
GUEST_USER_ID = "guest"
UNKNOWN_INVOICE_ID = "unknown"


class PaymentIntentPayload(BaseModel):
    """The ``data.object`` of a payment_intent event."""

    model_config = ConfigDict(extra="ignore")

    id: str
    amount: int = Field(..., ge=0, description="Amount in cents")
    currency: str
    status: str = "succeeded"
    metadata: dict[str, str] = Field(default_factory=dict)


class PaymentSucceeded(BaseModel):
    """A ``payment_intent.succeeded`` event."""

    event_id: str
    type: str = PAYMENT_INTENT_SUCCEEDED
    created: datetime
    intent: PaymentIntentPayload

    @property
    def user_id(self) -> Optional[str]:
        """Portal user id, or None for guest checkouts."""
        user_id = self.intent.metadata.get("userId")
        if not user_id or user_id == GUEST_USER_ID:
            return None
        return user_id

    @property
    def invoice_id(self) -> Optional[str]:
        """Invoice to settle, or None when the charge was not tied to one."""
        invoice_id = self.intent.metadata.get("invoiceId")
        if not invoice_id or invoice_id == UNKNOWN_INVOICE_ID:
            return None
        return invoice_id


class UnhandledEvent(BaseModel):
    """Any event type this service does not act on."""

    event_id: str
    type: str


StripeEvent = Union[PaymentSucceeded, UnhandledEvent]


class _EventEnvelope(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    type: str
    created: int
    data: dict[str, Any] = Field(default_factory=dict)


def parse_event(payload: dict[str, Any]) -> StripeEvent:
    """
    Validate a decoded webhook body into a typed event.

    Args:
        payload: JSON-decoded Stripe event

    Returns:
        PaymentSucceeded or UnhandledEvent

    Raises:
        pydantic.ValidationError: If the envelope or a handled payload is malformed
    """
    envelope = _EventEnvelope.model_validate(payload)

    if envelope.type != PAYMENT_INTENT_SUCCEEDED:
        return UnhandledEvent(event_id=envelope.id, type=envelope.type)

    return PaymentSucceeded(
        event_id=envelope.id,
        created=datetime.fromtimestamp(envelope.created, tz=timezone.utc).replace(tzinfo=None),
        intent=PaymentIntentPayload.model_validate(envelope.data.get("object")),
    )
