"""Pydantic schemas for charges and processed payment events."""
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel

from studio_payments.models.payment_event import SettlementStatus


class CamelModel(BaseModel):
    """Base schema serialised with camelCase keys, accepting either spelling on input."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class ChargeRequest(CamelModel):
    """Schema for opening a payment intent.

    Examples:
        Guest deposit:
            ```json
            {"amount": 24900, "currency": "usd", "email": "guest@example.com"}
            ```

        Invoice balance for a signed-in client:
            ```json
            {"amount": 30000, "invoiceId": "inv_8f2c"}
            ```
    """

    amount: float = Field(..., gt=0, allow_inf_nan=False, description="Amount in cents; fractional input is rounded")
    currency: Optional[str] = Field(default=None, min_length=3, max_length=3, description="ISO 4217 currency code")
    invoice_id: Optional[str] = Field(default=None, description="Invoice this payment settles")
    email: Optional[EmailStr] = Field(default=None, description="Receipt email for guest checkouts")


class ChargeResponse(CamelModel):
    """Only the client secret leaves the server."""

    client_secret: str


class PaymentsConfigResponse(CamelModel):
    """Client widget configuration."""

    publishable_key: Optional[str] = None


class PaymentEventResponse(CamelModel):
    """Schema for a processed payment event (``payments/{eventId}``)."""

    event_id: str
    type: str = Field(..., validation_alias="event_type")
    payment_intent_id: str
    amount: int = Field(..., description="Amount in cents")
    currency: str
    status: str
    created: datetime
    user_id: Optional[str] = None
    invoice_id: Optional[str] = None
    metadata: dict[str, Any] = Field(default_factory=dict, validation_alias="payment_metadata")
    processed_at: datetime
    settlement_status: SettlementStatus
    settlement_attempts: int = 0
    settlement_error: Optional[str] = None
    settled_at: Optional[datetime] = None


class PaymentEventList(CamelModel):
    """Schema for paginated list of processed payment events."""

    items: list[PaymentEventResponse]
    total: int
    page: int
    page_size: int


class WebhookAck(BaseModel):
    """Body returned to Stripe for every durable outcome."""

    received: bool = True
