"""Pydantic schemas for API request/response validation."""

from studio_payments.schemas.admin import AdminRoleAction, AdminRoleResult, AdminUser
from studio_payments.schemas.error import ErrorCode, ErrorDetail, ErrorResponse
from studio_payments.schemas.invoice import Booking, Invoice, InvoiceWithPayments
from studio_payments.schemas.payment import (
    ChargeRequest,
    ChargeResponse,
    PaymentEventList,
    PaymentEventResponse,
    PaymentsConfigResponse,
    WebhookAck,
)
from studio_payments.schemas.stripe_event import (
    PaymentIntentPayload,
    PaymentSucceeded,
    StripeEvent,
    UnhandledEvent,
    parse_event,
)

__all__ = [
    "AdminRoleAction",
    "AdminRoleResult",
    "AdminUser",
    "ErrorCode",
    "ErrorDetail",
    "ErrorResponse",
    "Booking",
    "Invoice",
    "InvoiceWithPayments",
    "ChargeRequest",
    "ChargeResponse",
    "PaymentEventList",
    "PaymentEventResponse",
    "PaymentsConfigResponse",
    "WebhookAck",
    "PaymentIntentPayload",
    "PaymentSucceeded",
    "StripeEvent",
    "UnhandledEvent",
    "parse_event",
]
