"""Pydantic schemas for invoice and booking ledger documents."""
from datetime import datetime
from typing import Any, Optional

from pydantic import Field

from studio_payments.models.booking import BookingStatus
from studio_payments.models.invoice import InvoiceStatus
from studio_payments.schemas.payment import CamelModel, PaymentEventResponse


class Invoice(CamelModel):
    """Schema for returning invoice data (``invoices/{id}``)."""

    id: str
    invoice_number: str
    client_id: Optional[str] = None
    booking_id: Optional[str] = None
    currency: str
    total: int = Field(..., description="Amount in cents")
    amount_paid: int
    balance_due: int
    status: InvoiceStatus
    payment: Optional[dict[str, Any]] = Field(
        default=None, description="Last settlement: {status, method, paidAt, transactionId}"
    )
    due_date: Optional[datetime] = None
    paid_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class InvoiceWithPayments(Invoice):
    """Schema for invoice with the ledger events settled against it."""

    payments: list[PaymentEventResponse] = Field(default_factory=list)


class Booking(CamelModel):
    """Schema for returning booking data (``bookings/{id}``)."""

    id: str
    client_id: Optional[str] = None
    service_name: str
    start_at: Optional[datetime] = None
    total: int
    deposit_amount: int
    status: BookingStatus
    payment: Optional[dict[str, Any]] = Field(default=None, description="{status, method, paidAt}")
    created_at: datetime
    updated_at: datetime
