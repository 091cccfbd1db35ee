"""Settlement of confirmed payments against invoices and bookings.

``reconcile`` is the pure balance arithmetic. ``SettlementService`` applies it
to the ledger. The arithmetic is not idempotent: applying the same payment
twice counts it twice. Exactly-once application comes from the payment event
row, which is locked and checked here before any invoice is touched.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Optional
import enum

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from studio_payments import metrics
from studio_payments.models.booking import Booking, BookingPaymentStatus, BookingStatus
from studio_payments.models.invoice import Invoice, InvoiceStatus
from studio_payments.models.payment_event import PaymentEvent, SettlementStatus

logger = structlog.get_logger(__name__)

PAYMENT_METHOD_STRIPE = "stripe"


@dataclass(frozen=True)
class Settlement:
    """New balance state of an invoice after one payment."""

    amount_paid: int
    balance_due: int
    status: InvoiceStatus
    payment_status: str  # paid_in_full | partial


def reconcile(total: int, amount_paid: int, paid_amount: int) -> Settlement:
    """
    Apply one payment to an invoice balance.

    Args:
        total: Invoice total in cents
        amount_paid: Amount already paid in cents
        paid_amount: Amount of this payment in cents

    Returns:
        Settlement with the new amount paid, balance due and status
    """
    new_amount_paid = amount_paid + paid_amount
    balance_due = max(0, total - new_amount_paid)

    if balance_due <= 0:
        return Settlement(new_amount_paid, balance_due, InvoiceStatus.PAID, BookingPaymentStatus.PAID_IN_FULL.value)
    return Settlement(new_amount_paid, balance_due, InvoiceStatus.PARTIAL, "partial")


class SettlementOutcome(enum.Enum):
    """Result of applying a payment to the ledger."""

    APPLIED = "applied"
    ALREADY_APPLIED = "already_applied"
    INVOICE_NOT_FOUND = "invoice_not_found"
    EVENT_NOT_FOUND = "event_not_found"


class SettlementService:
    """Service applying processed payments to invoices and bookings."""

    def __init__(self, db: AsyncSession):
        """Initialize settlement service."""
        self.db = db

    async def reconcile(
        self,
        invoice_id: str,
        paid_amount: int,
        transaction_id: str,
        event_id: Optional[str] = None,
    ) -> SettlementOutcome:
        """
        Apply a payment to an invoice inside the caller's transaction.

        The invoice row (and the event row when ``event_id`` is given) is
        locked for the read-compute-write, so concurrent settlements of one
        invoice serialize. The caller commits.

        Args:
            invoice_id: Invoice to settle
            paid_amount: Amount paid in cents
            transaction_id: Stripe payment intent id
            event_id: Processed event id; an already-applied event is a no-op

        Returns:
            SettlementOutcome
        """
        event: Optional[PaymentEvent] = None
        if event_id is not None:
            event = await self._lock_event(event_id)
            if event is None:
                logger.warning("settlement_event_not_found", event_id=event_id)
                return SettlementOutcome.EVENT_NOT_FOUND
            if event.settlement_status == SettlementStatus.APPLIED:
                logger.info("settlement_already_applied", event_id=event_id, invoice_id=invoice_id)
                return SettlementOutcome.ALREADY_APPLIED

        result = await self.db.execute(
            select(Invoice)
            .where(Invoice.id == invoice_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        invoice = result.scalar_one_or_none()

        now = datetime.utcnow()

        if invoice is None:
            logger.warning("settlement_invoice_not_found", invoice_id=invoice_id, event_id=event_id)
            if event is not None:
                event.settlement_attempts = (event.settlement_attempts or 0) + 1
                event.settlement_status = SettlementStatus.SKIPPED
                event.settlement_error = f"Invoice {invoice_id} not found"
                event.settled_at = now
            metrics.settlements_total.labels(outcome=SettlementOutcome.INVOICE_NOT_FOUND.value).inc()
            return SettlementOutcome.INVOICE_NOT_FOUND

        settlement = reconcile(invoice.total, invoice.amount_paid or 0, paid_amount)

        invoice.status = settlement.status
        invoice.amount_paid = settlement.amount_paid
        invoice.balance_due = settlement.balance_due
        invoice.payment = {
            "status": settlement.payment_status,
            "method": PAYMENT_METHOD_STRIPE,
            "paidAt": now.isoformat(),
            "transactionId": transaction_id,
        }
        if settlement.status == InvoiceStatus.PAID:
            invoice.paid_at = now

        if invoice.booking_id:
            await self._settle_booking(invoice.booking_id, settlement, now)

        if event is not None:
            event.settlement_attempts = (event.settlement_attempts or 0) + 1
            event.settlement_status = SettlementStatus.APPLIED
            event.settlement_error = None
            event.settled_at = now

        await self.db.flush()

        metrics.settlements_total.labels(outcome=SettlementOutcome.APPLIED.value).inc()
        metrics.settled_amount_total.labels(currency=invoice.currency).inc(paid_amount)

        logger.info(
            "settlement_applied",
            invoice_id=invoice_id,
            event_id=event_id,
            amount=paid_amount,
            amount_paid=settlement.amount_paid,
            balance_due=settlement.balance_due,
            status=settlement.status.value,
        )
        return SettlementOutcome.APPLIED

    async def settle_event(self, event_id: str) -> SettlementOutcome:
        """
        Settle a recorded event against the invoice named in its metadata.

        Used by the retry worker and the admin retry endpoint.

        Args:
            event_id: Processed event id

        Returns:
            SettlementOutcome
        """
        event = await self._lock_event(event_id)
        if event is None:
            return SettlementOutcome.EVENT_NOT_FOUND
        if event.settlement_status == SettlementStatus.APPLIED:
            return SettlementOutcome.ALREADY_APPLIED

        if event.invoice_id is None:
            event.settlement_attempts = (event.settlement_attempts or 0) + 1
            event.settlement_status = SettlementStatus.SKIPPED
            event.settled_at = datetime.utcnow()
            await self.db.flush()
            return SettlementOutcome.INVOICE_NOT_FOUND

        return await self.reconcile(
            invoice_id=event.invoice_id,
            paid_amount=event.amount,
            transaction_id=event.payment_intent_id,
            event_id=event.id,
        )

    async def record_failure(self, event_id: str, error: str) -> None:
        """
        Mark an event's settlement as failed so it can be retried.

        Call after rolling back the failed attempt; the attempt is counted here.

        Args:
            event_id: Processed event id
            error: Failure description
        """
        event = await self._lock_event(event_id)
        if event is None:
            return
        event.settlement_attempts = (event.settlement_attempts or 0) + 1
        event.settlement_status = SettlementStatus.FAILED
        event.settlement_error = error
        await self.db.flush()
        metrics.settlements_total.labels(outcome="failed").inc()

    async def _lock_event(self, event_id: str) -> Optional[PaymentEvent]:
        result = await self.db.execute(
            select(PaymentEvent)
            .where(PaymentEvent.id == event_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def _settle_booking(self, booking_id: str, settlement: Settlement, now: datetime) -> None:
        """
        Mirror a settlement onto the booking the invoice bills.

        A fully paid invoice marks the booking paid in full; a partial payment
        counts as the deposit. Only PENDING_PAYMENT bookings are confirmed here;
        other status changes stay with the studio.
        """
        result = await self.db.execute(
            select(Booking)
            .where(Booking.id == booking_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        booking = result.scalar_one_or_none()

        if booking is None:
            logger.warning("settlement_booking_not_found", booking_id=booking_id)
            return

        if settlement.status == InvoiceStatus.PAID:
            payment_status = BookingPaymentStatus.PAID_IN_FULL
        else:
            payment_status = BookingPaymentStatus.DEPOSIT_PAID

        booking.payment = {
            "status": payment_status.value,
            "method": PAYMENT_METHOD_STRIPE,
            "paidAt": now.isoformat(),
        }

        if booking.status == BookingStatus.PENDING_PAYMENT:
            booking.status = BookingStatus.CONFIRMED
            logger.info("booking_confirmed_by_payment", booking_id=booking_id)
