"""Read access to the payment ledger: processed events, invoices and bookings."""
from datetime import datetime
from typing import Optional

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from studio_payments.exceptions import NotFoundError, PermissionDeniedError
from studio_payments.models.booking import Booking
from studio_payments.models.invoice import Invoice
from studio_payments.models.payment_event import PaymentEvent, SettlementStatus
from studio_payments.models.user import User

logger = structlog.get_logger(__name__)


class LedgerService:
    """Service for ledger reads. Nothing here writes payment state."""

    def __init__(self, db: AsyncSession):
        """Initialize ledger service with database session."""
        self.db = db

    async def list_events(
        self,
        page: int = 1,
        page_size: int = 100,
        invoice_id: Optional[str] = None,
        settlement_status: Optional[SettlementStatus] = None,
    ) -> tuple[list[PaymentEvent], int]:
        """
        List processed payment events, newest first.

        Args:
            page: Page number (1-indexed)
            page_size: Number of items per page
            invoice_id: Filter by invoice
            settlement_status: Filter by settlement status

        Returns:
            Tuple of (events list, total count)
        """
        query = select(PaymentEvent)

        if invoice_id is not None:
            query = query.where(PaymentEvent.invoice_id == invoice_id)
        if settlement_status is not None:
            query = query.where(PaymentEvent.settlement_status == settlement_status)

        count_query = select(func.count()).select_from(query.subquery())
        total = (await self.db.execute(count_query)).scalar() or 0

        query = (
            query.order_by(PaymentEvent.created.desc(), PaymentEvent.id)
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        result = await self.db.execute(query)
        return list(result.scalars().all()), total

    async def get_event(self, event_id: str) -> PaymentEvent:
        """
        Get a processed payment event.

        Raises:
            NotFoundError: If no event has that id
        """
        event = await self.db.get(PaymentEvent, event_id)
        if event is None:
            raise NotFoundError(f"Payment event {event_id} not found")
        return event

    async def list_retryable_events(self, max_attempts: int, recorded_before: datetime) -> list[PaymentEvent]:
        """
        Events whose settlement should be attempted again.

        Failed settlements, plus pending ones recorded before ``recorded_before``
        (the process stopped between recording and settling).

        Args:
            max_attempts: Events with this many attempts are left for manual review
            recorded_before: Cut-off for pending events

        Returns:
            Events, oldest first
        """
        result = await self.db.execute(
            select(PaymentEvent)
            .where(
                PaymentEvent.invoice_id.is_not(None),
                PaymentEvent.settlement_attempts < max_attempts,
                (PaymentEvent.settlement_status == SettlementStatus.FAILED)
                | (
                    (PaymentEvent.settlement_status == SettlementStatus.PENDING)
                    & (PaymentEvent.processed_at < recorded_before)
                ),
            )
            .order_by(PaymentEvent.processed_at)
        )
        return list(result.scalars().all())

    async def get_invoice(self, invoice_id: str, viewer: User) -> Invoice:
        """
        Get an invoice visible to the viewer.

        Raises:
            NotFoundError: If the invoice does not exist
            PermissionDeniedError: If the viewer neither owns it nor is an admin
        """
        invoice = await self.db.get(Invoice, invoice_id)
        if invoice is None:
            raise NotFoundError(f"Invoice {invoice_id} not found")
        self._check_owner(viewer, invoice.client_id, "invoice", invoice_id)
        return invoice

    async def list_invoice_payments(self, invoice_id: str) -> list[PaymentEvent]:
        """Processed events that name the invoice, oldest first."""
        result = await self.db.execute(
            select(PaymentEvent)
            .where(PaymentEvent.invoice_id == invoice_id)
            .order_by(PaymentEvent.created, PaymentEvent.id)
        )
        return list(result.scalars().all())

    async def get_booking(self, booking_id: str, viewer: User) -> Booking:
        """
        Get a booking visible to the viewer.

        Raises:
            NotFoundError: If the booking does not exist
            PermissionDeniedError: If the viewer neither owns it nor is an admin
        """
        booking = await self.db.get(Booking, booking_id)
        if booking is None:
            raise NotFoundError(f"Booking {booking_id} not found")
        self._check_owner(viewer, booking.client_id, "booking", booking_id)
        return booking

    @staticmethod
    def _check_owner(viewer: User, owner_id: Optional[str], entity_type: str, entity_id: str) -> None:
        if viewer.is_admin or (owner_id is not None and owner_id == viewer.id):
            return
        logger.warning(
            "ledger_read_denied",
            user_id=viewer.id,
            entity_type=entity_type,
            entity_id=entity_id,
        )
        raise PermissionDeniedError(f"You do not have access to this {entity_type}.")
