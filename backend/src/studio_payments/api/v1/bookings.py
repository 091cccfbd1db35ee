"""Booking endpoints (read-only payment view)."""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from studio_payments.api.deps import get_db
from studio_payments.auth.rbac import get_current_account
from studio_payments.models.user import User
from studio_payments.schemas.invoice import Booking
from studio_payments.services.ledger_service import LedgerService

router = APIRouter(prefix="/bookings", tags=["bookings"])


@router.get("/{booking_id}", response_model=Booking, response_model_by_alias=True)
async def get_booking(
    booking_id: str,
    user: User = Depends(get_current_account),
    db: AsyncSession = Depends(get_db),
) -> Booking:
    """Get a booking with its payment sub-record. Visible to its client and to admins."""
    booking = await LedgerService(db).get_booking(booking_id, user)
    return Booking.model_validate(booking)
