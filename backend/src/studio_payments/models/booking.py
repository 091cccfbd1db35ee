"""Booking model for studio sessions."""
from sqlalchemy import Column, DateTime, Integer, String
from sqlalchemy import Enum as SQLEnum
import enum

from studio_payments.models.base import Base, JSONType, enum_values


class BookingStatus(enum.Enum):
    """Booking lifecycle status."""

    PENDING = "pending"
    PENDING_PAYMENT = "pending_payment"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"


class BookingPaymentStatus(enum.Enum):
    """Values of ``Booking.payment["status"]``."""

    PENDING = "pending"
    DEPOSIT_PAID = "deposit_paid"
    PAID_IN_FULL = "paid_in_full"
    REFUNDED = "refunded"
    FAILED = "failed"


class Booking(Base):
    """
    Studio booking.

    Created by the booking flow in PENDING. ``payment`` is {status, method, paidAt}
    and is written by settlement only.
    """

    __tablename__ = "bookings"

    client_id = Column(String, nullable=True, index=True)
    client_email = Column(String, nullable=True)
    service_name = Column(String, nullable=False)
    start_at = Column(DateTime, nullable=True)
    total = Column(Integer, nullable=False, default=0)  # Amount in cents
    deposit_amount = Column(Integer, nullable=False, default=0)
    status = Column(
        SQLEnum(BookingStatus, name="bookingstatus", values_callable=enum_values),
        nullable=False,
        default=BookingStatus.PENDING,
        index=True,
    )
    payment = Column(JSONType, nullable=True)

    def __repr__(self) -> str:
        """String representation."""
        return f"<Booking(id={self.id}, service={self.service_name}, status={self.status.value})>"
