"""SQLAlchemy ORM models for the studio payments ledger."""
# Import all models here to ensure they are registered with Alembic

from studio_payments.models.base import Base
from studio_payments.models.user import User, UserRole
from studio_payments.models.invoice import Invoice, InvoiceStatus
from studio_payments.models.booking import Booking, BookingPaymentStatus, BookingStatus
from studio_payments.models.payment_event import PaymentEvent, SettlementStatus
from studio_payments.models.audit_log import AuditLog

__all__ = [
    "Base",
    "User",
    "UserRole",
    "Invoice",
    "InvoiceStatus",
    "Booking",
    "BookingPaymentStatus",
    "BookingStatus",
    "PaymentEvent",
    "SettlementStatus",
    "AuditLog",
]
