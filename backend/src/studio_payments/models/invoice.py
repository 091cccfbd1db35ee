"""Invoice model for client billing."""
from sqlalchemy import Column, DateTime, Integer, String
from sqlalchemy import Enum as SQLEnum
import enum

from studio_payments.models.base import Base, JSONType, enum_values


class InvoiceStatus(enum.Enum):
    """Invoice lifecycle status."""

    DRAFT = "draft"
    SENT = "sent"
    UNPAID = "unpaid"
    PARTIAL = "partial"
    PAID = "paid"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"


class Invoice(Base):
    """
    Client invoice.

    Balance fields are written only by settlement. ``payment`` holds the last
    settlement sub-record: {status, method, paidAt, transactionId}.
    """

    __tablename__ = "invoices"

    invoice_number = Column(String, nullable=False, unique=True, index=True)  # INV-2024-001
    client_id = Column(String, nullable=True, index=True)
    booking_id = Column(String, nullable=True, index=True)
    currency = Column(String(3), nullable=False, default="usd")
    total = Column(Integer, nullable=False)  # Amount in cents
    amount_paid = Column(Integer, nullable=False, default=0)
    balance_due = Column(Integer, nullable=False)
    status = Column(
        SQLEnum(InvoiceStatus, name="invoicestatus", values_callable=enum_values),
        nullable=False,
        default=InvoiceStatus.UNPAID,
        index=True,
    )
    payment = Column(JSONType, nullable=True)
    due_date = Column(DateTime, nullable=True)
    paid_at = Column(DateTime, nullable=True)

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<Invoice(id={self.id}, number={self.invoice_number}, status={self.status.value}, "
            f"balance_due={self.balance_due})>"
        )
