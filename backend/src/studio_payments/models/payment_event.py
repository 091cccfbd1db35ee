"""Processed payment event model: the append-only ledger of Stripe events."""
from sqlalchemy import Column, DateTime, Integer, String, Text
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.orm import synonym
import enum

from studio_payments.models.base import Base, JSONType, enum_values


class SettlementStatus(enum.Enum):
    """Settlement progress of a recorded event."""

    PENDING = "pending"
    APPLIED = "applied"
    SKIPPED = "skipped"  # No invoice to settle against
    FAILED = "failed"


class PaymentEvent(Base):
    """
    Processed Stripe event, keyed by the Stripe event id.

    The row is the idempotency marker: exactly one per event id. Event fields
    are written once; only the settlement_* columns change afterwards.
    """

    __tablename__ = "payments"

    event_id = synonym("id")
    event_type = Column(String, nullable=False, index=True)
    payment_intent_id = Column(String, nullable=False, index=True)
    amount = Column(Integer, nullable=False)  # Amount in cents
    currency = Column(String(3), nullable=False)
    status = Column(String, nullable=False)  # Stripe intent status
    created = Column(DateTime, nullable=False, index=True)  # Stripe event creation time
    user_id = Column(String, nullable=True, index=True)
    invoice_id = Column(String, nullable=True, index=True)
    payment_metadata = Column(JSONType, nullable=False, default=dict)
    processed_at = Column(DateTime, nullable=False)

    settlement_status = Column(
        SQLEnum(SettlementStatus, name="settlementstatus", values_callable=enum_values),
        nullable=False,
        default=SettlementStatus.PENDING,
        index=True,
    )
    settlement_attempts = Column(Integer, nullable=False, default=0)
    settlement_error = Column(Text, nullable=True)
    settled_at = Column(DateTime, nullable=True)

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<PaymentEvent(id={self.id}, intent={self.payment_intent_id}, amount={self.amount}, "
            f"settlement={self.settlement_status.value})>"
        )
