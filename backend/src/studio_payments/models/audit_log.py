"""Audit log model for tracking administrative changes."""
from sqlalchemy import Column, String

from studio_payments.models.base import Base, JSONType


class AuditLog(Base):
    """
    Audit log for role changes and other administrative actions.
    """

    __tablename__ = "audit_logs"

    entity_type = Column(String, nullable=False, index=True)  # user, invoice, payment
    entity_id = Column(String, nullable=False, index=True)
    action = Column(String, nullable=False)  # grant_admin, revoke_admin, retry_settlement
    user_id = Column(String, nullable=True)  # User who performed action
    changes = Column(JSONType, nullable=False, default=dict)  # {field: {old: X, new: Y}}
    request_id = Column(String, nullable=True)  # Correlation ID from request

    def __repr__(self) -> str:
        """String representation."""
        return f"<AuditLog(entity_type={self.entity_type}, entity_id={self.entity_id}, action={self.action})>"
