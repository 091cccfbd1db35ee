"""Base model with common fields for all ledger documents."""
from datetime import datetime
from uuid import uuid4

from sqlalchemy import JSON, Column, DateTime, String
from sqlalchemy.dialects.postgresql import JSONB

from studio_payments.database import Base as DeclarativeBase

# JSONB on PostgreSQL, plain JSON elsewhere
JSONType = JSON().with_variant(JSONB(), "postgresql")


def new_document_id() -> str:
    """Generate an opaque document id."""
    return uuid4().hex


def enum_values(enum_cls) -> list[str]:  # noqa: ANN001
    """Persist enum values rather than member names."""
    return [member.value for member in enum_cls]


class Base(DeclarativeBase):
    """Base model class with common fields."""

    __abstract__ = True

    id = Column(String(255), primary_key=True, default=new_document_id)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
