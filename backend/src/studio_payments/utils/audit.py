"""Audit logging for administrative changes."""
from typing import Optional
from uuid import uuid4

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from studio_payments.models.audit_log import AuditLog

logger = structlog.get_logger(__name__)


async def log_audit(
    db: AsyncSession,
    entity_type: str,
    entity_id: str,
    action: str,
    user_id: Optional[str] = None,
    changes: Optional[dict] = None,
    request_id: Optional[str] = None,
) -> AuditLog:
    """
    Log an audit entry in the caller's transaction.

    Args:
        db: Database session
        entity_type: Type of entity (user, payment)
        entity_id: Entity id
        action: Action performed (grant_admin, revoke_admin, retry_settlement)
        user_id: User who performed the action
        changes: Dictionary of changes {field: {old: X, new: Y}}
        request_id: Request correlation ID

    Returns:
        The new audit entry
    """
    audit_log = AuditLog(
        entity_type=entity_type,
        entity_id=entity_id,
        action=action,
        user_id=user_id,
        changes=changes or {},
        request_id=request_id or str(uuid4()),
    )

    db.add(audit_log)
    await db.flush()

    logger.info(
        "audit_log_created",
        entity_type=entity_type,
        entity_id=entity_id,
        action=action,
        user_id=user_id,
        change_count=len(changes) if changes else 0,
    )
    return audit_log
