"""Role gate for ledger visibility and admin management.

Elevated access is decided by the caller's user record, never by token
claims, so a role change takes effect on the next request:

- Super admin: manages who holds the admin role
- Admin: reads the payment ledger and retries settlements
- Client: reads their own invoices and bookings
"""
import structlog
from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from studio_payments.api.deps import get_current_user, get_db
from studio_payments.exceptions import PermissionDeniedError
from studio_payments.models.user import User
from studio_payments.services.charge_service import CallerIdentity

logger = structlog.get_logger(__name__)


async def get_current_account(
    caller: CallerIdentity = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    Load the caller's user record.

    Raises:
        UnauthenticatedError: If the caller is not signed in
        PermissionDeniedError: If the caller has no user record
    """
    user = await db.get(User, caller.uid)
    if user is None:
        logger.warning("rbac_user_record_missing", user_id=caller.uid)
        raise PermissionDeniedError("No user record for this account.")
    return user


async def require_admin(user: User = Depends(get_current_account)) -> User:
    """
    Require the admin role (or super admin).

    Raises:
        PermissionDeniedError: If the caller is not an admin
    """
    if not user.is_admin:
        logger.warning("rbac_permission_denied", user_id=user.id, required="admin")
        raise PermissionDeniedError("Admin access required.")
    return user


async def require_super_admin(user: User = Depends(get_current_account)) -> User:
    """
    Require the super admin flag.

    Raises:
        PermissionDeniedError: If the caller is not a super admin
    """
    if not user.is_super_admin:
        logger.warning("rbac_permission_denied", user_id=user.id, required="super_admin")
        raise PermissionDeniedError("Only super admins can manage admin users.")
    return user
