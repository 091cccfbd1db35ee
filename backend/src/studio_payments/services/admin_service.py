"""Service for managing which users hold the admin role."""
from typing import Optional

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from studio_payments.exceptions import InvalidArgumentError, NotFoundError, PermissionDeniedError
from studio_payments.models.user import User, UserRole
from studio_payments.schemas.admin import AdminRoleAction, AdminRoleResult, AdminUser
from studio_payments.utils.audit import log_audit

logger = structlog.get_logger(__name__)


class AdminService:
    """Service for admin role management. Callers are super admins (checked by the router)."""

    def __init__(self, db: AsyncSession):
        """Initialize admin service with database session."""
        self.db = db

    async def manage(
        self,
        caller: User,
        request: AdminRoleAction,
        request_id: Optional[str] = None,
    ) -> AdminRoleResult:
        """
        Dispatch a role management action.

        Args:
            caller: Super admin performing the action
            request: Action and its target
            request_id: Request correlation ID for the audit log

        Returns:
            AdminRoleResult

        Raises:
            InvalidArgumentError: If the action is unknown or its target is missing
        """
        if request.action == "list":
            return AdminRoleResult(admins=await self.list_admins())

        if request.action == "grant":
            if not request.target_email:
                raise InvalidArgumentError("targetEmail is required.")
            return await self.grant(caller, request.target_email, request_id)

        if request.action == "revoke":
            if not request.target_uid:
                raise InvalidArgumentError("targetUid is required.")
            return await self.revoke(caller, request.target_uid, request_id)

        raise InvalidArgumentError(f"Unknown action: {request.action}")

    async def list_admins(self) -> list[AdminUser]:
        """
        List users holding the admin role.

        Returns:
            Admin users, oldest first
        """
        result = await self.db.execute(
            select(User).where(User.role == UserRole.ADMIN).order_by(User.created_at)
        )
        return [
            AdminUser(
                id=user.id,
                email=user.email,
                first_name=user.first_name or "",
                last_name=user.last_name or "",
                is_super_admin=bool(user.is_super_admin),
                created_at=user.created_at,
            )
            for user in result.scalars().all()
        ]

    async def grant(self, caller: User, target_email: str, request_id: Optional[str] = None) -> AdminRoleResult:
        """
        Give the admin role to the user with the given email.

        Args:
            caller: Super admin performing the action
            target_email: Email of the user to promote
            request_id: Request correlation ID

        Returns:
            AdminRoleResult

        Raises:
            NotFoundError: If no user has that email
        """
        result = await self.db.execute(
            select(User).where(func.lower(User.email) == target_email.lower()).limit(1)
        )
        target = result.scalar_one_or_none()
        if target is None:
            raise NotFoundError(f"No user found with email: {target_email}")

        old_role = target.role
        target.role = UserRole.ADMIN
        await self.db.flush()

        await log_audit(
            self.db,
            entity_type="user",
            entity_id=target.id,
            action="grant_admin",
            user_id=caller.id,
            changes={"role": {"old": old_role.value, "new": UserRole.ADMIN.value}},
            request_id=request_id,
        )

        logger.info("admin_role_granted", target_user_id=target.id, granted_by=caller.id)
        return AdminRoleResult(message=f"{target_email} is now an admin.")

    async def revoke(self, caller: User, target_uid: str, request_id: Optional[str] = None) -> AdminRoleResult:
        """
        Take the admin role away from a user.

        Args:
            caller: Super admin performing the action
            target_uid: Id of the admin to demote
            request_id: Request correlation ID

        Returns:
            AdminRoleResult

        Raises:
            PermissionDeniedError: If the target is the caller or a super admin
            NotFoundError: If the target does not exist
        """
        if target_uid == caller.id:
            raise PermissionDeniedError("You cannot revoke your own admin access.")

        target = await self.db.get(User, target_uid)
        if target is None:
            raise NotFoundError(f"User {target_uid} not found")
        if target.is_super_admin:
            raise PermissionDeniedError("Cannot revoke a super admin.")

        old_role = target.role
        target.role = UserRole.CLIENT
        await self.db.flush()

        await log_audit(
            self.db,
            entity_type="user",
            entity_id=target.id,
            action="revoke_admin",
            user_id=caller.id,
            changes={"role": {"old": old_role.value, "new": UserRole.CLIENT.value}},
            request_id=request_id,
        )

        logger.info("admin_role_revoked", target_user_id=target.id, revoked_by=caller.id)
        return AdminRoleResult(message="Admin access revoked.")
