"""Admin role management endpoints (super admins only)."""
from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from studio_payments.api.deps import get_db
from studio_payments.auth.rbac import require_super_admin
from studio_payments.models.user import User
from studio_payments.schemas.admin import AdminRoleAction, AdminRoleResult
from studio_payments.services.admin_service import AdminService

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/roles", response_model=AdminRoleResult, response_model_by_alias=True)
async def list_admins(
    caller: User = Depends(require_super_admin),
    db: AsyncSession = Depends(get_db),
) -> AdminRoleResult:
    """List users holding the admin role."""
    service = AdminService(db)
    return AdminRoleResult(admins=await service.list_admins())


@router.post("/roles", response_model=AdminRoleResult, response_model_by_alias=True, response_model_exclude_none=True)
async def manage_admin_role(
    action: AdminRoleAction,
    request: Request,
    caller: User = Depends(require_super_admin),
    db: AsyncSession = Depends(get_db),
) -> AdminRoleResult:
    """
    Manage the admin role.

    - **list**: users holding the admin role
    - **grant**: make the user with **targetEmail** an admin
    - **revoke**: demote the admin **targetUid**; super admins and yourself cannot be revoked
    """
    service = AdminService(db)
    result = await service.manage(caller, action, request_id=getattr(request.state, "request_id", None))
    await db.commit()
    return result
