"""Pydantic schemas for admin role management."""
from datetime import datetime
from typing import Optional

from pydantic import Field

from studio_payments.schemas.payment import CamelModel


class AdminRoleAction(CamelModel):
    """Schema for an admin role change request.

    Examples:
        ```json
        {"action": "grant", "targetEmail": "editor@studio.test"}
        ```
        ```json
        {"action": "revoke", "targetUid": "u_19ab"}
        ```
    """

    action: str = Field(..., description="One of: list, grant, revoke")
    target_email: Optional[str] = Field(default=None, description="Email of the user to grant admin to")
    target_uid: Optional[str] = Field(default=None, description="Uid of the admin to revoke")


class AdminUser(CamelModel):
    """Schema for a user holding the admin role."""

    id: str
    email: str
    first_name: str = ""
    last_name: str = ""
    is_super_admin: bool = False
    created_at: Optional[datetime] = None


class AdminRoleResult(CamelModel):
    """Schema for the result of an admin role action."""

    success: bool = True
    message: Optional[str] = None
    admins: Optional[list[AdminUser]] = None
