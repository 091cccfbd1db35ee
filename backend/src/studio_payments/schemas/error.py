"""Structured error response schemas."""
from datetime import datetime
from typing import Any
from pydantic import BaseModel, ConfigDict, Field


class ErrorDetail(BaseModel):
    """Detailed error information."""

    code: str = Field(..., description="Machine-readable error code")
    message: str = Field(..., description="Human-readable error message")
    field: str | None = Field(default=None, description="Field that caused the error (for validation errors)")
    value: Any | None = Field(default=None, description="Invalid value (for validation errors)")


class ErrorResponse(BaseModel):
    """Standard error response structure.

    This provides consistent error responses across the API with:
    - Machine-readable error codes
    - Human-readable messages
    - Remediation hints
    - Request tracing information
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "error": "Forbidden",
                "message": "You cannot revoke your own admin access.",
                "details": [{"code": "permission_denied", "message": "You cannot revoke your own admin access."}],
                "remediation": "Ask another super admin to perform this change.",
                "request_id": "req_1234567890ab",
                "timestamp": "2024-01-15T10:30:00Z",
            }
        }
    )

    error: str = Field(..., description="Error type (e.g., 'ValidationError', 'NotFound', 'Forbidden')")
    message: str = Field(..., description="Primary error message")
    details: list[ErrorDetail] | None = Field(
        default=None, description="Detailed error information (for validation errors)"
    )
    remediation: str | None = Field(default=None, description="Suggestion for fixing the error")
    request_id: str | None = Field(default=None, description="Request ID for tracing")
    timestamp: datetime = Field(default_factory=datetime.utcnow, description="Error timestamp")


# Error codes enum for consistency
class ErrorCode:
    """Standard error codes used across the API."""

    # Validation errors (400/422)
    INVALID_ARGUMENT = "invalid_argument"
    INVALID_AMOUNT = "invalid_amount"
    INVALID_EMAIL = "invalid_email"
    MISSING_REQUIRED_FIELD = "missing_required_field"
    VALIDATION_ERROR = "validation_error"
    WEBHOOK_VERIFICATION_FAILED = "webhook_verification_failed"

    # Authentication / authorization (401/403)
    UNAUTHENTICATED = "unauthenticated"
    PERMISSION_DENIED = "permission_denied"

    # Not found (404)
    NOT_FOUND = "not_found"

    # External service errors (500/502/503)
    STRIPE_API_ERROR = "stripe_api_error"
    DATABASE_ERROR = "database_error"

    # Internal errors (500)
    CONFIGURATION_ERROR = "configuration_error"
    INTERNAL = "internal"
    INTERNAL_ERROR = "internal_error"


# Remediation hints for common errors
REMEDIATION_HINTS = {
    ErrorCode.INVALID_AMOUNT: "Provide a positive amount in cents (e.g., 24900 for $249.00)",
    ErrorCode.INVALID_ARGUMENT: "Check the request fields against the API documentation at /docs",
    ErrorCode.UNAUTHENTICATED: "Sign in and send the access token as a Bearer credential",
    ErrorCode.PERMISSION_DENIED: "Ask a super admin to perform this change or grant access",
    ErrorCode.NOT_FOUND: "Verify the identifier is correct and the document exists",
    ErrorCode.WEBHOOK_VERIFICATION_FAILED: "Check that STRIPE_WEBHOOK_SECRET matches the endpoint's signing secret",
    ErrorCode.CONFIGURATION_ERROR: "Payments are not configured on the server. Please contact the studio.",
    ErrorCode.STRIPE_API_ERROR: "Stripe payment processing is temporarily unavailable. Please try again later.",
    ErrorCode.DATABASE_ERROR: "Database temporarily unavailable. Please try again in a few moments.",
}
