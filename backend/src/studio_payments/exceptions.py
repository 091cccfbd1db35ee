"""Typed service errors.

Services raise these; ``main`` renders them as structured error responses.
Each carries a machine-readable code and the HTTP status it maps to.
"""
from fastapi import status

from studio_payments.schemas.error import ErrorCode


class ServiceError(Exception):
    """Base class for errors surfaced to API callers."""

    code: str = ErrorCode.INTERNAL_ERROR
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    error: str = "InternalServerError"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ConfigurationError(ServiceError):
    """Required configuration (e.g. the Stripe secret key) is missing."""

    code = ErrorCode.CONFIGURATION_ERROR
    error = "ConfigurationError"


class ExternalServiceError(ServiceError):
    """Stripe or another collaborator rejected the request."""

    code = ErrorCode.INTERNAL
    error = "InternalServerError"


class InvalidArgumentError(ServiceError):
    """Caller supplied bad or missing arguments."""

    code = ErrorCode.INVALID_ARGUMENT
    status_code = status.HTTP_400_BAD_REQUEST
    error = "InvalidArgument"


class UnauthenticatedError(ServiceError):
    """Caller is not signed in."""

    code = ErrorCode.UNAUTHENTICATED
    status_code = status.HTTP_401_UNAUTHORIZED
    error = "Unauthenticated"


class PermissionDeniedError(ServiceError):
    """Caller is signed in but not allowed to perform the action."""

    code = ErrorCode.PERMISSION_DENIED
    status_code = status.HTTP_403_FORBIDDEN
    error = "Forbidden"


class NotFoundError(ServiceError):
    """Referenced document does not exist."""

    code = ErrorCode.NOT_FOUND
    status_code = status.HTTP_404_NOT_FOUND
    error = "NotFound"


class WebhookVerificationError(ServiceError):
    """Webhook signature or payload could not be verified."""

    code = ErrorCode.WEBHOOK_VERIFICATION_FAILED
    status_code = status.HTTP_400_BAD_REQUEST
    error = "WebhookError"
