"""FastAPI dependencies for database sessions, authentication and the Stripe client."""
from typing import Optional

import jwt
import structlog
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from studio_payments.adapters.stripe_adapter import StripeAdapter
from studio_payments.auth.jwt import jwt_auth
from studio_payments.database import get_db
from studio_payments.exceptions import UnauthenticatedError
from studio_payments.services.charge_service import CallerIdentity

logger = structlog.get_logger(__name__)

# Charges accept guests, so a missing header is not rejected here
security = HTTPBearer(auto_error=False)

__all__ = ["get_db", "get_current_user", "get_optional_user", "get_stripe_adapter"]


def get_stripe_adapter(request: Request) -> StripeAdapter:
    """
    Stripe adapter built once by the application lifespan.

    Returns:
        StripeAdapter stored on ``app.state``
    """
    return request.app.state.stripe_adapter


def _decode(token: str) -> CallerIdentity:
    try:
        payload = jwt_auth.verify_access_token(token)
    except jwt.ExpiredSignatureError:
        logger.warning("token_expired")
        raise UnauthenticatedError("Token has expired") from None
    except jwt.InvalidTokenError as e:
        logger.warning("invalid_token", error=str(e))
        raise UnauthenticatedError("Invalid authentication token") from None

    return CallerIdentity(uid=payload["sub"], email=payload.get("email"))


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> CallerIdentity:
    """
    Get current authenticated caller from the bearer token.

    Raises:
        UnauthenticatedError: If the token is missing, invalid or expired
    """
    if not credentials:
        raise UnauthenticatedError("You must be logged in.")

    caller = _decode(credentials.credentials)
    logger.debug("user_authenticated", user_id=caller.uid)
    return caller


async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Optional[CallerIdentity]:
    """
    Get current caller if a token was sent, otherwise None (guest).

    A token that is sent but invalid is still rejected.

    Raises:
        UnauthenticatedError: If a token is present but invalid or expired
    """
    if not credentials:
        return None
    return _decode(credentials.credentials)
