"""JWT access tokens signed with the shared HS256 secret.

Tokens carry the caller's uid (``sub``) and email. Roles are never read from
the token; they come from the user record.
"""
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional

import jwt

from studio_payments.config import settings


class JWTAuth:
    """JWT authentication handler."""

    def __init__(self, secret_key: str, algorithm: str = "HS256", access_token_expire_minutes: int = 60):
        """Initialize JWT auth with the signing secret."""
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.access_token_expire_minutes = access_token_expire_minutes

    def create_access_token(
        self,
        user_id: str,
        email: Optional[str] = None,
        additional_claims: Optional[Dict] = None,
    ) -> str:
        """
        Create JWT access token.

        Args:
            user_id: Portal user id
            email: User email
            additional_claims: Additional JWT claims

        Returns:
            Encoded JWT token
        """
        now = datetime.now(timezone.utc)
        expire = now + timedelta(minutes=self.access_token_expire_minutes)

        claims = {
            "sub": user_id,
            "iat": now,
            "exp": expire,
            "type": "access",
        }
        if email:
            claims["email"] = email
        if additional_claims:
            claims.update(additional_claims)

        return jwt.encode(claims, self.secret_key, algorithm=self.algorithm)

    def verify_access_token(self, token: str) -> Dict:
        """
        Verify and decode an access token.

        Args:
            token: JWT token string

        Returns:
            Decoded token claims

        Raises:
            jwt.ExpiredSignatureError: If token is expired
            jwt.InvalidTokenError: If token is invalid or not an access token
        """
        payload = jwt.decode(
            token,
            self.secret_key,
            algorithms=[self.algorithm],
            options={"require": ["sub", "exp"]},
        )

        if payload.get("type") != "access":
            raise jwt.InvalidTokenError("Not an access token")

        return payload


# Global JWT auth instance
jwt_auth = JWTAuth(
    secret_key=settings.jwt_secret_key,
    algorithm=settings.jwt_algorithm,
    access_token_expire_minutes=settings.access_token_expire_minutes,
)
