"""
JWT token utilities.

Tokens are issued elsewhere; this service only verifies them and turns
the claims into a Principal. ``create_access_token`` exists for
operators and tests that need a token signed with the local secret.
"""

import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt

from app.core.exceptions import AuthenticationError, ErrorCode
from app.core.logging import get_logger
from app.models.base.enums import UserRole
from app.services.common.permissions import Principal

logger = get_logger(__name__)


class JWTManager:
    """
    Signs and verifies access tokens.

    The subject is carried in ``sub`` and the role in ``role``.
    """

    DEFAULT_ALGORITHM = "HS256"
    DEFAULT_ACCESS_TOKEN_EXPIRE_HOURS = 1

    def __init__(
        self,
        secret_key: str,
        algorithm: str = DEFAULT_ALGORITHM,
        access_token_expire_hours: int = DEFAULT_ACCESS_TOKEN_EXPIRE_HOURS,
    ):
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.access_token_expire_hours = access_token_expire_hours

    def create_access_token(
        self,
        user_id: str,
        role: UserRole,
        additional_claims: Optional[Dict[str, Any]] = None,
        expires_delta: Optional[timedelta] = None,
    ) -> str:
        """
        Create JWT access token.

        Args:
            user_id: User identifier
            role: User role
            additional_claims: Additional claims to include
            expires_delta: Custom expiration time

        Returns:
            Encoded JWT token
        """
        now = datetime.now(timezone.utc)
        expire = now + (expires_delta or timedelta(hours=self.access_token_expire_hours))

        payload = {
            "sub": str(user_id),
            "role": UserRole(role).value,
            "token_type": "access",
            "iat": now,
            "exp": expire,
            "jti": secrets.token_hex(16),
        }
        if additional_claims:
            payload.update(additional_claims)

        return jwt.encode(payload, self.secret_key, algorithm=self.algorithm)

    def verify_token(self, token: str) -> Dict[str, Any]:
        """
        Verify and decode JWT token.

        Raises:
            AuthenticationError: Expired or invalid token
        """
        try:
            return jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except jwt.ExpiredSignatureError:
            logger.warning("Token verification failed: token expired")
            raise AuthenticationError("Token has expired", error_code=ErrorCode.TOKEN_INVALID)
        except jwt.InvalidTokenError as e:
            logger.warning(f"Token verification failed: {e}")
            raise AuthenticationError("Invalid token", error_code=ErrorCode.TOKEN_INVALID)

    def principal_from_token(self, token: str) -> Principal:
        """
        Resolve the caller identity carried by ``token``.

        Raises:
            AuthenticationError: Invalid token or missing/unknown claims
        """
        payload = self.verify_token(token)
        user_id = payload.get("sub") or payload.get("user_id")
        role = payload.get("role")
        if not user_id or not role:
            raise AuthenticationError("Token is missing identity claims", error_code=ErrorCode.TOKEN_INVALID)
        try:
            return Principal(user_id=str(user_id), role=UserRole(role))
        except ValueError:
            raise AuthenticationError(f"Unknown role '{role}'", error_code=ErrorCode.TOKEN_INVALID)
