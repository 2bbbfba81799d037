"""JWT access tokens for authenticated sessions."""

import jwt
from datetime import datetime, timezone, timedelta
from typing import Dict, Any, Optional, Tuple
from uuid import UUID, uuid4

from fastapi import HTTPException, status

from ..config import get_config


class JWTTokenManager:
    """Issues and verifies HS256 access tokens."""

    def __init__(
        self,
        secret_key: Optional[str] = None,
        access_token_expires_minutes: Optional[int] = None,
    ):
        """Initialize JWT token manager, defaulting to the loaded configuration."""
        config = get_config()
        self.secret_key = secret_key or config.app.jwt_secret_key
        self.algorithm = "HS256"
        self.access_token_expires_minutes = (
            access_token_expires_minutes
            if access_token_expires_minutes is not None
            else config.app.jwt_access_token_expires_minutes
        )

    def create_access_token(
        self,
        user_id: UUID,
        username: str,
    ) -> Tuple[str, datetime]:
        """
        Create an access token for a user.

        Returns:
            Tuple of (access_token, expires_at)
        """
        now = datetime.now(timezone.utc)
        expires_at = now + timedelta(minutes=self.access_token_expires_minutes)
        payload = {
            "sub": str(user_id),
            "username": username,
            "iat": now,
            "exp": expires_at,
            "jti": str(uuid4()),
            "type": "access",
        }

        token = jwt.encode(payload, self.secret_key, algorithm=self.algorithm)
        return token, expires_at

    def verify_access_token(self, token: str) -> Dict[str, Any]:
        """
        Verify and decode access token.

        Raises:
            HTTPException: If token is invalid, expired, or wrong type
        """
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except jwt.ExpiredSignatureError:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Access token has expired",
                headers={"WWW-Authenticate": "Bearer"},
            )
        except jwt.InvalidTokenError:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid access token",
                headers={"WWW-Authenticate": "Bearer"},
            )

        if payload.get("type") != "access":
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid token type",
                headers={"WWW-Authenticate": "Bearer"},
            )

        return payload

    def extract_user_id(self, token: str) -> UUID:
        """Extract the user ID from a valid access token."""
        payload = self.verify_access_token(token)
        try:
            return UUID(payload["sub"])
        except (KeyError, ValueError):
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid or malformed token",
                headers={"WWW-Authenticate": "Bearer"},
            )


# Global instance
jwt_manager = JWTTokenManager()
