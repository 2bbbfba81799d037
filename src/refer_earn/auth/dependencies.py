"""Authentication dependencies for FastAPI."""

from typing import Optional
from uuid import UUID

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from .jwt_auth import jwt_manager
from .security import verify_password
from ..config import get_config
from ..db.models import User
from ..domain.errors import InvalidCredentials
from ..repositories.interfaces import RepositoryContainer
from ..utils.logging_config import get_logger

# Bearer header is optional; the login cookie is accepted as well
security = HTTPBearer(auto_error=False)

logger = get_logger("auth")


def get_current_user_id(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> UUID:
    """
    Resolve the caller's user ID from a Bearer token or the auth cookie.

    Raises 401 when neither carries a valid access token.
    """
    token = credentials.credentials if credentials else None
    if not token:
        token = request.cookies.get(get_config().app.auth_cookie_name)

    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return jwt_manager.extract_user_id(token)


async def authenticate_with_credentials(
    repos: RepositoryContainer, username: str, password: str
) -> User:
    """
    Authenticate a user by username and password.

    Raises:
        InvalidCredentials: Unknown username or wrong password, indistinguishably
    """
    user = await repos.user.get_by_username(username)
    if user is None:
        logger.info(f"Login failed for unknown user {username}")
        raise InvalidCredentials()

    if not verify_password(password, user.password_salt, user.password_hash):
        logger.info(f"Login failed for {username}: wrong password")
        raise InvalidCredentials()

    return user
