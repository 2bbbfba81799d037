"""Authentication API endpoints."""

from fastapi import APIRouter, Depends, Response, status

from ..auth.dependencies import authenticate_with_credentials
from ..auth.jwt_auth import jwt_manager
from ..config import get_config
from ..core.referral_graph import ReferralGraphManager
from ..domain.referrals import UserSummary
from ..repositories.dependencies import get_referral_graph, get_repository_container
from ..repositories.interfaces import RepositoryContainer
from ..utils.logging_config import get_logger
from .schemas import (
    LoginRequest,
    LoginResponse,
    ProblemDetails,
    SignupRequest,
    SignupResponse,
    UserSummaryResponse,
)

router = APIRouter(prefix="/v1/auth", tags=["auth"])
logger = get_logger("auth")


@router.post(
    "/signup",
    response_model=SignupResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        201: {"description": "User registered"},
        400: {"model": ProblemDetails, "description": "Unknown referral code"},
        409: {
            "model": ProblemDetails,
            "description": "Username taken or referrer has no free slot",
        },
        422: {"model": ProblemDetails, "description": "Validation error"},
    },
)
async def signup(
    signup_data: SignupRequest,
    graph: ReferralGraphManager = Depends(get_referral_graph),
) -> SignupResponse:
    """
    Register a new user, optionally under the owner of a referral code.

    A referrer can have at most 8 direct referrals.
    """
    user = await graph.register(
        signup_data.username, signup_data.password, signup_data.referral_code
    )

    referred_by = None
    if user.referred_by_id is not None:
        parent = await graph.repos.user.get_by_id(user.referred_by_id)
        summary = UserSummary.of_optional(parent)
        if summary is not None:
            referred_by = UserSummaryResponse(
                username=summary.username, referral_code=summary.referral_code
            )

    return SignupResponse(
        id=user.id,
        username=user.username,
        referral_code=user.referral_code,
        referred_by=referred_by,
    )


@router.post(
    "/login",
    response_model=LoginResponse,
    status_code=status.HTTP_200_OK,
    responses={
        200: {"description": "Login successful"},
        401: {"model": ProblemDetails, "description": "Invalid username or password"},
        422: {"model": ProblemDetails, "description": "Validation error"},
    },
)
async def login(
    login_data: LoginRequest,
    response: Response,
    repos: RepositoryContainer = Depends(get_repository_container),
) -> LoginResponse:
    """
    Authenticate a user and issue an access token.

    The token is returned in the body and also set as an httpOnly cookie.
    """
    user = await authenticate_with_credentials(
        repos, login_data.username, login_data.password
    )
    token, expires_at = jwt_manager.create_access_token(user.id, user.username)

    config = get_config()
    response.set_cookie(
        key=config.app.auth_cookie_name,
        value=token,
        httponly=True,
        samesite="lax",
        max_age=config.app.jwt_access_token_expires_minutes * 60,
    )
    logger.info(f"User {user.username} logged in")

    return LoginResponse(access_token=token, expires_at=expires_at, user_id=user.id)
