"""User profile and referral tree endpoints."""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends

from ..auth.dependencies import get_current_user_id
from ..core.referral_graph import ReferralGraphManager
from ..domain.referrals import UserSummary
from ..repositories.dependencies import get_referral_graph
from .schemas import (
    AncestorsResponse,
    DescendantsResponse,
    ProblemDetails,
    ProfileResponse,
    UserSummaryResponse,
)

router = APIRouter(prefix="/v1/users", tags=["users"])

_AUTH_RESPONSES = {
    401: {"model": ProblemDetails, "description": "Not authenticated"},
    404: {"model": ProblemDetails, "description": "User not found"},
}


def _summary(summary: Optional[UserSummary]) -> Optional[UserSummaryResponse]:
    if summary is None:
        return None
    return UserSummaryResponse(username=summary.username, referral_code=summary.referral_code)


@router.get("/me", response_model=ProfileResponse, responses=_AUTH_RESPONSES)
async def get_me(
    user_id: UUID = Depends(get_current_user_id),
    graph: ReferralGraphManager = Depends(get_referral_graph),
) -> ProfileResponse:
    """Get the caller's referral code, earnings, referrer and referrals."""
    profile = await graph.get_profile(user_id)
    return ProfileResponse(
        username=profile.username,
        referral_code=profile.referral_code,
        direct_earnings=profile.direct_earnings,
        indirect_earnings=profile.indirect_earnings,
        referred_by=_summary(profile.referred_by),
        referrals=[_summary(child) for child in profile.referrals],
    )


@router.get("/me/ancestors", response_model=AncestorsResponse, responses=_AUTH_RESPONSES)
async def get_my_ancestors(
    user_id: UUID = Depends(get_current_user_id),
    graph: ReferralGraphManager = Depends(get_referral_graph),
) -> AncestorsResponse:
    """Get the caller's parent and grandparent; either may be null."""
    ancestors = await graph.get_ancestors(user_id)
    return AncestorsResponse(
        parent=_summary(ancestors.parent),
        grandparent=_summary(ancestors.grandparent),
    )


@router.get(
    "/me/descendants", response_model=DescendantsResponse, responses=_AUTH_RESPONSES
)
async def get_my_descendants(
    user_id: UUID = Depends(get_current_user_id),
    graph: ReferralGraphManager = Depends(get_referral_graph),
) -> DescendantsResponse:
    """Get the caller's referrals and, flattened, their referrals."""
    descendants = await graph.get_descendants(user_id)
    return DescendantsResponse(
        children=[_summary(child) for child in descendants.children],
        grandchildren=[_summary(grandchild) for grandchild in descendants.grandchildren],
    )
