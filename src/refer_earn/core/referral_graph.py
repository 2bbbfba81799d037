"""Referral graph manager.

Maintains the forest of users linked by their referred-by pointer: signs users
up under a referrer, enforces the branching-factor cap and answers ancestor,
descendant and profile queries for a user.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from ..auth.security import hash_password
from ..db.models import User
from ..domain.errors import (
    DuplicateUsername,
    InvalidReferralCode,
    ReferralCodeTaken,
    UserNotFound,
)
from ..domain.referrals import (
    MAX_CODE_ATTEMPTS,
    MAX_REFERRALS,
    UserSummary,
    generate_referral_code,
    normalize_referral_code,
)
from ..repositories.interfaces import RepositoryContainer, UserRepository
from ..utils.logging_config import get_logger


@dataclass(frozen=True)
class Ancestors:
    parent: Optional[UserSummary]
    grandparent: Optional[UserSummary]


@dataclass(frozen=True)
class Descendants:
    children: List[UserSummary] = field(default_factory=list)
    grandchildren: List[UserSummary] = field(default_factory=list)


@dataclass(frozen=True)
class Profile:
    """What a user sees about themselves."""

    username: str
    referral_code: str
    direct_earnings: Decimal
    indirect_earnings: Decimal
    referred_by: Optional[UserSummary]
    referrals: List[UserSummary]


async def walk_ancestors(
    user_repo: UserRepository, user: User, depth: int
) -> List[User]:
    """
    Follow referred-by pointers upwards from ``user``.

    Returns at most ``depth`` ancestors, nearest first. The walk stops early at
    a root of the forest.
    """
    ancestors: List[User] = []
    current = user
    while len(ancestors) < depth and current.referred_by_id is not None:
        parent = await user_repo.get_by_id(current.referred_by_id)
        if parent is None:
            break
        ancestors.append(parent)
        current = parent
    return ancestors


class ReferralGraphManager:
    """Signs users up into the referral forest and answers tree queries."""

    def __init__(self, repos: RepositoryContainer, max_referrals: int = MAX_REFERRALS):
        self.repos = repos
        self.max_referrals = max_referrals
        self.logger = get_logger(__name__)

    async def register(
        self, username: str, password: str, referral_code: Optional[str] = None
    ) -> User:
        """
        Create a user, attaching it below the owner of ``referral_code``.

        Raises:
            DuplicateUsername: The username is already taken
            InvalidReferralCode: Nobody owns the referral code
            ReferralLimitReached: The referrer has no free slot left
        """
        if await self.repos.user.get_by_username(username) is not None:
            raise DuplicateUsername(username)

        parent = None
        referral_code = normalize_referral_code(referral_code)
        if referral_code is not None:
            parent = await self.repos.user.get_by_referral_code(referral_code)
            if parent is None:
                raise InvalidReferralCode(referral_code)

        password_salt, password_hash = hash_password(password)

        last_error: Optional[ReferralCodeTaken] = None
        for attempt in range(1, MAX_CODE_ATTEMPTS + 1):
            new_code = generate_referral_code()
            if await self.repos.user.get_by_referral_code(new_code) is not None:
                self.logger.warning(f"Referral code {new_code} already in use, regenerating")
                continue

            try:
                user = await self.repos.user.create(
                    username=username,
                    password_hash=password_hash,
                    password_salt=password_salt,
                    referral_code=new_code,
                    referred_by_id=parent.id if parent else None,
                    max_referrals=self.max_referrals,
                )
            except ReferralCodeTaken as e:
                # Lost a race for the code between the check and the insert
                self.logger.warning(
                    f"Referral code {new_code} taken at insert (attempt {attempt})"
                )
                last_error = e
                continue

            if parent is not None:
                self.logger.info(
                    f"Registered {username} under {parent.username} "
                    f"(slot {user.referral_slot}/{self.max_referrals})"
                )
            else:
                self.logger.info(f"Registered {username} without referrer")
            return user

        self.logger.error(
            f"Could not allocate a referral code for {username} "
            f"after {MAX_CODE_ATTEMPTS} attempts"
        )
        raise last_error or ReferralCodeTaken(new_code)

    async def _require_user(self, user_id: UUID) -> User:
        user = await self.repos.user.get_by_id(user_id)
        if user is None:
            raise UserNotFound(user_id)
        return user

    async def get_ancestors(self, user_id: UUID) -> Ancestors:
        """Return the parent and grandparent summaries of a user, None where absent."""
        user = await self._require_user(user_id)
        ancestors = await walk_ancestors(self.repos.user, user, depth=2)
        ancestors += [None] * (2 - len(ancestors))
        return Ancestors(
            parent=UserSummary.of_optional(ancestors[0]),
            grandparent=UserSummary.of_optional(ancestors[1]),
        )

    async def get_descendants(self, user_id: UUID) -> Descendants:
        """Return the direct referrals and, flattened, their referrals."""
        await self._require_user(user_id)
        children = await self.repos.user.list_referrals(user_id)
        grandchildren = await self.repos.user.list_referrals_of_many(
            [child.id for child in children]
        )
        return Descendants(
            children=[UserSummary.of(child) for child in children],
            grandchildren=[UserSummary.of(grandchild) for grandchild in grandchildren],
        )

    async def get_profile(self, user_id: UUID) -> Profile:
        """Return the caller's own view: code, earnings, referrer and referrals."""
        user = await self._require_user(user_id)
        parent = None
        if user.referred_by_id is not None:
            parent = await self.repos.user.get_by_id(user.referred_by_id)
        referrals = await self.repos.user.list_referrals(user.id)
        return Profile(
            username=user.username,
            referral_code=user.referral_code,
            direct_earnings=user.direct_earnings,
            indirect_earnings=user.indirect_earnings,
            referred_by=UserSummary.of_optional(parent),
            referrals=[UserSummary.of(child) for child in referrals],
        )
