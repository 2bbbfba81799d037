"""
Referral policy and pure helpers for the referral forest.
"""

from dataclasses import dataclass
from typing import Any, Optional
from uuid import uuid4

# Branching-factor cap, enforced when a child is attached
MAX_REFERRALS = 8

REFERRAL_CODE_LENGTH = 8

# Attempts at finding an unused code before giving up
MAX_CODE_ATTEMPTS = 5


def generate_referral_code() -> str:
    """Return a random 8-character uppercase hex code."""
    return uuid4().hex[:REFERRAL_CODE_LENGTH].upper()


def normalize_referral_code(referral_code: Optional[str]) -> Optional[str]:
    """Strip whitespace; an empty code means no referrer."""
    if referral_code is None:
        return None
    referral_code = referral_code.strip()
    return referral_code or None


@dataclass(frozen=True)
class UserSummary:
    """Public view of a user inside somebody else's referral tree."""

    username: str
    referral_code: str

    @classmethod
    def of(cls, user: Any) -> "UserSummary":
        return cls(username=user.username, referral_code=user.referral_code)

    @classmethod
    def of_optional(cls, user: Optional[Any]) -> Optional["UserSummary"]:
        return cls.of(user) if user is not None else None
