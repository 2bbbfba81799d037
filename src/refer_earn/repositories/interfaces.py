"""Abstract repository interfaces for data access layer."""

from abc import ABC, abstractmethod
from decimal import Decimal
from typing import List, Optional, Sequence
from uuid import UUID

from ..db.models import User, Transaction
from ..core.enums import EarningsKind


class UserRepository(ABC):
    """Repository interface for User entities.

    Every write commits its own unit of work; callers never manage transactions.
    """

    @abstractmethod
    async def get_by_id(self, user_id: UUID) -> Optional[User]:
        """Get a user by ID."""
        pass

    @abstractmethod
    async def get_by_username(self, username: str) -> Optional[User]:
        """Get a user by username."""
        pass

    @abstractmethod
    async def get_by_referral_code(self, referral_code: str) -> Optional[User]:
        """Get the user owning a referral code."""
        pass

    @abstractmethod
    async def list_referrals(self, parent_id: UUID) -> List[User]:
        """Get the direct referrals of a user in slot order."""
        pass

    @abstractmethod
    async def list_referrals_of_many(self, parent_ids: Sequence[UUID]) -> List[User]:
        """Get the direct referrals of every given user in one lookup."""
        pass

    @abstractmethod
    async def create(
        self,
        username: str,
        password_hash: str,
        password_salt: str,
        referral_code: str,
        referred_by_id: Optional[UUID] = None,
        max_referrals: Optional[int] = None,
    ) -> User:
        """
        Create and commit a new user.

        When ``referred_by_id`` is given, one of the parent's referral slots is
        claimed in the same unit of work, only if fewer than ``max_referrals``
        are taken.

        Raises:
            ReferralLimitReached: The parent has no free slot
            DuplicateUsername: The username is already taken
            ReferralCodeTaken: The referral code is already assigned
        """
        pass

    @abstractmethod
    async def increment_earnings(
        self, user_id: UUID, kind: EarningsKind, delta: Decimal
    ) -> None:
        """Atomically add ``delta`` to one earnings field and commit."""
        pass


class TransactionRepository(ABC):
    """Repository interface for Transaction entities."""

    @abstractmethod
    async def create(self, user_id: UUID, amount: Decimal) -> Transaction:
        """Create and commit a new transaction."""
        pass

    @abstractmethod
    async def list_by_user(self, user_id: UUID, limit: int = 100) -> List[Transaction]:
        """Get the transactions of a user, newest first."""
        pass


class RepositoryContainer:
    """Container for all repository interfaces to support dependency injection."""

    def __init__(
        self,
        user_repo: UserRepository,
        transaction_repo: TransactionRepository,
    ):
        self.user = user_repo
        self.transaction = transaction_repo
