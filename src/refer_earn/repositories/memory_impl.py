"""In-memory implementations of repository interfaces for testing."""

import asyncio
from collections import defaultdict
from decimal import Decimal
from typing import Dict, List, Optional, Sequence
from uuid import UUID, uuid4
from datetime import datetime, timezone

from .interfaces import (
    RepositoryContainer,
    TransactionRepository,
    UserRepository,
)
from ..core.enums import EarningsKind
from ..db.models import User, Transaction
from ..domain.errors import (
    DuplicateUsername,
    ReferralCodeTaken,
    ReferralLimitReached,
    UserNotFound,
)


class MemoryUserRepository(UserRepository):
    """In-memory implementation of UserRepository.

    Slot claims are serialized per parent and earnings increments per user
    with asyncio locks.
    """

    def __init__(self):
        self._users: Dict[UUID, User] = {}
        self._username_index: Dict[str, UUID] = {}
        self._code_index: Dict[str, UUID] = {}
        self._referrals: Dict[UUID, List[UUID]] = defaultdict(list)
        self._locks: Dict[UUID, asyncio.Lock] = defaultdict(asyncio.Lock)
        self._insert_lock = asyncio.Lock()

    async def get_by_id(self, user_id: UUID) -> Optional[User]:
        """Get a user by ID."""
        return self._users.get(user_id)

    async def get_by_username(self, username: str) -> Optional[User]:
        """Get a user by username."""
        user_id = self._username_index.get(username)
        return self._users.get(user_id) if user_id else None

    async def get_by_referral_code(self, referral_code: str) -> Optional[User]:
        """Get the user owning a referral code."""
        user_id = self._code_index.get(referral_code)
        return self._users.get(user_id) if user_id else None

    async def list_referrals(self, parent_id: UUID) -> List[User]:
        """Get the direct referrals of a user in slot order."""
        return [self._users[child_id] for child_id in self._referrals.get(parent_id, [])]

    async def list_referrals_of_many(self, parent_ids: Sequence[UUID]) -> List[User]:
        """Get the direct referrals of every given user in one lookup."""
        children = []
        for parent_id in parent_ids:
            children.extend(await self.list_referrals(parent_id))
        return children

    async def create(
        self,
        username: str,
        password_hash: str,
        password_salt: str,
        referral_code: str,
        referred_by_id: Optional[UUID] = None,
        max_referrals: Optional[int] = None,
    ) -> User:
        """Create a new user, claiming a parent slot under the parent's lock."""
        if referred_by_id is None:
            async with self._insert_lock:
                return self._insert(
                    username, password_hash, password_salt, referral_code, None, None
                )

        async with self._locks[referred_by_id]:
            parent = self._users.get(referred_by_id)
            if parent is None:
                raise UserNotFound(referred_by_id)
            siblings = self._referrals[referred_by_id]
            if max_referrals is not None and len(siblings) >= max_referrals:
                raise ReferralLimitReached(parent.referral_code, max_referrals)

            async with self._insert_lock:
                user = self._insert(
                    username,
                    password_hash,
                    password_salt,
                    referral_code,
                    referred_by_id,
                    len(siblings) + 1,
                )
            siblings.append(user.id)
            parent.referral_count = len(siblings)
            return user

    def _insert(
        self,
        username: str,
        password_hash: str,
        password_salt: str,
        referral_code: str,
        referred_by_id: Optional[UUID],
        referral_slot: Optional[int],
    ) -> User:
        if username in self._username_index:
            raise DuplicateUsername(username)
        if referral_code in self._code_index:
            raise ReferralCodeTaken(referral_code)

        user = User(
            id=uuid4(),
            username=username,
            password_hash=password_hash,
            password_salt=password_salt,
            referral_code=referral_code,
            referred_by_id=referred_by_id,
            referral_slot=referral_slot,
            referral_count=0,
            direct_earnings=Decimal("0.00"),
            indirect_earnings=Decimal("0.00"),
            created_at=datetime.now(timezone.utc),
        )
        self._users[user.id] = user
        self._username_index[username] = user.id
        self._code_index[referral_code] = user.id
        return user

    async def increment_earnings(
        self, user_id: UUID, kind: EarningsKind, delta: Decimal
    ) -> None:
        """Add ``delta`` to one earnings field under the user's lock."""
        async with self._locks[user_id]:
            user = self._users.get(user_id)
            if user is None:
                raise UserNotFound(user_id)
            setattr(user, kind.value, getattr(user, kind.value) + delta)


class MemoryTransactionRepository(TransactionRepository):
    """In-memory implementation of TransactionRepository."""

    def __init__(self):
        self._transactions: Dict[UUID, Transaction] = {}

    async def create(self, user_id: UUID, amount: Decimal) -> Transaction:
        """Create a new transaction."""
        transaction = Transaction(
            id=uuid4(),
            user_id=user_id,
            amount=amount,
            created_at=datetime.now(timezone.utc),
        )
        self._transactions[transaction.id] = transaction
        return transaction

    async def list_by_user(self, user_id: UUID, limit: int = 100) -> List[Transaction]:
        """Get the transactions of a user, newest first."""
        transactions = [
            t for t in self._transactions.values() if t.user_id == user_id
        ]
        transactions.sort(key=lambda t: t.created_at, reverse=True)
        return transactions[:limit]


def create_memory_container() -> RepositoryContainer:
    """Build a container backed by fresh in-memory repositories."""
    return RepositoryContainer(
        user_repo=MemoryUserRepository(),
        transaction_repo=MemoryTransactionRepository(),
    )
