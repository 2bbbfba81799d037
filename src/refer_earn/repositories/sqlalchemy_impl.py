"""SQLAlchemy concrete implementations of repository interfaces."""

from decimal import Decimal
from typing import List, Optional, Sequence
from uuid import UUID

from sqlalchemy import desc, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .integrity_policy import (
    ExpectedIntegrityTag,
    classify_integrity_error,
    log_expected_violation,
    log_unexpected_violation,
)
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


class BaseSQLAlchemyRepository:
    """Base SQLAlchemy repository implementation."""

    def __init__(self, session: Session):
        self._session = session


class SQLAlchemyUserRepository(BaseSQLAlchemyRepository, UserRepository):
    """SQLAlchemy implementation of UserRepository."""

    async def get_by_id(self, user_id: UUID) -> Optional[User]:
        """Get a user by ID."""
        return self._session.query(User).filter(User.id == user_id).first()

    async def get_by_username(self, username: str) -> Optional[User]:
        """Get a user by username."""
        return self._session.query(User).filter(User.username == username).first()

    async def get_by_referral_code(self, referral_code: str) -> Optional[User]:
        """Get the user owning a referral code."""
        return (
            self._session.query(User)
            .filter(User.referral_code == referral_code)
            .first()
        )

    async def list_referrals(self, parent_id: UUID) -> List[User]:
        """Get the direct referrals of a user in slot order."""
        return (
            self._session.query(User)
            .filter(User.referred_by_id == parent_id)
            .order_by(User.referral_slot)
            .all()
        )

    async def list_referrals_of_many(self, parent_ids: Sequence[UUID]) -> List[User]:
        """Get the direct referrals of every given user in one lookup."""
        if not parent_ids:
            return []

        order = {parent_id: index for index, parent_id in enumerate(parent_ids)}
        children = (
            self._session.query(User)
            .filter(User.referred_by_id.in_(list(parent_ids)))
            .all()
        )
        children.sort(key=lambda child: (order[child.referred_by_id], child.referral_slot))
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
        """
        Create a new user, claiming a parent slot in the same transaction.

        The claim is a conditional increment of the parent's referral_count,
        so concurrent signups under one parent serialize on the parent row.
        """
        context = {"operation": "create_user", "entity_id": username}
        referral_slot = None

        try:
            if referred_by_id is not None:
                referral_slot = self._claim_referral_slot(referred_by_id, max_referrals)

            user = User(
                username=username,
                password_hash=password_hash,
                password_salt=password_salt,
                referral_code=referral_code,
                referred_by_id=referred_by_id,
                referral_slot=referral_slot,
                referral_count=0,
                direct_earnings=Decimal("0.00"),
                indirect_earnings=Decimal("0.00"),
            )
            self._session.add(user)
            self._session.flush()
            self._session.commit()
        except IntegrityError as exc:
            self._session.rollback()
            tag = classify_integrity_error(exc)
            if tag is ExpectedIntegrityTag.USERNAME_TAKEN:
                log_expected_violation(tag, exc, context)
                raise DuplicateUsername(username) from exc
            if tag is ExpectedIntegrityTag.REFERRAL_CODE_TAKEN:
                log_expected_violation(tag, exc, context)
                raise ReferralCodeTaken(referral_code) from exc
            log_unexpected_violation(exc, context)
            raise
        except Exception:
            self._session.rollback()
            raise

        self._session.refresh(user)
        return user

    def _claim_referral_slot(
        self, parent_id: UUID, max_referrals: Optional[int]
    ) -> int:
        """Take the next free slot of a parent or raise ReferralLimitReached."""
        statement = update(User).where(User.id == parent_id)
        if max_referrals is not None:
            statement = statement.where(User.referral_count < max_referrals)
        statement = statement.values(
            referral_count=User.referral_count + 1
        ).execution_options(synchronize_session=False)

        result = self._session.execute(statement)
        if result.rowcount != 1:
            self._session.rollback()
            parent_code = (
                self._session.query(User.referral_code)
                .filter(User.id == parent_id)
                .scalar()
            )
            if parent_code is None:
                raise UserNotFound(parent_id)
            raise ReferralLimitReached(parent_code, max_referrals)

        # The parent row stays locked until commit, so this is our own count
        return (
            self._session.query(User.referral_count)
            .filter(User.id == parent_id)
            .scalar()
        )

    async def increment_earnings(
        self, user_id: UUID, kind: EarningsKind, delta: Decimal
    ) -> None:
        """Atomically add ``delta`` to one earnings field and commit."""
        column = getattr(User, kind.value)
        try:
            result = self._session.execute(
                update(User)
                .where(User.id == user_id)
                .values({column: column + delta})
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                raise UserNotFound(user_id)
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise


class SQLAlchemyTransactionRepository(BaseSQLAlchemyRepository, TransactionRepository):
    """SQLAlchemy implementation of TransactionRepository."""

    async def create(self, user_id: UUID, amount: Decimal) -> Transaction:
        """Create and commit a new transaction."""
        transaction = Transaction(user_id=user_id, amount=amount)
        self._session.add(transaction)
        try:
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise
        self._session.refresh(transaction)
        return transaction

    async def list_by_user(self, user_id: UUID, limit: int = 100) -> List[Transaction]:
        """Get the transactions of a user, newest first."""
        return (
            self._session.query(Transaction)
            .filter(Transaction.user_id == user_id)
            .order_by(desc(Transaction.created_at))
            .limit(limit)
            .all()
        )


def create_sqlalchemy_container(session: Session) -> RepositoryContainer:
    """Build a container whose repositories share one session."""
    return RepositoryContainer(
        user_repo=SQLAlchemyUserRepository(session),
        transaction_repo=SQLAlchemyTransactionRepository(session),
    )
