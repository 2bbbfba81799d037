"""SQLAlchemy models for the Refer & Earn service."""

from datetime import datetime, timezone
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import (
    Column,
    String,
    Integer,
    DateTime,
    Numeric,
    ForeignKey,
    UniqueConstraint,
    Index,
)
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.types import TypeDecorator, CHAR

from .database import Base

# Two decimal places for every money column
Money = Numeric(18, 2, asdecimal=True)


class GUID(TypeDecorator):
    """Platform-independent GUID type using String for SQLite."""

    impl = CHAR
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "postgresql":
            return dialect.type_descriptor(PG_UUID())
        else:
            return dialect.type_descriptor(CHAR(36))

    def process_bind_param(self, value, dialect):
        if value is None:
            return value
        return str(value)

    def process_result_value(self, value, dialect):
        if value is None:
            return value
        if not isinstance(value, UUID):
            return UUID(str(value))
        return value


class User(Base):
    """A user node in the referral forest."""

    __tablename__ = "users"

    id = Column(GUID(), primary_key=True, default=uuid4)
    username = Column(String(100), nullable=False)
    password_hash = Column(String(255), nullable=False)
    password_salt = Column(String(64), nullable=False)
    referral_code = Column(String(8), nullable=False)

    # Set once at creation, never updated
    referred_by_id = Column(GUID(), ForeignKey("users.id"), nullable=True)
    # 1-based position inside the parent's referrals
    referral_slot = Column(Integer, nullable=True)
    # Number of claimed slots on this user as a parent
    referral_count = Column(Integer, nullable=False, default=0)

    direct_earnings = Column(Money, nullable=False, default=Decimal("0"))
    indirect_earnings = Column(Money, nullable=False, default=Decimal("0"))
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        UniqueConstraint("username", name="uq_users_username"),
        UniqueConstraint("referral_code", name="uq_users_referral_code"),
        UniqueConstraint(
            "referred_by_id", "referral_slot", name="uq_users_referral_slot"
        ),
        Index("ix_users_referred_by_id", "referred_by_id"),
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, username='{self.username}', code='{self.referral_code}')>"


class Transaction(Base):
    """A payment event recorded for a user. Never updated or deleted."""

    __tablename__ = "transactions"

    id = Column(GUID(), primary_key=True, default=uuid4)
    user_id = Column(GUID(), ForeignKey("users.id"), nullable=False)
    amount = Column(Money, nullable=False)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (Index("ix_transactions_user_created", "user_id", "created_at"),)

    def __repr__(self) -> str:
        return f"<Transaction(id={self.id}, user_id={self.user_id}, amount={self.amount})>"
