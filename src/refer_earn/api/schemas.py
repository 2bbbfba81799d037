"""Pydantic models for API request/response validation."""

from datetime import datetime
from decimal import Decimal
from typing import Any, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_serializer  # type: ignore


class BaseResponse(BaseModel):
    """Base response model with common fields."""

    model_config = ConfigDict(from_attributes=True)


class ProblemDetails(BaseModel):
    """RFC 9457 Problem Details for HTTP APIs."""

    type: str = Field(description="A URI reference that identifies the problem type")
    title: str = Field(
        description="A short, human-readable summary of the problem type"
    )
    status: int = Field(description="The HTTP status code")
    detail: Optional[str] = Field(
        None, description="A human-readable explanation specific to this occurrence"
    )
    instance: Optional[str] = Field(
        None, description="A URI reference that identifies the specific occurrence"
    )


# Authentication schemas
class SignupRequest(BaseModel):
    """Schema for signup request."""

    username: str = Field(description="Unique username", min_length=1, max_length=100)
    password: str = Field(description="Account password", min_length=1, max_length=256)
    referral_code: Optional[str] = Field(
        None, description="Referral code of the referring user", max_length=32
    )


class LoginRequest(BaseModel):
    """Schema for login request."""

    username: str = Field(description="Username", min_length=1, max_length=100)
    password: str = Field(description="Account password", min_length=1, max_length=256)


class LoginResponse(BaseModel):
    """Schema for login response."""

    access_token: str = Field(description="JWT access token")
    token_type: str = Field(default="bearer", description="Token type")
    expires_at: datetime = Field(description="Token expiration timestamp")
    user_id: UUID = Field(description="UUID of the authenticated user")


# User schemas
class UserSummaryResponse(BaseResponse):
    """A user as seen inside somebody else's referral tree."""

    username: str
    referral_code: str


class SignupResponse(BaseResponse):
    """Schema for a freshly registered user."""

    id: UUID
    username: str
    referral_code: str
    referred_by: Optional[UserSummaryResponse] = None


class ProfileResponse(BaseResponse):
    """Schema for the caller's own profile."""

    username: str
    referral_code: str
    direct_earnings: Decimal
    indirect_earnings: Decimal
    referred_by: Optional[UserSummaryResponse] = None
    referrals: List[UserSummaryResponse] = Field(default_factory=list)

    @field_serializer("direct_earnings", "indirect_earnings")
    def serialize_money(self, value: Decimal) -> float:
        return float(value)


class AncestorsResponse(BaseResponse):
    """Schema for the caller's parent and grandparent."""

    parent: Optional[UserSummaryResponse] = None
    grandparent: Optional[UserSummaryResponse] = None


class DescendantsResponse(BaseResponse):
    """Schema for the caller's referrals and their referrals."""

    children: List[UserSummaryResponse] = Field(default_factory=list)
    grandchildren: List[UserSummaryResponse] = Field(default_factory=list)


# Transaction schemas
class TransactionCreate(BaseModel):
    """Schema for recording a transaction."""

    # Validated by the commission rules so every rejection reads the same
    amount: Any = Field(description="Positive transaction amount")


class TransactionResponse(BaseResponse):
    """Schema for a recorded transaction."""

    id: UUID
    user_id: UUID
    amount: Decimal
    created_at: datetime

    @field_serializer("amount")
    def serialize_amount(self, value: Decimal) -> float:
        return float(value)


class TransactionRecorded(BaseModel):
    """Confirmation returned after recording a transaction."""

    message: str = "Transaction recorded"
    transaction: TransactionResponse
