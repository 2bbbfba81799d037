"""
Integrity policy for classifying expected IntegrityError exceptions.

Distinguishes unique-constraint violations that signal a lost race (duplicate
username, colliding referral code) from integrity errors
that are real failures.
"""

import re
from enum import Enum
from typing import Optional, Dict, Any
from sqlalchemy.exc import IntegrityError  # type: ignore
from ..utils.logging_config import get_logger


logger = get_logger("database")


class ExpectedIntegrityTag(Enum):
    """Tags for expected integrity constraint violations."""

    USERNAME_TAKEN = "username_taken"
    REFERRAL_CODE_TAKEN = "referral_code_taken"


# SQLite reports the columns, PostgreSQL the constraint name; map both
CONSTRAINT_TAG_MAP: Dict[str, ExpectedIntegrityTag] = {
    "users.username": ExpectedIntegrityTag.USERNAME_TAKEN,
    "uq_users_username": ExpectedIntegrityTag.USERNAME_TAKEN,
    "users.referral_code": ExpectedIntegrityTag.REFERRAL_CODE_TAKEN,
    "uq_users_referral_code": ExpectedIntegrityTag.REFERRAL_CODE_TAKEN,
}

_PG_CONSTRAINT = re.compile(r'unique constraint "([^"]+)"')


def is_unique_violation(exc: IntegrityError) -> bool:
    """Check if the IntegrityError is a unique constraint violation."""
    error_msg = str(exc.orig) if exc.orig else str(exc)
    return (
        "UNIQUE constraint failed" in error_msg
        or "duplicate key value violates unique constraint" in error_msg
    )


def extract_constraint_name(exc: IntegrityError) -> Optional[str]:
    """Extract constraint name from IntegrityError."""
    error_msg = str(exc.orig) if exc.orig else str(exc)

    # SQLite format: "UNIQUE constraint failed: table.column1, table.column2"
    if "UNIQUE constraint failed:" in error_msg:
        return error_msg.split("UNIQUE constraint failed:", 1)[1].strip()

    # PostgreSQL format: 'duplicate key value violates unique constraint "name"'
    match = _PG_CONSTRAINT.search(error_msg)
    if match:
        return match.group(1)

    return None


def classify_integrity_error(exc: IntegrityError) -> Optional[ExpectedIntegrityTag]:
    """
    Classify an IntegrityError to determine if it's an expected constraint violation.

    Args:
        exc: The IntegrityError exception to classify

    Returns:
        ExpectedIntegrityTag if this is an expected violation, None otherwise
    """
    if not is_unique_violation(exc):
        return None

    constraint_name = extract_constraint_name(exc)
    if constraint_name is None:
        return None

    return CONSTRAINT_TAG_MAP.get(constraint_name)


def log_expected_violation(
    tag: ExpectedIntegrityTag, exc: IntegrityError, context: Dict[str, Any]
) -> None:
    """Log an expected integrity violation at INFO level with structured context."""
    logger.info(
        "Expected integrity violation",
        extra={
            "integrity_tag": tag.value,
            "constraint_name": extract_constraint_name(exc),
            "operation": context.get("operation", "unknown"),
            "entity_id": context.get("entity_id"),
        },
    )


def log_unexpected_violation(exc: IntegrityError, context: Dict[str, Any]) -> None:
    """Log an unexpected integrity violation at ERROR level."""
    logger.error(
        "Unexpected integrity violation",
        extra={
            "constraint_name": extract_constraint_name(exc),
            "operation": context.get("operation", "unknown"),
            "entity_id": context.get("entity_id"),
            "error_message": str(exc),
        },
        exc_info=exc,
    )
