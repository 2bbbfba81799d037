"""Unit tests for classifying unique-constraint violations."""

import pytest
from sqlalchemy.exc import IntegrityError

from refer_earn.repositories.integrity_policy import (
    ExpectedIntegrityTag,
    classify_integrity_error,
    extract_constraint_name,
    is_unique_violation,
)


def integrity_error(message: str) -> IntegrityError:
    return IntegrityError("INSERT INTO users ...", {}, Exception(message))


@pytest.mark.unit
class TestIntegrityPolicy:
    @pytest.mark.parametrize(
        "message, tag",
        [
            ("UNIQUE constraint failed: users.username", ExpectedIntegrityTag.USERNAME_TAKEN),
            (
                "UNIQUE constraint failed: users.referral_code",
                ExpectedIntegrityTag.REFERRAL_CODE_TAKEN,
            ),
            (
                'duplicate key value violates unique constraint "uq_users_username"',
                ExpectedIntegrityTag.USERNAME_TAKEN,
            ),
            (
                'duplicate key value violates unique constraint "uq_users_referral_code"',
                ExpectedIntegrityTag.REFERRAL_CODE_TAKEN,
            ),
        ],
    )
    def test_expected_violations(self, message, tag):
        assert classify_integrity_error(integrity_error(message)) is tag

    def test_slot_violation_is_unexpected(self):
        exc = integrity_error(
            "UNIQUE constraint failed: users.referred_by_id, users.referral_slot"
        )

        assert is_unique_violation(exc)
        assert extract_constraint_name(exc) == "users.referred_by_id, users.referral_slot"
        assert classify_integrity_error(exc) is None

    def test_foreign_key_violation_is_unexpected(self):
        exc = integrity_error("FOREIGN KEY constraint failed")

        assert not is_unique_violation(exc)
        assert classify_integrity_error(exc) is None
