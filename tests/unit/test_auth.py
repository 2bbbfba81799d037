"""Unit tests for password hashing, JWT tokens and credential checks."""

from datetime import datetime, timedelta, timezone
from uuid import uuid4

import jwt
import pytest
from fastapi import HTTPException, status

from refer_earn.auth.dependencies import authenticate_with_credentials
from refer_earn.auth.jwt_auth import JWTTokenManager
from refer_earn.auth.security import hash_password, verify_password
from refer_earn.domain.errors import InvalidCredentials

SECRET = "Zk4vR9pXq2mT7wLc8nBf3hYd6sGj5uEa"


def _encode(claims):
    expires = datetime.now(timezone.utc) + timedelta(minutes=5)
    return jwt.encode({**claims, "exp": expires}, SECRET, algorithm="HS256")


@pytest.mark.unit
class TestPasswordHashing:
    def test_hash_and_verify(self):
        salt_hex, hash_hex = hash_password("correct horse")

        assert len(salt_hex) == 64  # 32 bytes
        assert verify_password("correct horse", salt_hex, hash_hex) is True
        assert verify_password("wrong horse", salt_hex, hash_hex) is False

    def test_same_password_gets_different_salts(self):
        assert hash_password("pw") != hash_password("pw")

    def test_explicit_salt_is_deterministic(self):
        salt = bytes(32)
        assert hash_password("pw", salt) == hash_password("pw", salt)

    @pytest.mark.parametrize(
        "password, salt_hex, hash_hex",
        [("", "aa", "bb"), ("pw", "", "bb"), ("pw", "aa", ""), ("pw", "not-hex", "bb")],
    )
    def test_verify_rejects_malformed_input(self, password, salt_hex, hash_hex):
        assert verify_password(password, salt_hex, hash_hex) is False


@pytest.mark.unit
class TestJWTTokenManager:
    def test_round_trip(self):
        manager = JWTTokenManager(secret_key=SECRET, access_token_expires_minutes=5)
        user_id = uuid4()

        token, expires_at = manager.create_access_token(user_id, "alice")

        payload = manager.verify_access_token(token)
        assert payload["sub"] == str(user_id)
        assert payload["username"] == "alice"
        assert manager.extract_user_id(token) == user_id
        assert expires_at > datetime.now(timezone.utc)

    def test_expired_token(self):
        manager = JWTTokenManager(secret_key=SECRET)
        now = datetime.now(timezone.utc)
        token = jwt.encode(
            {"sub": str(uuid4()), "type": "access", "exp": now - timedelta(minutes=1)},
            SECRET,
            algorithm="HS256",
        )

        with pytest.raises(HTTPException) as exc_info:
            manager.verify_access_token(token)

        assert exc_info.value.status_code == status.HTTP_401_UNAUTHORIZED
        assert "expired" in exc_info.value.detail

    def test_wrong_signature(self):
        issuer = JWTTokenManager(secret_key=SECRET)
        verifier = JWTTokenManager(secret_key=SECRET[::-1])
        token, _ = issuer.create_access_token(uuid4(), "alice")

        with pytest.raises(HTTPException) as exc_info:
            verifier.verify_access_token(token)

        assert exc_info.value.status_code == status.HTTP_401_UNAUTHORIZED

    def test_wrong_token_type(self):
        manager = JWTTokenManager(secret_key=SECRET)
        token = _encode({"sub": str(uuid4()), "type": "refresh"})

        with pytest.raises(HTTPException) as exc_info:
            manager.verify_access_token(token)

        assert exc_info.value.detail == "Invalid token type"

    def test_malformed_subject(self):
        manager = JWTTokenManager(secret_key=SECRET)
        token = _encode({"sub": "not-a-uuid", "type": "access"})

        with pytest.raises(HTTPException):
            manager.extract_user_id(token)


@pytest.mark.unit
class TestAuthenticateWithCredentials:
    async def test_valid_credentials(self, graph, memory_repos):
        user = await graph.register("alice", "s3cret-pass")

        authenticated = await authenticate_with_credentials(
            memory_repos, "alice", "s3cret-pass"
        )

        assert authenticated is user

    async def test_unknown_user_and_wrong_password_look_the_same(
        self, graph, memory_repos
    ):
        await graph.register("alice", "s3cret-pass")

        with pytest.raises(InvalidCredentials) as unknown:
            await authenticate_with_credentials(memory_repos, "bob", "s3cret-pass")
        with pytest.raises(InvalidCredentials) as wrong:
            await authenticate_with_credentials(memory_repos, "alice", "nope")

        assert unknown.value.detail == wrong.value.detail
        assert unknown.value.status_code == wrong.value.status_code == 401
