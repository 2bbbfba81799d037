"""Pytest configuration and shared fixtures."""

import os

# Configuration is read once per process, so the environment is set up before
# anything from refer_earn is imported.
os.environ.setdefault(
    "REFER_EARN_JWT_SECRET_KEY", "tq7HvN2xWmK9pLr4ZbC8yFs6JdG3uXe5"
)
os.environ.setdefault("REFER_EARN_LOG_TO_FILE", "0")
os.environ.setdefault("REFER_EARN_PASSWORD_HASH_ITERATIONS", "1000")
os.environ.setdefault("REFER_EARN_DATABASE_URL", "sqlite:///:memory:")

from pathlib import Path
from typing import Callable, Dict, Generator, Optional

import pytest
from fastapi.testclient import TestClient

from refer_earn.core.commission_engine import CommissionEngine
from refer_earn.core.referral_graph import ReferralGraphManager
from refer_earn.db.database import Database
from refer_earn.main import create_app
from refer_earn.repositories.dependencies import get_repository_container
from refer_earn.repositories.interfaces import RepositoryContainer
from refer_earn.repositories.memory_impl import create_memory_container
from refer_earn.repositories.sqlalchemy_impl import create_sqlalchemy_container


@pytest.fixture
def memory_repos() -> RepositoryContainer:
    """Fresh in-memory repositories."""
    return create_memory_container()


@pytest.fixture
def graph(memory_repos) -> ReferralGraphManager:
    return ReferralGraphManager(memory_repos)


@pytest.fixture
def engine(memory_repos) -> CommissionEngine:
    return CommissionEngine(memory_repos)


@pytest.fixture
def db_url(tmp_path: Path) -> str:
    """URL of a throwaway SQLite database file."""
    return f"sqlite:///{tmp_path / 'refer_earn_test.db'}"


@pytest.fixture
def database(db_url) -> Generator[Database, None, None]:
    """An initialized database handle with the schema created."""
    db = Database(db_url)
    db.init(create_schema=True)
    yield db
    db.dispose()


@pytest.fixture
def db_session(database):
    """Create a database session, closed after the test."""
    session = database.session()
    yield session
    session.close()


@pytest.fixture
def sql_repos(db_session) -> RepositoryContainer:
    return create_sqlalchemy_container(db_session)


@pytest.fixture
def client(database) -> Generator[TestClient, None, None]:
    """Test client for an app running on the temporary SQLite database."""
    app = create_app(database)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def memory_client(memory_repos) -> Generator[TestClient, None, None]:
    """Test client whose repositories are the in-memory implementations."""
    app = create_app(Database("sqlite:///:memory:"))
    app.dependency_overrides[get_repository_container] = lambda: memory_repos

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def signup() -> Callable[..., Dict]:
    """Register a user through the API and return the response body."""

    def _signup(
        test_client: TestClient,
        username: str,
        referral_code: Optional[str] = None,
        password: str = "hunter2-but-longer",
    ) -> Dict:
        payload = {"username": username, "password": password}
        if referral_code is not None:
            payload["referral_code"] = referral_code
        response = test_client.post("/v1/auth/signup", json=payload)
        assert response.status_code == 201, response.text
        return response.json()

    return _signup


@pytest.fixture
def auth_headers() -> Callable[..., Dict[str, str]]:
    """Log a user in through the API and return Bearer headers."""

    def _auth_headers(
        test_client: TestClient, username: str, password: str = "hunter2-but-longer"
    ) -> Dict[str, str]:
        response = test_client.post(
            "/v1/auth/login", json={"username": username, "password": password}
        )
        assert response.status_code == 200, response.text
        return {"Authorization": f"Bearer {response.json()['access_token']}"}

    return _auth_headers
