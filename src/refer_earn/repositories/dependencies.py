"""Dependency injection for repository layer."""

from typing import Iterator

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from ..core.commission_engine import CommissionEngine
from ..core.referral_graph import ReferralGraphManager
from ..db.database import Database
from .interfaces import RepositoryContainer
from .sqlalchemy_impl import create_sqlalchemy_container


def get_database(request: Request) -> Database:
    """Return the database handle owned by the running application."""
    return request.app.state.database


def get_db(database: Database = Depends(get_database)) -> Iterator[Session]:
    """Yield a request-scoped session from the application's database."""
    yield from database.sessions()


def get_repository_container(
    db: Session = Depends(get_db),
) -> RepositoryContainer:
    """
    Create and configure a repository container with SQLAlchemy implementations.

    This is the main dependency injection point for repositories. Tests can
    override it to run the API against the in-memory repositories.
    """
    return create_sqlalchemy_container(db)


def get_referral_graph(
    repos: RepositoryContainer = Depends(get_repository_container),
) -> ReferralGraphManager:
    """Get a referral graph manager bound to the request's repositories."""
    return ReferralGraphManager(repos)


def get_commission_engine(
    repos: RepositoryContainer = Depends(get_repository_container),
) -> CommissionEngine:
    """Get a commission engine bound to the request's repositories."""
    return CommissionEngine(repos)
