"""Database configuration and setup."""

import logging
import time
from typing import Iterator, Optional

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from ..config import get_config

# Query performance logger
query_logger = logging.getLogger("sqlalchemy.query_performance")

# Base class for models
Base = declarative_base()


def _is_sqlite_url(url: str) -> bool:
    """Check if database URL is for SQLite."""
    return url.startswith("sqlite")


def _setup_sqlite_pragma(dbapi_connection, connection_record):
    """Set SQLite pragmas for better performance and concurrency."""
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA synchronous=NORMAL")
    cursor.execute("PRAGMA busy_timeout=5000")  # 5 second timeout for concurrent access
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.execute("PRAGMA temp_store=MEMORY")
    cursor.close()


def _setup_query_logging(engine: Engine, enable_query_logging: bool = False):
    """Set up query performance logging if enabled."""
    if not enable_query_logging:
        return

    @event.listens_for(engine, "before_cursor_execute")
    def receive_before_cursor_execute(
        conn, cursor, statement, parameters, context, executemany
    ):
        context._query_start_time = time.time()

    @event.listens_for(engine, "after_cursor_execute")
    def receive_after_cursor_execute(
        conn, cursor, statement, parameters, context, executemany
    ):
        total = time.time() - context._query_start_time

        # Log slow queries (>100ms) as warnings, others as debug
        if total > 0.1:
            query_logger.warning(
                f"Slow query ({total:.3f}s): {statement[:200]}{'...' if len(statement) > 200 else ''}"
            )
        else:
            query_logger.debug(
                f"Query ({total:.3f}s): {statement[:100]}{'...' if len(statement) > 100 else ''}"
            )


def create_database_engine(
    database_url: str, echo: bool = False, enable_query_logging: bool = False
) -> Engine:
    """Create database engine with appropriate configuration."""
    if _is_sqlite_url(database_url):
        engine = create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            echo=echo,
        )

        # Enable WAL mode and other SQLite optimizations
        event.listen(engine, "connect", _setup_sqlite_pragma)
    else:
        engine = create_engine(database_url, echo=echo, pool_pre_ping=True)

    _setup_query_logging(engine, enable_query_logging)

    return engine


class Database:
    """
    Persistence handle owning the engine and session factory.

    Constructed explicitly and passed to whoever needs it; nothing touches
    the database before ``init()`` or after ``dispose()``.
    """

    def __init__(
        self,
        url: Optional[str] = None,
        echo: Optional[bool] = None,
        log_queries: Optional[bool] = None,
    ):
        config = get_config().database
        self.url = url or config.url
        self.echo = config.echo if echo is None else echo
        self.log_queries = config.log_queries if log_queries is None else log_queries
        self._engine: Optional[Engine] = None
        self._session_factory: Optional[sessionmaker] = None

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            raise RuntimeError("Database has not been initialized")
        return self._engine

    @property
    def is_initialized(self) -> bool:
        return self._engine is not None

    def init(self, create_schema: bool = False) -> None:
        """Create the engine and session factory; optionally create tables."""
        if self._engine is not None:
            return

        self._engine = create_database_engine(
            self.url, echo=self.echo, enable_query_logging=self.log_queries
        )
        self._session_factory = sessionmaker(
            autocommit=False, autoflush=False, bind=self._engine
        )

        if create_schema:
            # Register models on the metadata before creating tables
            from . import models  # noqa: F401

            Base.metadata.create_all(bind=self._engine)

    def dispose(self) -> None:
        """Release all pooled connections."""
        if self._engine is not None:
            self._engine.dispose()
        self._engine = None
        self._session_factory = None

    def session(self) -> Session:
        """Open a new session bound to this database."""
        if self._session_factory is None:
            raise RuntimeError("Database has not been initialized")
        return self._session_factory()

    def sessions(self) -> Iterator[Session]:
        """Yield a session and close it afterwards (FastAPI dependency style)."""
        db = self.session()
        try:
            yield db
        finally:
            db.close()

    def ping(self) -> bool:
        """Check connectivity with a trivial query."""
        with self.engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
