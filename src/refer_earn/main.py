"""Main FastAPI application for the Refer & Earn service."""

import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse

from . import __version__
from .api import auth, transactions, users
from .api.middleware import RequestSizeLimitMiddleware, install_problem_details
from .config import get_config
from .db.database import Database
from .utils.logging_config import get_logger, initialize_logging


def create_app(database: Optional[Database] = None) -> FastAPI:
    """
    Build the application around a database handle.

    When no handle is given the app creates one from configuration and owns
    its lifecycle; a handle passed in is used as-is and left open on shutdown.
    """
    config = get_config()
    initialize_logging()
    logger = get_logger("main")

    owns_database = database is None
    if database is None:
        database = Database()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if owns_database:
            database.init(create_schema=config.database.create_schema)
        logger.info(f"{config.app.app_name} {__version__} started")
        try:
            yield
        finally:
            if owns_database:
                database.dispose()
            logger.info(f"{config.app.app_name} stopped")

    app = FastAPI(
        title=config.app.app_name,
        description=config.app.description,
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.database = database

    # Add custom middleware in correct order (innermost first)
    install_problem_details(app)
    app.add_middleware(RequestSizeLimitMiddleware)

    allowed_origins = list(config.server.allowed_origins)
    if config.server.debug:
        allowed_origins.extend(
            [
                f"http://127.0.0.1:{config.server.port}",
                f"http://localhost:{config.server.port}",
            ]
        )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "Accept", "Origin"],
    )

    app.include_router(auth.router)
    app.include_router(users.router)
    app.include_router(transactions.router)

    @app.get("/", include_in_schema=False)
    async def root():
        return RedirectResponse(url="/docs")

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "healthy", "service": "refer-earn", "version": __version__}

    @app.get("/ready")
    async def readiness_check(request: Request):
        """Readiness check endpoint that validates database connectivity."""
        start_time = time.time()
        checks = {"database": False}
        errors = []

        try:
            request.app.state.database.ping()
            checks["database"] = True
        except Exception as e:
            errors.append(f"Database check failed: {str(e)}")

        all_ready = all(checks.values())
        response = {
            "status": "ready" if all_ready else "not_ready",
            "service": "refer-earn",
            "version": __version__,
            "checks": checks,
            "response_time_ms": round((time.time() - start_time) * 1000, 2),
        }

        if errors:
            response["errors"] = errors

        return JSONResponse(content=response, status_code=200 if all_ready else 503)

    return app


app = create_app()
