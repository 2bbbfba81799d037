"""Custom middleware and error handlers for API request/response processing."""

from typing import Any, Callable, Dict, Optional

from fastapi import FastAPI, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from ..domain.errors import ReferEarnError
from ..utils.logging_config import get_logger, log_exception

logger = get_logger("api")

DEFAULT_TITLES = {
    400: "Bad Request",
    401: "Unauthorized",
    403: "Forbidden",
    404: "Not Found",
    409: "Conflict",
    413: "Payload Too Large",
    422: "Unprocessable Entity",
    500: "Internal Server Error",
    503: "Service Unavailable",
}


def problem_response(
    status_code: int,
    title: str,
    detail: Optional[str] = None,
    type_uri: Optional[str] = None,
    instance: Optional[str] = None,
    headers: Optional[Dict[str, str]] = None,
    **extra_fields: Any,
) -> JSONResponse:
    """Create a JSON response in RFC 9457 Problem Details format."""
    problem = {
        "type": type_uri or f"https://httpstatuses.com/{status_code}",
        "title": title,
        "status": status_code,
    }

    if detail:
        problem["detail"] = detail
    if instance:
        problem["instance"] = instance

    problem.update(extra_fields)

    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(problem),
        media_type="application/problem+json",
        headers=headers,
    )


class ProblemDetailsMiddleware(BaseHTTPMiddleware):
    """Turns exceptions that escape the route handlers into a 500 problem response."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        try:
            return await call_next(request)
        except Exception as exc:
            log_exception(
                "api", exc, {"method": request.method, "path": request.url.path}
            )
            return problem_response(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                title="Internal Server Error",
                detail="An unexpected error occurred",
                instance=str(request.url),
            )


class RequestSizeLimitMiddleware(BaseHTTPMiddleware):
    """Middleware to enforce request size limits."""

    def __init__(self, app: ASGIApp, request_limit: int = 16 * 1024):  # 16KB
        super().__init__(app)
        self.request_limit = request_limit

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        content_length = request.headers.get("content-length")
        if content_length:
            try:
                length = int(content_length)
            except ValueError:
                return problem_response(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    title="Bad Request",
                    detail="Invalid Content-Length header",
                    instance=str(request.url),
                )

            if length > self.request_limit:
                return problem_response(
                    status_code=413,
                    title="Request Entity Too Large",
                    detail=f"Request size {length} bytes exceeds limit of {self.request_limit} bytes",
                    type_uri="https://datatracker.ietf.org/doc/html/rfc7231#section-6.5.11",
                    instance=str(request.url),
                )

        return await call_next(request)


async def refer_earn_error_handler(request: Request, exc: ReferEarnError) -> JSONResponse:
    if exc.status_code >= 500:
        log_exception("api", exc, {"path": request.url.path})
    else:
        logger.info(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.detail}")
    return problem_response(
        status_code=exc.status_code,
        title=exc.title,
        detail=exc.detail,
        instance=str(request.url),
    )


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    return problem_response(
        status_code=exc.status_code,
        title=DEFAULT_TITLES.get(exc.status_code, "HTTP Error"),
        detail=exc.detail,
        instance=str(request.url),
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    return problem_response(
        status_code=422,
        title="Validation Error",
        detail="Request validation failed",
        instance=str(request.url),
        errors=exc.errors(),
    )


def install_problem_details(app: FastAPI) -> None:
    """Register the problem-details handlers and middleware on an app."""
    app.add_exception_handler(ReferEarnError, refer_earn_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_middleware(ProblemDetailsMiddleware)
