"""API middleware and exception handlers."""
import time
import uuid
from typing import Callable

from fastapi import FastAPI, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware

from ..config import settings
from ..core.exceptions import BaseAPIException, RateLimitExceeded
from ..core.logging import RequestLogger, SecurityLogger
from ..schemas.common import ErrorResponse


def error_response(
    status_code: int,
    message: str,
    error_code: str,
    details: dict = None,
    headers: dict = None
) -> JSONResponse:
    """Render the error envelope shared by every failure."""
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(
            error=message,
            error_code=error_code,
            details=details or {},
        ).model_dump(mode="json", by_alias=True),
        headers=headers
    )


async def api_exception_handler(request: Request, exc: BaseAPIException) -> JSONResponse:
    return error_response(exc.status_code, exc.message, exc.error_code, exc.details, exc.headers)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report request body and query errors as 400 with per-field messages."""
    fields = {}
    for error in exc.errors():
        location = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        fields[".".join(location) or "request"] = error.get("msg", "Invalid value")
    return error_response(
        status.HTTP_400_BAD_REQUEST, "Validation failed", "VALIDATION_ERROR", fields
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return error_response(
        exc.status_code, str(exc.detail), "HTTP_EXCEPTION", headers=getattr(exc, "headers", None)
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(BaseAPIException, api_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware for logging requests and responses."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        # Generate request ID
        request_id = str(uuid.uuid4())
        request.state.request_id = request_id

        start_time = time.time()
        RequestLogger.log_request(
            method=request.method,
            path=str(request.url.path),
            request_id=request_id,
            extra_data={
                "client_ip": request.client.host if request.client else None,
                "user_agent": request.headers.get("user-agent")
            }
        )

        response = await call_next(request)

        # Identity is only known once the route's dependencies have run
        identity = getattr(request.state, "identity", None)
        RequestLogger.log_response(
            method=request.method,
            path=str(request.url.path),
            status_code=response.status_code,
            response_time_ms=(time.time() - start_time) * 1000,
            user_id=str(identity.id) if identity else None,
            request_id=request_id
        )

        response.headers["X-Request-ID"] = request_id
        return response


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """Turn anything the exception handlers missed into a generic 500."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        try:
            return await call_next(request)

        except BaseAPIException as e:
            return error_response(e.status_code, e.message, e.error_code, e.details, e.headers)

        except Exception as e:
            RequestLogger.log_unhandled_error(
                method=request.method,
                path=str(request.url.path),
                request_id=getattr(request.state, "request_id", None)
            )
            return error_response(
                status.HTTP_500_INTERNAL_SERVER_ERROR,
                "Internal server error",
                "INTERNAL_ERROR",
                {"message": str(e)} if settings.debug else {}
            )


class RateLimitingMiddleware(BaseHTTPMiddleware):
    """Simple in-memory sliding window rate limiting per client address."""

    def __init__(self, app, requests_per_window: int = 100, window_seconds: int = 60):
        super().__init__(app)
        self.requests_per_window = requests_per_window
        self.window_seconds = window_seconds
        self.request_times = {}  # client_ip -> list of request times
        self.last_sweep = time.time()

    def _sweep(self, current_time: float) -> None:
        """Forget clients with no request inside the window."""
        self.request_times = {
            client_ip: times for client_ip, times in self.request_times.items()
            if times and current_time - times[-1] < self.window_seconds
        }
        self.last_sweep = current_time

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if not settings.api.rate_limit_enabled:
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        current_time = time.time()
        if current_time - self.last_sweep >= self.window_seconds:
            self._sweep(current_time)

        self.request_times[client_ip] = [
            req_time for req_time in self.request_times.get(client_ip, [])
            if current_time - req_time < self.window_seconds
        ]

        if len(self.request_times[client_ip]) >= self.requests_per_window:
            SecurityLogger.log_rate_limit_exceeded(
                ip_address=client_ip,
                path=str(request.url.path)
            )
            exc = RateLimitExceeded()
            return error_response(
                exc.status_code,
                exc.message,
                exc.error_code,
                headers={"Retry-After": str(self.window_seconds)}
            )

        self.request_times[client_ip].append(current_time)
        return await call_next(request)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to responses."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Cache-Control"] = "no-store"

        return response
