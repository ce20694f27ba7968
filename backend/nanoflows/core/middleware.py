"""
NanoFlows - HTTP Middleware
"""

import time
from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.types import ASGIApp

from nanoflows.core.logging_config import (
    logger,
    set_request_id,
    set_user_id,
    generate_request_id,
)


QUIET_PATHS = frozenset({"/", "/health", "/api/v1/health", "/docs", "/redoc", "/openapi.json", "/favicon.ico"})

# Uploads enforce their own limit in the upload service
UPLOAD_PATH_PREFIX = "/api/v1/upload/"

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-XSS-Protection": "1; mode=block",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "X-Frame-Options": "DENY",
}

SLOW_REQUEST_MS = 1000


def is_quiet(path: str) -> bool:
    return path in QUIET_PATHS or path.startswith("/uploads/")


def level_for_status(status_code: int) -> str:
    if status_code >= 500:
        return "error"
    if status_code >= 400:
        return "warning"
    return "info"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Tags every request with an ID and logs one line per response"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("X-Request-ID") or generate_request_id()
        set_request_id(request_id)
        label = f"{request.method} {request.url.path}"
        started = time.perf_counter()

        try:
            try:
                response = await call_next(request)
            except Exception as exc:
                logger.error(
                    f"{label} raised {type(exc).__name__}",
                    exc_info=True,
                    extra={"event_type": "http_request_error", "error_type": type(exc).__name__},
                )
                raise

            elapsed_ms = (time.perf_counter() - started) * 1000
            response.headers["X-Request-ID"] = request_id
            response.headers["X-Response-Time"] = f"{elapsed_ms:.2f}ms"

            if not is_quiet(request.url.path):
                getattr(logger, level_for_status(response.status_code))(
                    f"{label} - {response.status_code} ({elapsed_ms:.2f}ms)",
                    extra={
                        "event_type": "http_request",
                        "http_method": request.method,
                        "http_path": request.url.path,
                        "http_status": response.status_code,
                        "duration_ms": elapsed_ms,
                    },
                )
                if elapsed_ms > SLOW_REQUEST_MS:
                    logger.log_performance(label, elapsed_ms, threshold_ms=SLOW_REQUEST_MS)

            return response
        finally:
            set_request_id("")
            set_user_id("")


class SecurityHeadersMiddleware(BaseHTTPMiddleware):

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)
        response.headers.update(SECURITY_HEADERS)
        return response


class RequestSizeLimitMiddleware(BaseHTTPMiddleware):
    """Rejects bodies whose declared Content-Length is over ``max_size`` bytes"""

    def __init__(self, app: ASGIApp, max_size: int = 10 * 1024 * 1024):
        super().__init__(app)
        self.max_size = max_size

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        declared = request.headers.get("content-length", "")
        path = request.url.path
        if declared.isdigit() and int(declared) > self.max_size and not path.startswith(UPLOAD_PATH_PREFIX):
            logger.warning(f"Rejected {declared} byte body on {path} (limit {self.max_size})")
            return JSONResponse(
                status_code=413,
                content={"detail": f"Request body too large. Maximum size is {self.max_size // 1024 // 1024}MB"},
            )
        return await call_next(request)
