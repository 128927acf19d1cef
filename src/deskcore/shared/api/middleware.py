"""
Shared API Middleware
======================

Request tracing, request metrics and the exception handlers that turn
application errors into JSON responses.
"""

import time
import uuid
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Dict

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from deskcore.config import settings
from deskcore.core import ApplicationException
from deskcore.shared.infrastructure.logging import bind_correlation_id, get_logger

logger = get_logger(__name__)

CORRELATION_HEADER = "X-Correlation-ID"


def _correlation_id(request: Request) -> str:
    return getattr(request.state, "correlation_id", "unknown")


class CorrelationIDMiddleware(BaseHTTPMiddleware):
    """
    Tags each request with a correlation ID.

    Reuses the caller's X-Correlation-ID when present, binds it to the
    logging context and echoes it on the response.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        correlation_id = request.headers.get(CORRELATION_HEADER) or str(uuid.uuid4())

        request.state.correlation_id = correlation_id
        bind_correlation_id(correlation_id)

        response = await call_next(request)
        response.headers[CORRELATION_HEADER] = correlation_id
        return response


@dataclass
class RequestMetrics:
    """In-process request counters, reported by the health endpoint."""

    requests: int = 0
    total_seconds: float = 0.0
    by_status_class: Counter = field(default_factory=Counter)

    def record(self, status_code: int, seconds: float) -> None:
        self.requests += 1
        self.total_seconds += seconds
        self.by_status_class[f"{status_code // 100}xx"] += 1

    def snapshot(self) -> Dict[str, object]:
        average_ms = (self.total_seconds / self.requests * 1000) if self.requests else 0.0
        return {
            "requests": self.requests,
            "average_response_ms": round(average_ms, 2),
            "by_status": dict(self.by_status_class),
        }


class MetricsMiddleware(BaseHTTPMiddleware):
    """
    Times every request.

    Counters live on app.state.metrics; the elapsed time is also returned in
    X-Response-Time.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start_time = time.perf_counter()
        response = await call_next(request)
        elapsed = time.perf_counter() - start_time

        metrics = getattr(request.app.state, "metrics", None)
        if metrics is not None:
            metrics.record(response.status_code, elapsed)

        response.headers["X-Response-Time"] = f"{elapsed:.3f}s"
        return response


class LoggingMiddleware(BaseHTTPMiddleware):
    """
    Audit log of every request with the acting user.

    Authentication and permission denials log at WARNING.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start_time = time.perf_counter()
        context = {
            "method": request.method,
            "path": request.url.path,
            "acting_user": request.headers.get("X-User-Id"),
        }

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                "Request failed",
                extra={
                    **context,
                    "error": str(e),
                    "response_time_ms": int((time.perf_counter() - start_time) * 1000),
                }
            )
            raise

        log = logger.warning if response.status_code in (401, 403) else logger.info
        log(
            "Request completed",
            extra={
                **context,
                "status_code": response.status_code,
                "response_time_ms": int((time.perf_counter() - start_time) * 1000),
            }
        )
        return response


async def application_exception_handler(request: Request, exc: ApplicationException) -> JSONResponse:
    """
    Maps application exceptions onto their HTTP status.

    The message is always returned: these errors are written for the caller.
    """
    correlation_id = _correlation_id(request)

    log = logger.error if exc.status_code >= 500 else logger.info
    log(
        "Request rejected",
        extra={
            "path": request.url.path,
            "error_type": type(exc).__name__,
            "error_message": exc.message,
            "status_code": exc.status_code,
        }
    )

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "detail": exc.message,
            "error": type(exc).__name__,
            "details": exc.details,
            "correlation_id": correlation_id,
        }
    )


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Last-resort handler for anything the services did not anticipate.

    Internal details are only echoed back in development.
    """
    correlation_id = _correlation_id(request)

    logger.exception(
        "Unhandled exception",
        extra={
            "path": request.url.path,
            "method": request.method,
            "error_type": type(exc).__name__,
        }
    )

    return JSONResponse(
        status_code=500,
        content={
            "detail": "Internal server error",
            "correlation_id": correlation_id,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "debug_info": str(exc) if settings.environment == "development" else None,
        }
    )
