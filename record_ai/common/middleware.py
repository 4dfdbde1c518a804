"""FastAPI middleware for correlation IDs and request/response logging."""

from __future__ import annotations

import time
import uuid
from collections.abc import Awaitable, Callable
from contextvars import ContextVar
from typing import ClassVar

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from record_ai.common.structured_logging import correlation_context, get_logger

logger = get_logger(__name__)

_correlation_id: ContextVar[str | None] = ContextVar("correlation_id", default=None)


def get_correlation_id() -> str | None:
    """Get correlation ID from async context."""
    return _correlation_id.get()


class ObservabilityMiddleware(BaseHTTPMiddleware):
    """Correlation ID propagation plus request timing logs.

    The correlation ID is taken from ``X-Correlation-ID`` (or generated), bound
    into structlog's context variables for the duration of the request so every
    provider-client log line carries it, and echoed back on the response.
    """

    CORRELATION_HEADER = "X-Correlation-ID"
    EXCLUDED_PATHS: ClassVar[set[str]] = {"/health/live"}

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        correlation_id = request.headers.get(self.CORRELATION_HEADER) or str(
            uuid.uuid4()
        )
        token = _correlation_id.set(correlation_id)
        should_log = request.url.path not in self.EXCLUDED_PATHS
        start_time = time.perf_counter()

        with correlation_context(correlation_id):
            if should_log:
                logger.info(
                    "http.request.start",
                    method=request.method,
                    path=request.url.path,
                )
            try:
                response = await call_next(request)
            except Exception as exc:
                logger.error(
                    "http.request.error",
                    method=request.method,
                    path=request.url.path,
                    error=str(exc),
                    error_type=type(exc).__name__,
                    duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
                )
                raise
            finally:
                _correlation_id.reset(token)

            if should_log:
                logger.info(
                    "http.request.complete",
                    method=request.method,
                    path=request.url.path,
                    status_code=response.status_code,
                    duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
                )

        response.headers[self.CORRELATION_HEADER] = correlation_id
        return response


__all__ = ["ObservabilityMiddleware", "get_correlation_id"]
