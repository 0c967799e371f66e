"""Per-request logging context for the moderation API.

Authentication happens at the gateway in front of this service. The gateway
forwards the acting moderator in ``X-Moderator-ID``; it is bound to the log
context together with request, trace and correlation ids so that every
moderation event can be attributed.
"""

import re
import time
from collections.abc import Awaitable, Callable

import structlog
from fastapi import Request, Response
from starlette.datastructures import Headers
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from src.core.context import (
    clear_context,
    set_correlation_id,
    set_moderator_id,
    set_request_id,
    set_trace_id,
)


logger = structlog.get_logger(__name__)

# W3C traceparent: version-traceid-parentid-flags
_TRACEPARENT_RE = re.compile(
    r"^[0-9a-f]{2}-([0-9a-f]{32})-[0-9a-f]{16}-[0-9a-f]{2}$"
)

# Header values end up in log sinks
_MAX_HEADER_ID_LENGTH = 128


def parse_traceparent(value: str | None) -> str | None:
    """Trace id from a W3C ``traceparent`` header, or None if malformed."""
    if not value:
        return None
    match = _TRACEPARENT_RE.match(value.strip().lower())
    if match is None or set(match.group(1)) == {"0"}:
        return None
    return match.group(1)


def _header_id(headers: Headers, name: str) -> str | None:
    value = headers.get(name)
    if not value:
        return None
    return value.strip()[:_MAX_HEADER_ID_LENGTH] or None


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Binds request identifiers to the log context and logs request timing."""

    REQUEST_ID_HEADER = "X-Request-ID"
    TRACE_ID_HEADER = "X-Trace-ID"
    B3_TRACE_HEADER = "X-B3-TraceId"
    TRACEPARENT_HEADER = "traceparent"
    CORRELATION_ID_HEADER = "X-Correlation-ID"
    MODERATOR_ID_HEADER = "X-Moderator-ID"

    def __init__(
        self,
        app: ASGIApp,
        log_requests: bool = True,
        exclude_paths: list[str] | None = None,
    ) -> None:
        super().__init__(app)
        self.log_requests = log_requests
        self.exclude_paths = tuple(exclude_paths or ["/health"])

    def bind_context(self, request: Request) -> str:
        """Populate contextvars from request headers. Returns the request id."""
        headers = request.headers
        request_id = set_request_id(_header_id(headers, self.REQUEST_ID_HEADER))
        request.state.request_id = request_id

        trace_id = (
            _header_id(headers, self.TRACE_ID_HEADER)
            or _header_id(headers, self.B3_TRACE_HEADER)
            or parse_traceparent(headers.get(self.TRACEPARENT_HEADER))
        )
        if trace_id:
            set_trace_id(trace_id)

        correlation_id = _header_id(headers, self.CORRELATION_ID_HEADER)
        if correlation_id:
            set_correlation_id(correlation_id)

        moderator_id = _header_id(headers, self.MODERATOR_ID_HEADER)
        if moderator_id:
            set_moderator_id(moderator_id)

        return request_id

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        start_time = time.perf_counter()
        request_id = self.bind_context(request)
        should_log = self.log_requests and not request.url.path.startswith(
            self.exclude_paths
        )

        try:
            response = await call_next(request)
            if should_log:
                log = logger.warning if response.status_code >= 500 else logger.info
                log(
                    "request_completed",
                    method=request.method,
                    path=request.url.path,
                    status_code=response.status_code,
                    duration_ms=_elapsed_ms(start_time),
                )
            response.headers[self.REQUEST_ID_HEADER] = request_id
            return response
        except Exception as e:
            logger.exception(
                "request_failed",
                method=request.method,
                path=request.url.path,
                error_type=type(e).__name__,
                duration_ms=_elapsed_ms(start_time),
            )
            raise
        finally:
            clear_context()


def _elapsed_ms(start_time: float) -> float:
    return round((time.perf_counter() - start_time) * 1000, 2)


__all__ = ["RequestContextMiddleware", "parse_traceparent"]
