"""Request middleware binding request context and logging each request."""

import time
from collections.abc import Awaitable, Callable

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from coursetrack.core.context import clear_context, set_request_id, set_trace_id


logger = structlog.get_logger(__name__)


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Set request and trace IDs for the lifetime of a request.

    The request ID is taken from ``X-Request-ID`` when the client sends one
    and is echoed back on the response. Start and finish are logged with the
    elapsed time unless the path is excluded (health checks).
    """

    REQUEST_ID_HEADER = "X-Request-ID"
    TRACE_ID_HEADER = "X-Trace-ID"
    TRACEPARENT_HEADER = "traceparent"

    def __init__(
        self,
        app: ASGIApp,
        log_requests: bool = True,
        exclude_paths: list[str] | None = None,
    ) -> None:
        super().__init__(app)
        self.log_requests = log_requests
        self.exclude_paths = exclude_paths or ["/health"]

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        start_time = time.perf_counter()

        request_id = set_request_id(request.headers.get(self.REQUEST_ID_HEADER))
        trace_id = request.headers.get(self.TRACE_ID_HEADER) or parse_traceparent(
            request.headers.get(self.TRACEPARENT_HEADER)
        )
        if trace_id:
            set_trace_id(trace_id)
        request.state.request_id = request_id

        should_log = self.log_requests and not any(
            request.url.path.startswith(path) for path in self.exclude_paths
        )
        if should_log:
            logger.info(
                "request_started",
                method=request.method,
                path=request.url.path,
                client_ip=request.client.host if request.client else None,
            )

        try:
            response = await call_next(request)
        except Exception as e:
            logger.exception(
                "request_failed",
                method=request.method,
                path=request.url.path,
                error_type=type(e).__name__,
                duration_ms=_elapsed_ms(start_time),
            )
            raise
        else:
            if should_log:
                log = logger.warning if response.status_code >= 400 else logger.info
                log(
                    "request_completed",
                    method=request.method,
                    path=request.url.path,
                    status_code=response.status_code,
                    duration_ms=_elapsed_ms(start_time),
                )
            response.headers[self.REQUEST_ID_HEADER] = request_id
            return response
        finally:
            clear_context()


def _elapsed_ms(start_time: float) -> float:
    return round((time.perf_counter() - start_time) * 1000, 2)


def parse_traceparent(traceparent: str | None) -> str | None:
    """Extract the trace ID from a W3C ``traceparent`` header.

    Format: ``{version}-{trace-id}-{parent-id}-{flags}``.
    """
    if not traceparent:
        return None
    parts = traceparent.split("-")
    return parts[1] if len(parts) >= 2 else None
