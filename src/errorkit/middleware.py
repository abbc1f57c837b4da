"""FastAPI middleware for request tracing, error rendering and access logs."""

import time
import uuid
from collections.abc import Awaitable, Callable, Iterable

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from errorkit.filters import ErrorRenderer
from errorkit.logging import get_logger
from errorkit.transports import REQUEST_ID_HEADER, HttpContext

logger = get_logger(__name__)


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Add request ID to every request for tracing.

    - Reads X-Request-ID from request headers, or generates a UUID if missing
    - Stores it as request.state.request_id (read by the envelope renderers)
    - Binds request_id to structlog context (auto-included in all logs)
    - Adds X-Request-ID to response headers

    Usage:
        app.add_middleware(RequestIDMiddleware)

        # In any endpoint or dependency:
        logger.info("something_happened")  # request_id automatically included
    """

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        # Use existing request ID or generate new one
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        request.state.request_id = request_id

        # Bind to structlog context so all logs in this request will include it
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)

        response = await call_next(request)

        # Add to response headers for client tracing
        response.headers[REQUEST_ID_HEADER] = request_id

        return response


class UnhandledErrorMiddleware(BaseHTTPMiddleware):
    """Render exceptions no registered handler claimed.

    Must sit inside RequestIDMiddleware so error responses still get the
    trace id header. Exception handlers registered for ``Exception`` run
    outside all user middleware, which is why this is a middleware.
    """

    def __init__(self, app: ASGIApp, renderer: ErrorRenderer) -> None:
        super().__init__(app)
        self.renderer = renderer

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        try:
            return await call_next(request)
        except Exception as exc:
            return self.renderer.render(exc, HttpContext(request))


class AccessLogMiddleware(BaseHTTPMiddleware):
    """Log one line per request: error for 5xx, warning for 4xx, info otherwise.

    Requests whose path is in ``exclude_paths`` (health checks, probes) are not logged.
    """

    def __init__(self, app: ASGIApp, exclude_paths: Iterable[str] = ()) -> None:
        super().__init__(app)
        self.exclude_paths = frozenset(exclude_paths)

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        if request.url.path in self.exclude_paths:
            return await call_next(request)

        started = time.perf_counter()
        response = await call_next(request)
        duration_ms = round((time.perf_counter() - started) * 1000, 2)

        if response.status_code >= 500:
            log = logger.error
        elif response.status_code >= 400:
            log = logger.warning
        else:
            log = logger.info

        log(
            "request_completed",
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            duration_ms=duration_ms,
        )
        return response
