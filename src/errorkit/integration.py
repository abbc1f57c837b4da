"""Wiring of the error and envelope layer into a FastAPI app."""

from collections.abc import Iterable

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.requests import Request
from starlette.responses import Response

from errorkit.exceptions import AppException
from errorkit.filters import ErrorRenderer
from errorkit.interceptor import EnvelopeRoute
from errorkit.middleware import AccessLogMiddleware, RequestIDMiddleware, UnhandledErrorMiddleware
from errorkit.resolver import ExceptionResolver
from errorkit.transports import HttpContext


def install(
    app: FastAPI,
    *,
    resolver: ExceptionResolver | None = None,
    is_production: bool | None = None,
    access_log: bool = True,
    access_log_exclude: Iterable[str] = (),
) -> ErrorRenderer:
    """Attach trace ids, error rendering and success envelopes to ``app``.

    Call before declaring routes on ``app``: routes added afterwards use
    EnvelopeRoute. Routers built separately need ``APIRouter(route_class=EnvelopeRoute)``.

    Middleware order, outermost first:
    RequestIDMiddleware -> AccessLogMiddleware -> UnhandledErrorMiddleware -> app

    Paths in ``access_log_exclude`` still get trace ids and envelopes but no access log line.
    """
    renderer = ErrorRenderer(resolver or ExceptionResolver(), is_production=is_production)

    async def render_exception(request: Request, exc: Exception) -> Response:
        return renderer.render(exc, HttpContext(request))

    app.add_exception_handler(StarletteHTTPException, render_exception)
    app.add_exception_handler(RequestValidationError, render_exception)
    app.add_exception_handler(AppException, render_exception)

    # add_middleware prepends, so the last one added is the outermost
    app.add_middleware(UnhandledErrorMiddleware, renderer=renderer)
    if access_log:
        app.add_middleware(AccessLogMiddleware, exclude_paths=access_log_exclude)
    app.add_middleware(RequestIDMiddleware)

    app.router.route_class = EnvelopeRoute
    return renderer
