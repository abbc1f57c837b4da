"""Error rendering for every transport.

ErrorRenderer is the catch path the dispatcher invokes with whatever a
handler raised. The resolver classifies and logs the failure, then one
render function per transport shapes it:

- http:    JSON ErrorEnvelope with the resolved status code
- rpc:     raises RpcError carrying a flat {code, message, status, devMessage?} payload
- graphql: raises GraphQLError with {code, status, devMessage?} extensions
"""

from collections.abc import Callable
from typing import Any, NoReturn

from fastapi.responses import JSONResponse
from graphql import GraphQLError
from starlette.exceptions import HTTPException as StarletteHTTPException

from errorkit.config import settings
from errorkit.exceptions import RpcError
from errorkit.logging import get_logger
from errorkit.resolver import ExceptionResolver, ResolvedError
from errorkit.schemas.envelope import ErrorEnvelope, RpcErrorPayload
from errorkit.transports import (
    UNKNOWN_TRACE_ID,
    GraphqlContext,
    HttpContext,
    RpcContext,
    Transport,
    TransportContext,
    request_trace_id,
)

logger = get_logger(__name__)


class ErrorRenderer:
    """Turns a failure into the response shape of the transport that carried it."""

    def __init__(self, resolver: ExceptionResolver, *, is_production: bool | None = None) -> None:
        self._resolver = resolver
        self._is_production = settings.is_production if is_production is None else is_production
        self._renderers: dict[Transport, Callable[[object, Any], Any]] = {
            Transport.HTTP: self._render_http,
            Transport.RPC: self._render_rpc,
            Transport.GRAPHQL: self._render_graphql,
        }

    @property
    def resolver(self) -> ExceptionResolver:
        return self._resolver

    def render(self, exception: object, context: TransportContext) -> JSONResponse:
        """Render ``exception`` for ``context``'s transport.

        Returns the HTTP response for http; rpc and graphql raise their
        transport's own error type instead.
        """
        render = self._renderers[context.get_type()]
        return render(exception, context)  # type: ignore[no-any-return]

    def _disclosed(self, resolved: ResolvedError) -> str | None:
        """devMessage as the client may see it: never in production."""
        if self._is_production or not resolved.dev_message:
            return None
        return resolved.dev_message

    def _render_http(self, exception: object, context: HttpContext) -> JSONResponse:
        resolved = self._resolver.resolve(exception)
        trace_id = context.trace_id
        self._resolver.log(exception, resolved.error_code, trace_id)

        body = ErrorEnvelope(
            code=resolved.error_code.code,
            message=resolved.message,
            dev_message=self._disclosed(resolved),
            trace_id=trace_id,
        )
        # Keep headers framework errors rely on (Allow, WWW-Authenticate, ...)
        headers = exception.headers if isinstance(exception, StarletteHTTPException) else None
        return JSONResponse(
            status_code=resolved.status,
            content=body.model_dump(by_alias=True, exclude_none=True),
            headers=headers,
        )

    def _render_rpc(self, exception: object, context: RpcContext) -> NoReturn:
        resolved = self._resolver.resolve(exception)
        self._resolver.log(exception, resolved.error_code, context.trace_id)

        payload = RpcErrorPayload(
            code=resolved.error_code.code,
            message=resolved.message,
            status=resolved.status,
            dev_message=self._disclosed(resolved),
        )
        cause = exception if isinstance(exception, BaseException) else None
        raise RpcError(payload.model_dump(by_alias=True, exclude_none=True)) from cause

    def _render_graphql(self, exception: object, context: GraphqlContext) -> NoReturn:
        resolved = self._resolver.resolve(exception)

        # GraphQL usually runs over HTTP, but not every integration exposes the request
        try:
            trace_id = request_trace_id(context.get_request())
        except Exception:
            logger.debug("graphql_trace_id_unavailable", exc_info=True)
            trace_id = UNKNOWN_TRACE_ID

        self._resolver.log(exception, resolved.error_code, trace_id)

        extensions: dict[str, Any] = {
            "message": resolved.message,
            "code": resolved.error_code.code,
            "status": resolved.status,
        }
        dev_message = self._disclosed(resolved)
        if dev_message:
            extensions["devMessage"] = dev_message

        original = exception if isinstance(exception, Exception) else None
        raise GraphQLError(resolved.message, original_error=original, extensions=extensions)
