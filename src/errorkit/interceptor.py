"""Success envelopes for every transport.

- http:    {"success": true, "data": ..., "timestamp": ..., "traceId": <request id>}
- rpc:     same envelope, traceId from the ``x-request-id`` call metadata
- graphql: result returned untouched; the GraphQL engine owns its response shape
"""

import inspect
import json
from collections.abc import Callable
from typing import Any

from fastapi.responses import JSONResponse
from fastapi.routing import APIRoute
from fastapi.utils import is_body_allowed_for_status_code
from starlette.requests import Request
from starlette.responses import Response

from errorkit.filters import ErrorRenderer
from errorkit.schemas.envelope import SuccessEnvelope
from errorkit.transports import HttpContext, RpcContext, Transport, TransportContext


def success_envelope(data: Any, trace_id: str) -> dict[str, Any]:
    return SuccessEnvelope(data=data, trace_id=trace_id).model_dump(by_alias=True)


def _wrap_http(result: Any, context: HttpContext) -> dict[str, Any]:
    return success_envelope(result, context.trace_id)


def _wrap_rpc(result: Any, context: RpcContext) -> dict[str, Any]:
    return success_envelope(result, context.trace_id)


def _passthrough(result: Any, _context: object) -> Any:
    return result


_SUCCESS_RENDERERS: dict[Transport, Callable[[Any, Any], Any]] = {
    Transport.HTTP: _wrap_http,
    Transport.RPC: _wrap_rpc,
    Transport.GRAPHQL: _passthrough,
}


def wrap_success(result: Any, context: TransportContext) -> Any:
    """Shape a handler's successful result for ``context``'s transport."""
    return _SUCCESS_RENDERERS[context.get_type()](result, context)


async def call_handler(
    renderer: ErrorRenderer,
    context: TransportContext,
    handler: Callable[..., Any],
    *args: Any,
    **kwargs: Any,
) -> Any:
    """Run a handler through the envelope path of a non-FastAPI dispatcher.

    Successful results are wrapped with ``wrap_success``; failures go through
    ``renderer``, which raises RpcError/GraphQLError for those transports.

    Example:
        async def GetUser(self, request, grpc_context):
            ctx = RpcContext.from_pairs(grpc_context.invocation_metadata())
            return await call_handler(renderer, ctx, users.get, request.id)
    """
    try:
        result = handler(*args, **kwargs)
        if inspect.isawaitable(result):
            result = await result
    except Exception as exc:
        return renderer.render(exc, context)
    return wrap_success(result, context)


class EnvelopeRoute(APIRoute):
    """APIRoute that wraps successful JSON responses in the success envelope.

    Usage:
        router = APIRouter(route_class=EnvelopeRoute)

    Only 2xx JSONResponses that may carry a body are wrapped, so 204 stays
    empty. Errors never reach this point because exceptions propagate to the
    registered handlers.
    """

    def get_route_handler(self) -> Callable[[Request], Any]:
        original_handler = super().get_route_handler()

        async def envelope_handler(request: Request) -> Response:
            response: Response = await original_handler(request)
            if (
                not isinstance(response, JSONResponse)
                or not 200 <= response.status_code < 300
                or not is_body_allowed_for_status_code(response.status_code)
            ):
                return response

            data = json.loads(response.body) if response.body else None
            wrapped = JSONResponse(
                content=wrap_success(data, HttpContext(request)),
                status_code=response.status_code,
                background=response.background,
            )
            # Carry over headers set by the endpoint (cookies, cache control, ...)
            wrapped.raw_headers.extend(
                (key, value)
                for key, value in response.raw_headers
                if key not in (b"content-length", b"content-type")
            )
            return wrapped

        return envelope_handler
