"""Per-transport request contexts.

The error and success renderers only need to know which transport carried
the request and where to find its trace id. Each context exposes
``get_type()`` plus the accessors its transport has.
"""

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, Protocol

from starlette.requests import HTTPConnection, Request

REQUEST_ID_HEADER = "X-Request-ID"
UNKNOWN_TRACE_ID = "unknown"


class Transport(StrEnum):
    HTTP = "http"
    RPC = "rpc"
    GRAPHQL = "graphql"


class TransportContext(Protocol):
    def get_type(self) -> Transport: ...


def request_trace_id(request: HTTPConnection) -> str:
    """Trace id stamped on the request by RequestIDMiddleware, or ``"unknown"``."""
    return getattr(request.state, "request_id", None) or UNKNOWN_TRACE_ID


@dataclass(frozen=True)
class HttpContext:
    request: Request

    def get_type(self) -> Transport:
        return Transport.HTTP

    @property
    def trace_id(self) -> str:
        return request_trace_id(self.request)


@dataclass(frozen=True)
class RpcContext:
    """Call metadata of an RPC/message transport, keyed by lower-case name."""

    metadata: Mapping[str, Sequence[str | bytes]] = field(default_factory=dict)

    @classmethod
    def from_pairs(cls, pairs: Iterable[tuple[str, str | bytes]] | None) -> "RpcContext":
        """Build from ``(key, value)`` pairs, e.g. gRPC's ``invocation_metadata()``."""
        metadata: dict[str, list[str | bytes]] = {}
        for key, value in pairs or ():
            metadata.setdefault(key.lower(), []).append(value)
        return cls(metadata=metadata)

    def get_type(self) -> Transport:
        return Transport.RPC

    def get(self, key: str) -> Sequence[str | bytes]:
        return self.metadata.get(key.lower(), ())

    @property
    def trace_id(self) -> str:
        values = self.get(REQUEST_ID_HEADER)
        if not values or not values[0]:
            return UNKNOWN_TRACE_ID
        value = values[0]
        return value.decode() if isinstance(value, bytes) else str(value)


@dataclass(frozen=True)
class GraphqlContext:
    """Context of a GraphQL operation.

    ``context`` is the engine's per-operation context value (``info.context``),
    which carries the underlying HTTP request as ``context["request"]`` or
    ``context.request`` depending on the server integration.
    """

    context: Any = None

    def get_type(self) -> Transport:
        return Transport.GRAPHQL

    def get_request(self) -> HTTPConnection:
        if isinstance(self.context, Mapping):
            request = self.context["request"]
        else:
            request = self.context.request
        if not isinstance(request, HTTPConnection):
            raise TypeError(f"GraphQL context has no HTTP request: {request!r}")
        return request
