"""Response envelope schemas.

Every HTTP response body uses one of two shapes:

    {"success": true,  "data": ..., "timestamp": "...", "traceId": "..."}
    {"success": false, "code": "A00004", "message": "...", "devMessage"?: "...",
     "timestamp": "...", "traceId": "..."}

RPC failures carry a flat RpcErrorPayload instead, since the RPC error
channel already signals failure.
"""

from datetime import UTC, datetime
from typing import Generic, Literal, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

T = TypeVar("T")


def utc_timestamp() -> str:
    """ISO 8601 UTC timestamp of the moment the envelope is generated."""
    return datetime.now(UTC).isoformat()


class _Envelope(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class SuccessEnvelope(_Envelope, Generic[T]):
    """Successful result wrapper. ``[T]`` is the handler's return type."""

    success: Literal[True] = True
    data: T
    timestamp: str = Field(default_factory=utc_timestamp)
    trace_id: str


class ErrorEnvelope(_Envelope):
    """Failed request body. ``dev_message`` is omitted in production."""

    success: Literal[False] = False
    code: str
    message: str
    dev_message: str | None = None
    timestamp: str = Field(default_factory=utc_timestamp)
    trace_id: str


class RpcErrorPayload(_Envelope):
    code: str
    message: str
    status: int
    dev_message: str | None = None
