"""Unit tests for per-transport error rendering."""

import json
from datetime import datetime
from types import SimpleNamespace
from unittest.mock import Mock

import pytest
from fastapi import HTTPException
from graphql import GraphQLError
from starlette.requests import Request

from errorkit.codes import COMMON_ERRORS
from errorkit.exceptions import AppException, RpcError
from errorkit.filters import ErrorRenderer
from errorkit.resolver import ExceptionResolver
from errorkit.transports import GraphqlContext, HttpContext, RpcContext


def _request(request_id: str | None = None) -> Request:
    request = Request({"type": "http", "method": "GET", "path": "/", "headers": [], "query_string": b""})
    if request_id is not None:
        request.state.request_id = request_id
    return request


def _body(response: object) -> dict[str, object]:
    return json.loads(response.body)  # type: ignore[attr-defined,no-any-return]


@pytest.fixture
def renderer(resolver: ExceptionResolver) -> ErrorRenderer:
    return ErrorRenderer(resolver, is_production=False)


@pytest.fixture
def production_renderer(resolver: ExceptionResolver) -> ErrorRenderer:
    return ErrorRenderer(resolver, is_production=True)


class TestHttp:
    def test_status_and_envelope(self, renderer: ErrorRenderer) -> None:
        response = renderer.render(AppException(COMMON_ERRORS.NOT_FOUND), HttpContext(_request("req-1")))

        assert response.status_code == 404
        body = _body(response)
        assert body["success"] is False
        assert body["code"] == "A00004"
        assert body["message"] == "Not found"
        assert body["traceId"] == "req-1"
        assert "devMessage" not in body

    def test_timestamp_is_iso_8601(self, renderer: ErrorRenderer) -> None:
        response = renderer.render(RuntimeError("test"), HttpContext(_request("req-3")))
        datetime.fromisoformat(str(_body(response)["timestamp"]))

    def test_dev_message_outside_production(self, renderer: ErrorRenderer) -> None:
        ex = AppException(COMMON_ERRORS.BAD_REQUEST, dev_message="missing field: email")

        body = _body(renderer.render(ex, HttpContext(_request("req-2"))))

        assert body["devMessage"] == "missing field: email"

    def test_dev_message_hidden_in_production(self, production_renderer: ErrorRenderer) -> None:
        ex = AppException(COMMON_ERRORS.INTERNAL_SERVER_ERROR, dev_message="pool exhausted")

        body = _body(production_renderer.render(ex, HttpContext(_request("req-2"))))

        assert body["code"] == "B00001"
        assert "devMessage" not in body

    def test_unknown_trace_id_when_request_has_none(self, renderer: ErrorRenderer) -> None:
        body = _body(renderer.render(RuntimeError("test"), HttpContext(_request())))
        assert body["traceId"] == "unknown"

    def test_framework_headers_are_kept(self, renderer: ErrorRenderer) -> None:
        ex = HTTPException(status_code=401, headers={"WWW-Authenticate": "Bearer"})

        response = renderer.render(ex, HttpContext(_request("req-4")))

        assert response.status_code == 401
        assert response.headers["www-authenticate"] == "Bearer"

    def test_logs_with_request_trace_id(self, renderer: ErrorRenderer, logger: Mock) -> None:
        renderer.render(RuntimeError("boom"), HttpContext(_request("req-5")))

        assert logger.error.call_args.kwargs["trace_id"] == "req-5"


class TestRpc:
    def test_raises_flat_payload(self, renderer: ErrorRenderer) -> None:
        with pytest.raises(RpcError) as exc_info:
            renderer.render(AppException(COMMON_ERRORS.NOT_FOUND), RpcContext())

        assert exc_info.value.error == {"code": "A00004", "message": "Not found", "status": 404}

    def test_dev_message_outside_production(self, renderer: ErrorRenderer) -> None:
        ex = AppException(COMMON_ERRORS.INTERNAL_SERVER_ERROR, dev_message="pool exhausted")

        with pytest.raises(RpcError) as exc_info:
            renderer.render(ex, RpcContext())

        assert exc_info.value.error["devMessage"] == "pool exhausted"
        assert "success" not in exc_info.value.error

    def test_dev_message_hidden_in_production(self, production_renderer: ErrorRenderer) -> None:
        ex = AppException(COMMON_ERRORS.INTERNAL_SERVER_ERROR, dev_message="pool exhausted")

        with pytest.raises(RpcError) as exc_info:
            production_renderer.render(ex, RpcContext())

        assert "devMessage" not in exc_info.value.error

    def test_original_exception_is_chained(self, renderer: ErrorRenderer) -> None:
        ex = RuntimeError("boom")

        with pytest.raises(RpcError) as exc_info:
            renderer.render(ex, RpcContext())

        assert exc_info.value.__cause__ is ex

    def test_logs_with_metadata_trace_id(self, renderer: ErrorRenderer, logger: Mock) -> None:
        context = RpcContext.from_pairs([("x-request-id", "rpc-9")])

        with pytest.raises(RpcError):
            renderer.render(RuntimeError("boom"), context)

        assert logger.error.call_args.kwargs["trace_id"] == "rpc-9"


class TestGraphql:
    def test_raises_graphql_error_with_extensions(self, renderer: ErrorRenderer) -> None:
        context = GraphqlContext({"request": _request("gql-1")})

        with pytest.raises(GraphQLError) as exc_info:
            renderer.render(AppException(COMMON_ERRORS.FORBIDDEN), context)

        assert exc_info.value.message == "Forbidden"
        assert exc_info.value.extensions == {"message": "Forbidden", "code": "A00003", "status": 403}

    def test_dev_message_extension_outside_production(self, renderer: ErrorRenderer) -> None:
        ex = AppException(COMMON_ERRORS.INTERNAL_SERVER_ERROR, dev_message="pool exhausted")

        with pytest.raises(GraphQLError) as exc_info:
            renderer.render(ex, GraphqlContext({"request": _request("gql-2")}))

        assert exc_info.value.extensions["devMessage"] == "pool exhausted"
        assert exc_info.value.original_error is ex

    def test_dev_message_hidden_in_production(self, production_renderer: ErrorRenderer) -> None:
        ex = AppException(COMMON_ERRORS.INTERNAL_SERVER_ERROR, dev_message="pool exhausted")

        with pytest.raises(GraphQLError) as exc_info:
            production_renderer.render(ex, GraphqlContext({"request": _request("gql-2")}))

        assert "devMessage" not in exc_info.value.extensions

    def test_trace_id_from_underlying_request(self, renderer: ErrorRenderer, logger: Mock) -> None:
        context = GraphqlContext(SimpleNamespace(request=_request("gql-3")))

        with pytest.raises(GraphQLError):
            renderer.render(RuntimeError("boom"), context)

        assert logger.error.call_args.kwargs["trace_id"] == "gql-3"

    @pytest.mark.parametrize("engine_context", [None, {}, {"request": "not a request"}, object()])
    def test_trace_id_lookup_failure_falls_back_to_unknown(
        self, renderer: ErrorRenderer, logger: Mock, engine_context: object
    ) -> None:
        with pytest.raises(GraphQLError):
            renderer.render(RuntimeError("boom"), GraphqlContext(engine_context))

        assert logger.error.call_args.kwargs["trace_id"] == "unknown"
