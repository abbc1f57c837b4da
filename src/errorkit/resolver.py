"""Classification of any raised value into a stable error identity.

ExceptionResolver.resolve() turns whatever a handler raised into a
ResolvedError (error code, client message, developer diagnostic, status).
ExceptionResolver.log() records it at the severity its source implies:
user errors (``A``) at warning, everything else at error with the stack.
"""

import contextlib
import json
import traceback
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, replace
from typing import Any

from fastapi.exceptions import RequestValidationError
from graphql import GraphQLError
from starlette.exceptions import HTTPException as StarletteHTTPException
from structlog.stdlib import BoundLogger

from errorkit.codes import COMMON_ERRORS, HTTP_STATUS_TO_ERROR
from errorkit.exceptions import AppException, RpcError
from errorkit.logging import get_logger
from errorkit.registry import ErrorCodeDef, ErrorSource

# Location prefixes FastAPI adds to validation errors, dropped from field paths
_LOCATION_PREFIXES = {"body", "query", "path", "header", "cookie"}


@dataclass(frozen=True)
class ResolvedError:
    error_code: ErrorCodeDef
    message: str
    dev_message: str | None
    status: int


def format_stack(exception: BaseException) -> str:
    """Render the exception with its traceback and cause chain."""
    return "".join(traceback.format_exception(exception))


def is_user_error(error_code: ErrorCodeDef) -> bool:
    return error_code.code.startswith(ErrorSource.USER)


def _payload_message(payload: Any) -> str | None:
    """Diagnostic from an HTTP exception payload: a string, or an object's ``message``."""
    if isinstance(payload, str):
        return payload
    if isinstance(payload, Mapping) and "message" in payload:
        message = payload["message"]
        if isinstance(message, Sequence) and not isinstance(message, str):
            return "; ".join(str(item) for item in message)
        return str(message)
    return None


def _format_issue(issue: Mapping[str, Any]) -> str:
    location = issue.get("loc", ())
    field = ".".join(str(part) for part in location if part not in _LOCATION_PREFIXES)
    message = str(issue.get("msg", "Invalid value"))
    return f"{field}: {message}" if field else message


def _to_json(value: Any) -> str:
    return json.dumps(value, default=str)


class ExceptionResolver:
    """Resolves and logs failures for every transport."""

    def __init__(self, logger: BoundLogger | None = None) -> None:
        self._logger = logger if logger is not None else get_logger(__name__)

    def resolve(self, exception: object) -> ResolvedError:
        """Classify ``exception``; the first matching case wins."""
        match exception:
            case AppException():
                return self._resolve_app_exception(exception)

            case StarletteHTTPException():
                return self._resolve_http_status(exception.status_code, exception.detail)

            case RequestValidationError():
                issues = [_format_issue(issue) for issue in exception.errors()]
                return self._resolve_http_status(422, {"message": issues})

            case RpcError():
                error = exception.error
                return self._internal_error(error if isinstance(error, str) else _to_json(error))

            case GraphQLError(original_error=BaseException() as original) if not isinstance(
                original, GraphQLError
            ):
                # graphql-core wraps resolver failures; classify what was actually raised
                return self.resolve(original)

            case GraphQLError():
                return ResolvedError(
                    error_code=COMMON_ERRORS.BAD_REQUEST,
                    message=exception.message or COMMON_ERRORS.BAD_REQUEST.message,
                    dev_message=_to_json(exception.extensions) if exception.extensions else None,
                    status=COMMON_ERRORS.BAD_REQUEST.http_status,
                )

            case BaseException():
                return self._internal_error(format_stack(exception))

            case _:
                return self._internal_error(str(exception))

    def _resolve_app_exception(self, exception: AppException) -> ResolvedError:
        dev_message = exception.dev_message
        # Stack traces are never attached to expected user errors
        if dev_message is None and not is_user_error(exception.error_code):
            dev_message = format_stack(exception)

        return ResolvedError(
            error_code=exception.error_code,
            message=exception.user_message,
            dev_message=dev_message,
            status=exception.status,
        )

    def _resolve_http_status(self, status_code: int, payload: Any) -> ResolvedError:
        error_code = HTTP_STATUS_TO_ERROR.get(status_code, COMMON_ERRORS.INTERNAL_SERVER_ERROR)
        return ResolvedError(
            error_code=replace(error_code, http_status=status_code),
            message=error_code.message,
            dev_message=_payload_message(payload),
            status=status_code,
        )

    def _internal_error(self, dev_message: str) -> ResolvedError:
        error_code = COMMON_ERRORS.INTERNAL_SERVER_ERROR
        return ResolvedError(
            error_code=error_code,
            message=error_code.message,
            dev_message=dev_message,
            status=error_code.http_status,
        )

    def log(self, exception: object, error_code: ErrorCodeDef, trace_id: str) -> None:
        """Log a resolved failure. Logging problems never propagate to the caller."""
        context = f"ExceptionFilter[{error_code.code}]"

        with contextlib.suppress(Exception):
            if is_user_error(error_code):
                message = (
                    exception.user_message
                    if isinstance(exception, AppException)
                    else error_code.message
                )
                self._logger.warning(
                    "user_error",
                    code=error_code.code,
                    message=message,
                    context=context,
                    trace_id=trace_id,
                )
                return

            message = str(exception)
            stack = format_stack(exception) if isinstance(exception, BaseException) else None

            self._logger.error(
                "system_error",
                code=error_code.code,
                message=message,
                stack=stack,
                context=context,
                trace_id=trace_id,
            )
