"""Exceptions raised by services and normalized by the resolver.

Services raise AppException to signal anticipated failures. Everything else
(framework errors, RPC failures, GraphQL errors, bugs) is classified by
ExceptionResolver without call sites having to translate it.
"""

import re
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from errorkit.registry import ErrorCodeDef

_PLACEHOLDER = re.compile(r"%s")


class ConfigurationError(Exception):
    """Raised when error code definitions are invalid.

    Only happens while building registries at import time, so it aborts
    startup and never reaches request handling.
    """


def interpolate(template: str, args: Sequence[str]) -> str:
    """Substitute ``%s`` tokens left to right.

    Unmatched placeholders stay literal, extra args are dropped.
    """
    remaining = iter(args)
    return _PLACEHOLDER.sub(lambda _: str(next(remaining, "%s")), template)


class AppException(Exception):
    """A known failure carrying a stable error code.

    Example:
        raise AppException(AUTH_ERRORS.USERNAME_TAKEN, args=["john"])
        # user_message == 'Username "john" already exists'
    """

    def __init__(
        self,
        error_code: "ErrorCodeDef",
        *,
        args: Sequence[str] = (),
        dev_message: str | None = None,
        cause: BaseException | None = None,
    ) -> None:
        user_message = interpolate(error_code.message, args) if args else error_code.message
        super().__init__(user_message)
        self.error_code = error_code
        self.user_message = user_message
        self.dev_message = dev_message
        if cause is not None:
            self.__cause__ = cause

    @property
    def status(self) -> int:
        """HTTP status of the error code, for transports that need a single number."""
        return self.error_code.http_status


class RpcError(Exception):
    """Failure reported over a message/RPC transport.

    ``error`` is either a string or a JSON-serializable object describing
    what went wrong downstream.
    """

    def __init__(self, error: str | dict[str, Any] | Any) -> None:
        super().__init__(error if isinstance(error, str) else repr(error))
        self.error = error
