"""Structured logging configuration.

JSON logs in production, console output elsewhere. Uses structlog with stdlib integration.
Request-scoped context (like request_id) is automatically included in all logs
via structlog.contextvars.
"""

import logging
import logging.config
import sys
from collections.abc import Iterable, Mapping
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Literal

import structlog
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from structlog.stdlib import BoundLogger
from structlog.typing import Processor

REDACTED = "[REDACTED]"

LOG_FILE_NAME = "app.log"

# LOG_LEVEL value that disables all output
SILENT = "SILENT"
SILENT_LEVEL = logging.CRITICAL + 10

# Keys whose values never reach a log sink, matched case-insensitively at any depth
DEFAULT_REDACT_KEYS = frozenset(
    {
        "password",
        "newpassword",
        "oldpassword",
        "cardnumber",
        "cvv",
        "ssn",
        "token",
        "refreshtoken",
        "accesstoken",
        "secret",
        "authorization",
        "cookie",
    }
)


def _add_timestamp(
    _logger: object,
    _method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Add ISO 8601 UTC timestamp with timezone offset."""
    event_dict["timestamp"] = datetime.now(UTC).isoformat()
    return event_dict


def _normalize_key(key: object) -> str:
    return str(key).replace("_", "").replace("-", "").lower()


def _redact(value: Any, keys: frozenset[str]) -> Any:
    if isinstance(value, Mapping):
        return {
            k: REDACTED if _normalize_key(k) in keys else _redact(v, keys)
            for k, v in value.items()
        }
    if isinstance(value, list | tuple):
        return [_redact(item, keys) for item in value]
    return value


def make_redactor(keys: Iterable[str]) -> Processor:
    """Build a processor that masks ``keys`` at any depth of the event.

    Keys match ignoring case, underscores and dashes, so ``"access_token"``
    also masks ``accessToken``.
    """
    normalized = frozenset(_normalize_key(key) for key in keys)

    def redact(
        _logger: object,
        _method_name: str,
        event_dict: dict[str, Any],
    ) -> dict[str, Any]:
        return _redact(event_dict, normalized)  # type: ignore[no-any-return]

    return redact


# Replace values of sensitive keys (passwords, tokens, auth headers) with a marker
redact_sensitive = make_redactor(DEFAULT_REDACT_KEYS)


class LoggingSettings(BaseSettings):
    """Logging settings from environment variables.

    ``LOG_LEVEL=silent`` turns all log output off. ``LOG_TO_FILE=true`` adds a
    JSON file under ``LOG_DIR`` rotated at midnight, keeping
    ``LOG_RETENTION_DAYS`` old files.
    """

    environment: str = Field(default="development", alias="ENVIRONMENT")
    service_name: str = Field(default="unknown", alias="SERVICE_NAME")
    log_level: str | None = Field(default=None, alias="LOG_LEVEL")
    log_format: Literal["json", "console"] | None = Field(default=None, alias="LOG_FORMAT")
    log_to_file: bool = Field(default=False, alias="LOG_TO_FILE")
    log_dir: Path = Field(default=Path("logs"), alias="LOG_DIR")
    log_retention_days: int = Field(default=7, ge=0, alias="LOG_RETENTION_DAYS")

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )

    @property
    def level(self) -> str:
        if self.log_level:
            return self.log_level.upper()
        return "INFO" if self.environment == "production" else "DEBUG"

    @property
    def is_silent(self) -> bool:
        return self.level == SILENT

    @property
    def renderer(self) -> Literal["json", "console"]:
        if self.log_format:
            return self.log_format
        return "json" if self.environment == "production" else "console"


def configure_logging(
    settings: LoggingSettings,
    *,
    redact_keys: Iterable[str] | None = None,
) -> None:
    """Configure structlog output to stdout, and to a rotating file if enabled.

    Call once at application startup. After this, all loggers created via
    get_logger() will output structured events with automatic context binding.

    Args:
        settings: Level, format and file options.
        redact_keys: Keys to mask in every event; defaults to DEFAULT_REDACT_KEYS.
    """

    def _add_service(
        _logger: object,
        _method_name: str,
        event_dict: dict[str, Any],
    ) -> dict[str, Any]:
        event_dict.setdefault("service", settings.service_name)
        event_dict.setdefault("environment", settings.environment)
        return event_dict

    # Processors run on every log event
    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,  # Auto-include bound context
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        _add_timestamp,
        _add_service,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        redact_sensitive if redact_keys is None else make_redactor(redact_keys),
    ]

    if settings.renderer == "json":
        renderer: Any = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handlers: dict[str, dict[str, Any]] = {
        "default": {
            "class": "logging.StreamHandler",
            "formatter": "structured",
            "stream": sys.stdout,
        },
    }
    if settings.is_silent:
        handlers = {"default": {"class": "logging.NullHandler"}}
    elif settings.log_to_file:
        settings.log_dir.mkdir(parents=True, exist_ok=True)
        # Files are always JSON, whatever the stdout format
        handlers["file"] = {
            "class": "logging.handlers.TimedRotatingFileHandler",
            "formatter": "json",
            "filename": str(settings.log_dir / LOG_FILE_NAME),
            "when": "midnight",
            "backupCount": settings.log_retention_days,
            "encoding": "utf-8",
        }

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "structured": {
                    "()": structlog.stdlib.ProcessorFormatter,
                    "processor": renderer,
                    "foreign_pre_chain": processors,
                },
                "json": {
                    "()": structlog.stdlib.ProcessorFormatter,
                    "processor": structlog.processors.JSONRenderer(),
                    "foreign_pre_chain": processors,
                },
            },
            "handlers": handlers,
            "loggers": {
                "": {
                    "handlers": list(handlers),
                    "level": SILENT_LEVEL if settings.is_silent else settings.level,
                    "propagate": True,
                },
            },
        }
    )


# Configure once at module import
_settings = LoggingSettings()
configure_logging(_settings)


def get_logger(name: str) -> BoundLogger:
    """Get a structured logger.

    Args:
        name: Logger name, typically __name__

    Returns:
        Logger with automatic context binding (request_id, service, environment).

    Example:
        logger = get_logger(__name__)
        logger.warning("user_error", code="A00004")
        # Output: {"event": "user_error", "code": "A00004", "level": "warning", ...}
    """
    return structlog.get_logger(name)  # type: ignore[no-any-return]
