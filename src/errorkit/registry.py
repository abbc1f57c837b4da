"""Error code registry.

Each service declares its error codes once, at import time, with
``define_error_codes``. A code is ``source + domain + sequence``, e.g. ``A01001``:

- source:   ``A`` user error, ``B`` system error, ``C`` third-party error
- domain:   two digits naming the owning service (``00`` common, ``01`` auth, ...)
- sequence: 1..999, zero-padded to three digits

Invalid or duplicate definitions raise ConfigurationError while the module is
being imported, so a broken registry aborts startup instead of surfacing at
request time.
"""

import re
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from enum import StrEnum
from typing import NotRequired, TypedDict

from errorkit.exceptions import ConfigurationError

DOMAIN_PATTERN = re.compile(r"\d{2}", re.ASCII)

MIN_SEQ = 1
MAX_SEQ = 999

# Entry names that attribute access would resolve to Mapping methods
RESERVED_NAMES = frozenset(name for name in dir(Mapping) if not name.startswith("_"))


class ErrorSource(StrEnum):
    USER = "A"
    SYSTEM = "B"
    THIRD_PARTY = "C"


class ErrorDomain(StrEnum):
    COMMON = "00"
    AUTH = "01"
    PAYMENTS = "02"


DEFAULT_HTTP_STATUS: dict[ErrorSource, int] = {
    ErrorSource.USER: 400,
    ErrorSource.SYSTEM: 500,
    ErrorSource.THIRD_PARTY: 502,
}


@dataclass(frozen=True)
class ErrorCodeDef:
    """Immutable identity of one error kind."""

    code: str
    http_status: int
    message: str

    @property
    def source(self) -> ErrorSource:
        return ErrorSource(self.code[0])


@dataclass(frozen=True)
class ErrorDomainConfig:
    domain: str


class ErrorCodeInput(TypedDict):
    """One entry passed to ``define_error_codes``. ``http_status`` defaults by source."""

    source: str
    seq: int
    message: str
    http_status: NotRequired[int]


class ErrorCodes(Mapping[str, ErrorCodeDef]):
    """Read-only name -> ErrorCodeDef mapping with attribute access.

    ``COMMON_ERRORS.NOT_FOUND`` and ``COMMON_ERRORS["NOT_FOUND"]`` are equivalent.
    """

    __slots__ = ("_entries",)

    def __init__(self, entries: Mapping[str, ErrorCodeDef]) -> None:
        object.__setattr__(self, "_entries", dict(entries))

    def __getitem__(self, name: str) -> ErrorCodeDef:
        return self._entries[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __getattr__(self, name: str) -> ErrorCodeDef:
        if name.startswith("_"):
            raise AttributeError(name)
        try:
            return self._entries[name]
        except KeyError:
            raise AttributeError(name) from None

    def __setattr__(self, name: str, value: object) -> None:
        raise AttributeError(f"{type(self).__name__} is read-only")

    def __delattr__(self, name: str) -> None:
        raise AttributeError(f"{type(self).__name__} is read-only")

    def __repr__(self) -> str:
        codes = ", ".join(f"{name}={entry.code}" for name, entry in self._entries.items())
        return f"{type(self).__name__}({codes})"


def _is_valid_seq(seq: object) -> bool:
    # bool is an int subclass; floats are rejected even when integral
    return isinstance(seq, int) and not isinstance(seq, bool) and MIN_SEQ <= seq <= MAX_SEQ


def define_error_codes(
    config: ErrorDomainConfig,
    definitions: Mapping[str, ErrorCodeInput],
) -> ErrorCodes:
    """Compile one domain's definitions into validated error codes.

    Args:
        config: Domain the codes belong to; ``domain`` must be exactly two digits.
        definitions: Entry name -> ``{"source", "seq", "message", "http_status"?}``.

    Returns:
        Immutable mapping from entry name to ErrorCodeDef, in definition order.

    Raises:
        ConfigurationError: On a malformed domain, an entry named like a Mapping
            method (``get``, ``items``, ``keys``, ``values``), an unknown source,
            a sequence outside 1..999, a missing message, or two entries
            composing the same code.

    Example:
        AUTH_ERRORS = define_error_codes(
            ErrorDomainConfig(domain=ErrorDomain.AUTH),
            {"USERNAME_TAKEN": {"source": "A", "seq": 1, "http_status": 409,
                                "message": 'Username "%s" already exists'}},
        )
        AUTH_ERRORS.USERNAME_TAKEN.code  # "A01001"
    """
    domain = config.domain

    if not isinstance(domain, str) or not DOMAIN_PATTERN.fullmatch(domain):
        raise ConfigurationError(
            f'Invalid domain "{domain}". Must be a 2-digit string (e.g. "00", "01").'
        )

    entries: dict[str, ErrorCodeDef] = {}
    seen: set[str] = set()

    for name, definition in definitions.items():
        if name in RESERVED_NAMES:
            raise ConfigurationError(
                f'Invalid name "{name}". It clashes with a mapping method; choose another.'
            )

        raw_source = definition.get("source")
        try:
            source = ErrorSource(raw_source)
        except ValueError:
            raise ConfigurationError(
                f'Invalid source "{raw_source}" for "{name}". Must be "A", "B", or "C".'
            ) from None

        seq = definition.get("seq")
        if not _is_valid_seq(seq):
            raise ConfigurationError(
                f'Invalid seq {seq!r} for "{name}". '
                f"Must be an integer between {MIN_SEQ} and {MAX_SEQ}."
            )

        message = definition.get("message")
        if not isinstance(message, str):
            raise ConfigurationError(f'Invalid message {message!r} for "{name}". Must be a string.')

        code = f"{source}{domain}{seq:03d}"
        if code in seen:
            raise ConfigurationError(f'Duplicate error code "{code}" found at "{name}".')
        seen.add(code)

        entries[name] = ErrorCodeDef(
            code=code,
            http_status=definition.get("http_status", DEFAULT_HTTP_STATUS[source]),
            message=message,
        )

    return ErrorCodes(entries)


class ErrorCatalog(Mapping[str, ErrorCodeDef]):
    """Every error code of the process, keyed by composed code."""

    def __init__(self, entries: Mapping[str, ErrorCodeDef]) -> None:
        self._entries = dict(entries)

    def __getitem__(self, code: str) -> ErrorCodeDef:
        return self._entries[code]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)


def build_catalog(*registries: ErrorCodes) -> ErrorCatalog:
    """Merge domain registries, rejecting codes defined by more than one of them.

    Call once from the process entry point after every domain has been defined.
    """
    entries: dict[str, ErrorCodeDef] = {}
    for registry in registries:
        for name, entry in registry.items():
            if entry.code in entries:
                raise ConfigurationError(f'Duplicate error code "{entry.code}" found at "{name}".')
            entries[entry.code] = entry
    return ErrorCatalog(entries)
