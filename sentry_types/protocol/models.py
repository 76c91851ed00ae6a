"""
Event schema for the Sentry ingestion protocol.

All models are frozen. Sub-structures keep unknown keys of their own
(``extra="allow"``) so that data written by newer producers survives a trip
through an older consumer; the root ``Event`` instead collects unknown
top-level keys in its explicit ``other`` mapping.
"""

import logging
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, GetCoreSchemaHandler, field_validator, model_validator
from pydantic_core import CoreSchema, core_schema

from ..errors import InvalidLevel
from ..ids import DebugId, EventId
from .timestamps import parse_timestamp


class Level(str, Enum):
    """Event severity levels, ordered from least to most severe."""

    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    FATAL = "fatal"

    @property
    def rank(self) -> int:
        return list(type(self)).index(self)

    def __lt__(self, other: Any) -> bool:
        if isinstance(other, Level):
            return self.rank < other.rank
        return NotImplemented

    def __le__(self, other: Any) -> bool:
        if isinstance(other, Level):
            return self.rank <= other.rank
        return NotImplemented

    def __gt__(self, other: Any) -> bool:
        if isinstance(other, Level):
            return self.rank > other.rank
        return NotImplemented

    def __ge__(self, other: Any) -> bool:
        if isinstance(other, Level):
            return self.rank >= other.rank
        return NotImplemented

    def __str__(self) -> str:
        return self.value

    @classmethod
    def parse(cls, value: Any) -> "Level":
        """
        Parse a wire level tag.

        Raises:
            InvalidLevel: If the value is not one of the five level tags
        """
        if isinstance(value, Level):
            return value
        try:
            return cls(value)
        except ValueError:
            raise InvalidLevel(f"unknown level: {value!r}") from None

    @classmethod
    def from_logging_level(cls, levelno: int) -> "Level":
        """Map a stdlib ``logging`` level number onto the closest level."""
        if levelno >= logging.CRITICAL:
            return cls.FATAL
        if levelno >= logging.ERROR:
            return cls.ERROR
        if levelno >= logging.WARNING:
            return cls.WARNING
        if levelno >= logging.INFO:
            return cls.INFO
        return cls.DEBUG


class Addr(int):
    """Memory address; rendered as ``0x`` prefixed lowercase hex."""

    @classmethod
    def parse(cls, value: Any) -> "Addr":
        if isinstance(value, bool):
            raise ValueError("boolean is not an address")
        if isinstance(value, int):
            if value < 0:
                raise ValueError(f"negative address: {value}")
            return cls(value)
        if isinstance(value, str):
            text = value.strip().lower()
            if text.startswith("0x"):
                digits, base = text[2:], 16
            else:
                digits, base = text, 10
            if not digits.isalnum() or not digits.isascii():
                raise ValueError(f"invalid address: {value!r}")
            try:
                return cls(int(digits, base))
            except ValueError:
                raise ValueError(f"invalid address: {value!r}") from None
        raise ValueError(f"invalid address: {value!r}")

    @classmethod
    def __get_pydantic_core_schema__(cls, source: Any, handler: GetCoreSchemaHandler) -> CoreSchema:
        return core_schema.no_info_plain_validator_function(
            cls.parse,
            serialization=core_schema.to_string_ser_schema(),
        )

    def __str__(self) -> str:
        return f"0x{int(self):x}"

    def __repr__(self) -> str:
        return f"Addr({self})"


def _parse_optional_timestamp(v: Any) -> Any:
    if v is None:
        return None
    return parse_timestamp(v)


class ProtocolModel(BaseModel):
    """Base for sub-structures: immutable, tolerant of unknown keys."""

    model_config = ConfigDict(frozen=True, extra="allow")


class Frame(ProtocolModel):
    """A single stack frame."""

    filename: Optional[str] = None
    abs_path: Optional[str] = None
    function: Optional[str] = None
    symbol: Optional[str] = None
    module: Optional[str] = None
    package: Optional[str] = None
    lineno: Optional[int] = None
    colno: Optional[int] = None
    in_app: Optional[bool] = None

    # Source context
    pre_context: Optional[List[str]] = None
    context_line: Optional[str] = None
    post_context: Optional[List[str]] = None

    vars: Optional[Dict[str, Any]] = None

    # Native frames
    image_addr: Optional[Addr] = None
    instruction_addr: Optional[Addr] = None
    symbol_addr: Optional[Addr] = None


class Stacktrace(ProtocolModel):
    """
    Ordered call stack.

    ``frames[0]`` is the outermost (oldest) call and ``frames[-1]`` the frame
    where the exception originated, whatever order the wire used.
    """

    frames: List[Frame] = Field(default_factory=list)
    frames_omitted: Optional[Tuple[int, int]] = None
    registers: Optional[Dict[str, Addr]] = None


class Mechanism(ProtocolModel):
    """How an exception was captured."""

    type: str
    description: Optional[str] = None
    help_link: Optional[str] = None
    handled: Optional[bool] = None
    synthetic: Optional[bool] = None
    data: Optional[Dict[str, Any]] = None


class SentryException(ProtocolModel):
    """One exception of a chain."""

    type: str
    value: Optional[str] = None
    module: Optional[str] = None
    stacktrace: Optional[Stacktrace] = None
    thread_id: Optional[Union[int, str]] = None
    mechanism: Optional[Mechanism] = None


class Thread(ProtocolModel):
    """A thread of the process at the time of the event."""

    id: Optional[Union[int, str]] = None
    name: Optional[str] = None
    stacktrace: Optional[Stacktrace] = None
    crashed: Optional[bool] = None
    current: Optional[bool] = None


class Breadcrumb(ProtocolModel):
    """Sentry breadcrumb for event trail."""

    timestamp: Optional[datetime] = None
    type: Optional[str] = None
    category: Optional[str] = None
    level: Optional[Level] = None
    message: Optional[str] = None
    data: Optional[Dict[str, Any]] = None

    @field_validator("timestamp", mode="before")
    @classmethod
    def parse_timestamp(cls, v: Any) -> Any:
        return _parse_optional_timestamp(v)


class User(ProtocolModel):
    """Sentry user context."""

    id: Optional[Union[str, int]] = None
    username: Optional[str] = None
    email: Optional[str] = None
    ip_address: Optional[str] = None


class Request(ProtocolModel):
    """Sentry HTTP request context."""

    url: Optional[str] = None
    method: Optional[str] = None
    headers: Optional[Dict[str, str]] = None
    query_string: Optional[str] = None
    data: Optional[Any] = None
    cookies: Optional[str] = None
    env: Optional[Dict[str, str]] = None


class LogEntry(ProtocolModel):
    """Formatted log message with its parameters."""

    message: str
    params: Optional[List[Any]] = None


class ClientSdkPackage(ProtocolModel):
    name: str
    version: str


class ClientSdkInfo(ProtocolModel):
    """The SDK that produced the event."""

    name: str
    version: str
    integrations: Optional[List[str]] = None
    packages: Optional[List[ClientSdkPackage]] = None


class DebugImage(ProtocolModel):
    """A loaded module with the ids needed for symbolication."""

    type: str
    debug_id: Optional[DebugId] = None
    code_id: Optional[str] = None
    code_file: Optional[str] = None
    debug_file: Optional[str] = None
    image_addr: Optional[Addr] = None
    image_size: Optional[int] = None
    arch: Optional[str] = None


class DebugMeta(ProtocolModel):
    sdk_info: Optional[Dict[str, Any]] = None
    images: Optional[List[DebugImage]] = None


# Top-level keys meaning an exception list in some protocol version.
EXCEPTION_KEYS = ("exception", "sentry.interfaces.Exception")


class Event(BaseModel):
    """
    Sentry event.

    Only ``event_id`` is required; it is generated when not given. Every
    other field is optional and omitted from the wire when ``None``.
    Unknown top-level keys read from the wire are kept in ``other``.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    # Identifiers
    event_id: EventId = Field(default_factory=EventId.new)
    timestamp: Optional[datetime] = None
    level: Optional[Level] = None
    logger: Optional[str] = None
    platform: Optional[str] = None
    transaction: Optional[str] = None
    culprit: Optional[str] = None
    server_name: Optional[str] = None
    release: Optional[str] = None
    dist: Optional[str] = None
    environment: Optional[str] = None

    # Message & Exception
    message: Optional[str] = None
    logentry: Optional[LogEntry] = None
    exception: Optional[List[SentryException]] = None
    threads: Optional[List[Thread]] = None

    # Breadcrumbs
    breadcrumbs: Optional[List[Breadcrumb]] = None

    # Context
    contexts: Optional[Dict[str, Any]] = None
    tags: Optional[Dict[str, str]] = None
    extra: Optional[Dict[str, Any]] = None
    user: Optional[User] = None
    request: Optional[Request] = None
    fingerprint: Optional[List[str]] = None

    # SDK, modules and debug files
    sdk: Optional[ClientSdkInfo] = None
    modules: Optional[Dict[str, str]] = None
    debug_meta: Optional[DebugMeta] = None

    # Unknown top-level keys, in wire order
    other: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("timestamp", mode="before")
    @classmethod
    def parse_timestamp(cls, v: Any) -> Any:
        return _parse_optional_timestamp(v)

    @field_validator("tags", mode="before")
    @classmethod
    def parse_tags(cls, v: Any) -> Any:
        """Accept the legacy list-of-pairs form and scalar tag values."""
        if isinstance(v, list):
            pairs = {}
            for item in v:
                if not isinstance(item, (list, tuple)) or len(item) != 2:
                    raise ValueError(f"tag must be a [key, value] pair: {item!r}")
                pairs[item[0]] = item[1]
            v = pairs
        if isinstance(v, dict):
            return {k: _tag_value(value) for k, value in v.items()}
        return v

    @model_validator(mode="after")
    def check_other_keys(self) -> "Event":
        clashes = reserved_keys().intersection(self.other)
        if clashes:
            raise ValueError(f"catch-all map holds recognized keys: {sorted(clashes)}")
        return self


def _tag_value(value: Any) -> Any:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    return value


def reserved_keys() -> frozenset:
    """Top-level wire keys that are never part of ``Event.other``."""
    return _RESERVED_KEYS


_RESERVED_KEYS = frozenset(name for name in Event.model_fields if name != "other") | frozenset(
    EXCEPTION_KEYS
)
