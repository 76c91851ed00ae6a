"""Strongly typed identifiers used across the protocol."""

import re
import uuid
from dataclasses import dataclass
from typing import Any, Union

from pydantic import GetCoreSchemaHandler
from pydantic_core import CoreSchema, core_schema

from .errors import InvalidProjectId

_HEX32_RE = re.compile(r"^[0-9a-fA-F]{32}$")
_DEBUG_ID_RE = re.compile(
    r"^(?P<uuid>[0-9a-f]{8}-?[0-9a-f]{4}-?[0-9a-f]{4}-?[0-9a-f]{4}-?[0-9a-f]{12})"
    r"(?:-?(?P<appendix>[0-9a-f]{1,8}))?$",
    re.IGNORECASE,
)


@dataclass(frozen=True, order=True)
class EventId:
    """
    Identifier of a single event.

    The canonical form is 32 lowercase hex characters without hyphens,
    which is what the ingestion protocol expects on the wire.
    """

    value: uuid.UUID

    @classmethod
    def new(cls) -> "EventId":
        """Generate a random (v4) event id."""
        return cls(uuid.uuid4())

    @classmethod
    def parse(cls, raw: Any) -> "EventId":
        """
        Parse an event id from its simple or hyphenated form.

        Args:
            raw: EventId, UUID or string

        Returns:
            EventId instance

        Raises:
            ValueError: If the value is not a 128-bit hex identifier
        """
        if isinstance(raw, EventId):
            return raw
        if isinstance(raw, uuid.UUID):
            return cls(raw)
        if not isinstance(raw, str):
            raise ValueError(f"event id must be a string, got {type(raw).__name__}")

        text = raw.strip()
        if _HEX32_RE.match(text):
            return cls(uuid.UUID(hex=text))
        try:
            return cls(uuid.UUID(text))
        except ValueError:
            raise ValueError(f"invalid event id: {raw!r}") from None

    @property
    def hex(self) -> str:
        return self.value.hex

    @classmethod
    def __get_pydantic_core_schema__(cls, source: Any, handler: GetCoreSchemaHandler) -> CoreSchema:
        return core_schema.no_info_plain_validator_function(
            cls.parse,
            serialization=core_schema.to_string_ser_schema(),
        )

    def __str__(self) -> str:
        return self.value.hex


@dataclass(frozen=True)
class DebugId:
    """
    Identifier of a debug information file.

    A UUID plus a 32-bit appendix (the "age" of PDB files). Renders as
    ``<uuid>-<appendix hex>`` with the appendix omitted when zero.
    """

    uuid: uuid.UUID
    appendix: int = 0

    def __post_init__(self):
        if not 0 <= self.appendix <= 0xFFFFFFFF:
            raise ValueError(f"debug id appendix out of range: {self.appendix}")

    @classmethod
    def nil(cls) -> "DebugId":
        return cls(uuid.UUID(int=0))

    @classmethod
    def parse(cls, raw: Any) -> "DebugId":
        """
        Parse a debug id from its canonical or breakpad form.

        Accepts ``dfb8e43a-f242-3d73-a453-aeb6a777ef75-a`` as well as
        ``DFB8E43AF2423D73A453AEB6A777EF75a``.

        Raises:
            ValueError: If the string is not a debug id
        """
        if isinstance(raw, DebugId):
            return raw
        if isinstance(raw, uuid.UUID):
            return cls(raw)
        if not isinstance(raw, str):
            raise ValueError(f"debug id must be a string, got {type(raw).__name__}")

        match = _DEBUG_ID_RE.match(raw.strip())
        if not match:
            raise ValueError(f"invalid debug id: {raw!r}")

        appendix = match.group("appendix")
        return cls(
            uuid=uuid.UUID(match.group("uuid").replace("-", "")),
            appendix=int(appendix, 16) if appendix else 0,
        )

    def is_nil(self) -> bool:
        return self.uuid.int == 0 and self.appendix == 0

    def breakpad(self) -> str:
        """Render the breakpad form: uppercase UUID hex followed by the appendix."""
        return f"{self.uuid.hex.upper()}{self.appendix:x}"

    @classmethod
    def __get_pydantic_core_schema__(cls, source: Any, handler: GetCoreSchemaHandler) -> CoreSchema:
        return core_schema.no_info_plain_validator_function(
            cls.parse,
            serialization=core_schema.to_string_ser_schema(),
        )

    def __str__(self) -> str:
        if self.appendix:
            return f"{self.uuid}-{self.appendix:x}"
        return str(self.uuid)


@dataclass(frozen=True, order=True)
class ProjectId:
    """Positive integer identifying the destination project."""

    value: int

    def __post_init__(self):
        if isinstance(self.value, bool) or not isinstance(self.value, int):
            raise InvalidProjectId(f"project id must be an integer: {self.value!r}")
        if self.value <= 0:
            raise InvalidProjectId(f"project id must be positive: {self.value}")

    @classmethod
    def parse(cls, raw: Union[str, int, "ProjectId"]) -> "ProjectId":
        """
        Parse a project id from a path segment or integer.

        Raises:
            InvalidProjectId: If the value is not a positive integer
        """
        if isinstance(raw, ProjectId):
            return raw
        if isinstance(raw, str):
            text = raw.strip()
            if not text.isdigit() or not text.isascii():
                raise InvalidProjectId(f"project id is not numeric: {raw!r}")
            return cls(int(text))
        return cls(raw)

    def __int__(self) -> int:
        return self.value

    @classmethod
    def __get_pydantic_core_schema__(cls, source: Any, handler: GetCoreSchemaHandler) -> CoreSchema:
        return core_schema.no_info_plain_validator_function(
            cls.parse,
            serialization=core_schema.to_string_ser_schema(),
        )

    def __str__(self) -> str:
        return str(self.value)
