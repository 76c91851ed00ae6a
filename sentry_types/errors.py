"""Exception taxonomy for DSN parsing, event decoding and version selection."""

from typing import Any, Optional


class ProtocolError(Exception):
    """Base class for every validation failure raised by this package."""


class DsnError(ProtocolError, ValueError):
    """A DSN string could not be parsed."""


class InvalidScheme(DsnError):
    """The DSN scheme is not a supported ingestion transport."""


class MissingPublicKey(DsnError):
    """The DSN (or auth header) carries no public key."""


class InvalidHost(DsnError):
    """The DSN host is empty or its port is not a number."""


class MissingProjectId(DsnError):
    """The DSN path does not end in a project id segment."""


class InvalidProjectId(DsnError):
    """The project id is not a positive integer."""


class DecodeError(ProtocolError, ValueError):
    """A wire document could not be turned into an event."""


class InvalidField(DecodeError):
    """
    A field holds a value outside of its domain.

    Args:
        field: Dotted path of the offending field (``"level"``,
            ``"breadcrumbs.0.level"``)
        reason: Optional human readable detail
    """

    def __init__(self, field: str, reason: Optional[str] = None):
        self.field = field
        self.reason = reason
        message = f"invalid field {field!r}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)

    def __eq__(self, other: Any) -> bool:
        return type(other) is type(self) and other.field == self.field

    def __hash__(self) -> int:
        return hash((type(self), self.field))


class InvalidTimestamp(InvalidField):
    """A timestamp is neither RFC 3339 nor a finite epoch number."""


class InvalidLevel(DecodeError):
    """A severity level outside of the closed level enum."""


class MalformedDocument(DecodeError):
    """The payload is not a JSON object (or not an envelope)."""


class UnsupportedVersion(ProtocolError, ValueError):
    """The requested protocol version is not in the registry."""
