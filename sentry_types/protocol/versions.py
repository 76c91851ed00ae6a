"""
Registry of supported wire-schema versions.

Each version maps to an ``EncodingPolicy`` holding every rule that differs
between versions, so the schema and codec never branch on version numbers
themselves.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum, IntEnum
from typing import Any, Dict, List, Union

from ..errors import UnsupportedVersion
from . import timestamps


class ProtocolVersion(IntEnum):
    """Supported ``sentry_version`` values."""

    V5 = 5
    V6 = 6
    V7 = 7

    LATEST = 7


class TimestampFormat(str, Enum):
    RFC3339 = "rfc3339"
    EPOCH = "epoch"


@dataclass(frozen=True)
class EncodingPolicy:
    """Version specific encoding rules."""

    version: ProtocolVersion
    exception_key: str
    wrap_values: bool
    frames_innermost_first: bool
    timestamp_format: TimestampFormat
    timestamp_precision: int
    include_secret: bool

    def normalize_timestamp(self, dt: datetime) -> datetime:
        """UTC datetime truncated to what this version can carry."""
        return timestamps.normalize(dt, self.timestamp_precision)

    def format_timestamp(self, dt: datetime) -> Union[str, float]:
        if self.timestamp_format is TimestampFormat.EPOCH:
            return timestamps.format_epoch(dt, self.timestamp_precision)
        return timestamps.format_rfc3339(dt, self.timestamp_precision)

    def wire_frames(self, frames: List[Any]) -> List[Any]:
        """Reorder oldest-first frames into this version's wire order."""
        if self.frames_innermost_first:
            return list(reversed(frames))
        return list(frames)

    def canonical_frames(self, frames: List[Any]) -> List[Any]:
        """Reorder wire frames into the oldest-first in-memory order."""
        if self.frames_innermost_first:
            return list(reversed(frames))
        return list(frames)

    def wrap(self, items: List[Any]) -> Any:
        """Wrap a list in a ``{"values": [...]}`` container when required."""
        if self.wrap_values:
            return {"values": items}
        return items


_POLICIES: Dict[ProtocolVersion, EncodingPolicy] = {
    ProtocolVersion.V5: EncodingPolicy(
        version=ProtocolVersion.V5,
        exception_key="sentry.interfaces.Exception",
        wrap_values=False,
        frames_innermost_first=True,
        timestamp_format=TimestampFormat.RFC3339,
        timestamp_precision=0,
        include_secret=True,
    ),
    ProtocolVersion.V6: EncodingPolicy(
        version=ProtocolVersion.V6,
        exception_key="exception",
        wrap_values=True,
        frames_innermost_first=False,
        timestamp_format=TimestampFormat.RFC3339,
        timestamp_precision=6,
        include_secret=True,
    ),
    ProtocolVersion.V7: EncodingPolicy(
        version=ProtocolVersion.V7,
        exception_key="exception",
        wrap_values=True,
        frames_innermost_first=False,
        timestamp_format=TimestampFormat.EPOCH,
        timestamp_precision=6,
        include_secret=False,
    ),
}


def supported_versions() -> List[ProtocolVersion]:
    return sorted(_POLICIES)


def get_policy(version: Any) -> EncodingPolicy:
    """
    Look up the encoding policy for a protocol version.

    Args:
        version: ProtocolVersion, int or numeric string

    Returns:
        EncodingPolicy for that version

    Raises:
        UnsupportedVersion: If the version is not in the registry
    """
    if isinstance(version, EncodingPolicy):
        return version

    if isinstance(version, str) and version.strip().isdigit():
        version = int(version.strip())

    if isinstance(version, bool) or not isinstance(version, int):
        raise UnsupportedVersion(f"unsupported protocol version: {version!r}")

    try:
        return _POLICIES[ProtocolVersion(version)]
    except (ValueError, KeyError):
        raise UnsupportedVersion(f"unsupported protocol version: {version!r}") from None
