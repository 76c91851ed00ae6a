"""
Sentry authentication header.

X-Sentry-Auth header format:
Sentry sentry_version=7, sentry_client=sentry.python/1.0.0,
       sentry_timestamp=1700000000, sentry_key=<public_key>,
       sentry_secret=<secret_key>

Or query parameters:
?sentry_key=<public_key>&sentry_version=7
"""

import re
from dataclasses import dataclass
from datetime import datetime
from typing import List, Mapping, Optional, Tuple, Union
from urllib.parse import parse_qsl

from .errors import InvalidField, MissingPublicKey
from .protocol.timestamps import parse_timestamp
from .protocol.versions import ProtocolVersion

_PAIR_RE = re.compile(r"(\w+)=([^,\s]+)")


@dataclass(frozen=True)
class Auth:
    """Parsed or to-be-rendered authentication credentials."""

    key: str
    version: int = ProtocolVersion.LATEST.value
    client: Optional[str] = None
    timestamp: Optional[datetime] = None
    secret: Optional[str] = None

    def pairs(self, include_secret: bool = True) -> List[Tuple[str, str]]:
        """
        Return the ``sentry_*`` pairs in wire order.

        The order is version, client, timestamp, key, secret; servers match
        values exactly, so the order and formatting must not change.
        """
        result = [("sentry_version", str(int(self.version)))]
        if self.client:
            result.append(("sentry_client", self.client))
        if self.timestamp is not None:
            result.append(("sentry_timestamp", str(int(self.timestamp.timestamp()))))
        result.append(("sentry_key", self.key))
        if include_secret and self.secret:
            result.append(("sentry_secret", self.secret))
        return result

    def to_header(self, include_secret: bool = True) -> str:
        """Render the ``X-Sentry-Auth`` header value."""
        return "Sentry " + ", ".join(f"{k}={v}" for k, v in self.pairs(include_secret))

    def __str__(self) -> str:
        return self.to_header()

    @classmethod
    def from_pairs(cls, values: Mapping[str, str]) -> "Auth":
        """
        Build an Auth from ``sentry_*`` key/value pairs.

        Raises:
            MissingPublicKey: If no ``sentry_key`` is present
            InvalidField: If the version is not a number
            InvalidTimestamp: If the timestamp cannot be parsed
        """
        key = values.get("sentry_key")
        if not key:
            raise MissingPublicKey("auth carries no sentry_key")

        version = values.get("sentry_version")
        if version is None:
            parsed_version = ProtocolVersion.LATEST.value
        else:
            try:
                parsed_version = int(version)
            except ValueError:
                raise InvalidField("sentry_version", f"not a number: {version!r}") from None

        timestamp = values.get("sentry_timestamp")
        return cls(
            key=key,
            version=parsed_version,
            client=values.get("sentry_client"),
            timestamp=parse_timestamp(timestamp, "sentry_timestamp") if timestamp else None,
            secret=values.get("sentry_secret") or None,
        )

    @classmethod
    def from_header(cls, header: Optional[str]) -> "Auth":
        """
        Parse an ``X-Sentry-Auth`` header.

        Args:
            header: Raw header value, with or without the ``Sentry`` prefix

        Returns:
            Auth instance
        """
        values = {}
        text = (header or "").strip()

        # Remove "Sentry " prefix if present
        if text.lower().startswith("sentry "):
            text = text[7:]

        for key, value in _PAIR_RE.findall(text):
            values[key] = value.strip()

        return cls.from_pairs(values)

    @classmethod
    def from_querystring(cls, query: Union[str, Mapping[str, str]]) -> "Auth":
        """Parse auth sent as URL query parameters."""
        if isinstance(query, str):
            query = dict(parse_qsl(query.lstrip("?")))
        return cls.from_pairs(query)
