"""
DSN parsing and endpoint derivation.

DSN format: ``<scheme>://<public_key>[:<secret_key>]@<host>[:<port>][/<path>]/<project_id>``
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Optional, Union
from urllib.parse import unquote, urlsplit

from .auth import Auth
from .config import settings
from .errors import InvalidHost, InvalidScheme, MissingProjectId, MissingPublicKey
from .ids import ProjectId
from .protocol.timestamps import coerce_datetime
from .protocol.versions import get_policy


class Scheme(str, Enum):
    """Transport schemes accepted for ingestion."""

    HTTP = "http"
    HTTPS = "https"

    @property
    def default_port(self) -> int:
        return 443 if self is Scheme.HTTPS else 80

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Dsn:
    """
    Parsed Data Source Name.

    Immutable; build it once with ``Dsn.parse`` and derive endpoint URLs
    and auth headers from it.
    """

    scheme: Scheme
    public_key: str
    host: str
    project_id: ProjectId
    secret_key: Optional[str] = None
    port: Optional[int] = None
    path: str = ""

    @classmethod
    def parse(cls, value: str) -> "Dsn":
        """
        Parse and validate a DSN string.

        Args:
            value: DSN string

        Returns:
            Dsn instance

        Raises:
            MissingPublicKey: If the user segment is absent or empty
            InvalidScheme: If the scheme is not http or https
            InvalidHost: If the host is empty or the port is not numeric
            MissingProjectId: If the path has no trailing id segment
            InvalidProjectId: If the id is not a positive integer
        """
        if not isinstance(value, str):
            raise TypeError(f"DSN must be a string, got {type(value).__name__}")

        parts = urlsplit(value.strip())

        # A missing key is reported as such whatever else is wrong.
        userinfo, at, _ = parts.netloc.rpartition("@")
        public_key, _, secret_key = userinfo.partition(":")
        if not at or not public_key:
            raise MissingPublicKey(f"DSN has no public key: {value!r}")

        try:
            scheme = Scheme(parts.scheme.lower())
        except ValueError:
            raise InvalidScheme(f"unsupported DSN scheme: {parts.scheme!r}") from None

        host = parts.hostname
        if not host:
            raise InvalidHost(f"DSN has no host: {value!r}")
        try:
            port = parts.port
        except ValueError:
            raise InvalidHost(f"DSN port is not a valid number: {value!r}") from None

        # Empty segments are dropped: "//foo//42" has prefix "/foo".
        segments = [segment for segment in parts.path.split("/") if segment]
        if not segments:
            raise MissingProjectId(f"DSN has no project id: {value!r}")
        prefix = "".join(f"/{segment}" for segment in segments[:-1])

        return cls(
            scheme=scheme,
            public_key=unquote(public_key),
            secret_key=unquote(secret_key) or None,
            host=host,
            port=port,
            path=prefix,
            project_id=ProjectId.parse(segments[-1]),
        )

    @property
    def effective_port(self) -> int:
        return self.port if self.port is not None else self.scheme.default_port

    def _netloc(self, include_default_port: bool) -> str:
        host = f"[{self.host}]" if ":" in self.host else self.host
        if self.port is None:
            return host
        if not include_default_port and self.port == self.scheme.default_port:
            return host
        return f"{host}:{self.port}"

    def _api_base(self) -> str:
        return f"{self.scheme}://{self._netloc(False)}{self.path}/api/{self.project_id}"

    def envelope_endpoint(self) -> str:
        """URL events are submitted to as envelopes."""
        return f"{self._api_base()}/envelope/"

    def store_endpoint(self) -> str:
        """Legacy URL accepting a bare JSON event."""
        return f"{self._api_base()}/store/"

    def to_auth(
        self,
        client_name: Optional[str] = None,
        client_version: Optional[str] = None,
        timestamp: Union[datetime, int, float, None] = None,
        version: Any = None,
    ) -> Auth:
        """Build the Auth value sent with requests to this DSN."""
        policy = get_policy(version if version is not None else settings.default_protocol_version)
        client_name = client_name or settings.client_name
        client_version = client_version or settings.client_version
        return Auth(
            key=self.public_key,
            version=int(policy.version),
            client=f"{client_name}/{client_version}",
            timestamp=coerce_datetime(timestamp),
            secret=self.secret_key if policy.include_secret else None,
        )

    def auth_header(
        self,
        client_name: Optional[str] = None,
        client_version: Optional[str] = None,
        timestamp: Union[datetime, int, float, None] = None,
        version: Any = None,
    ) -> str:
        """
        Build the ``X-Sentry-Auth`` header value.

        Args:
            client_name: SDK name, defaults to ``settings.client_name``
            client_version: SDK version, defaults to ``settings.client_version``
            timestamp: Request time; the current time when omitted
            version: Protocol version, which decides if the secret is sent

        Returns:
            Header value such as ``Sentry sentry_version=7, sentry_client=...``
        """
        return self.to_auth(client_name, client_version, timestamp, version).to_header()

    def __str__(self) -> str:
        userinfo = self.public_key
        if self.secret_key:
            userinfo = f"{userinfo}:{self.secret_key}"
        return f"{self.scheme}://{userinfo}@{self._netloc(True)}{self.path}/{self.project_id}"
