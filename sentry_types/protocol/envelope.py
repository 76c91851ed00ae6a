"""Sentry Envelope format writer and parser."""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple, Union

import orjson

from ..errors import InvalidField, MalformedDocument
from ..ids import EventId
from .codec import EventCodec
from .models import Event
from .timestamps import coerce_datetime, format_rfc3339, parse_timestamp

logger = logging.getLogger(__name__)

EVENT_ITEM_TYPES = ("event", "transaction")


@dataclass(frozen=True)
class EnvelopeHeader:
    """Envelope header containing metadata."""

    event_id: Optional[EventId] = None
    dsn: Optional[str] = None
    sent_at: Optional[datetime] = None
    sdk: Optional[dict] = None
    trace: Optional[dict] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "event_id": str(self.event_id) if self.event_id else None,
            "dsn": self.dsn,
            "sent_at": format_rfc3339(self.sent_at) if self.sent_at else None,
            "sdk": self.sdk,
            "trace": self.trace,
        }
        return {k: v for k, v in data.items() if v is not None}


@dataclass(frozen=True)
class EnvelopeItem:
    """Single item within an envelope."""

    item_type: str  # event, session, attachment, transaction
    headers: dict = field(default_factory=dict)
    payload: bytes = b""

    def to_bytes(self) -> bytes:
        headers = {**self.headers, "type": self.item_type, "length": len(self.payload)}
        return orjson.dumps(headers) + b"\n" + self.payload + b"\n"


@dataclass(frozen=True)
class Envelope:
    """
    Sentry envelope: a header line followed by item header + payload pairs.

    Format:
    ```
    {"event_id":"...","dsn":"...","sent_at":"..."}
    {"type":"event","length":1234}
    <payload bytes>
    {"type":"attachment","length":5678}
    <attachment bytes>
    ```
    """

    header: EnvelopeHeader
    items: List[EnvelopeItem] = field(default_factory=list)

    @classmethod
    def from_event(
        cls,
        event: Event,
        version: Any = None,
        dsn: Any = None,
        sent_at: Union[datetime, float, None] = None,
        codec: Optional[EventCodec] = None,
    ) -> "Envelope":
        """
        Wrap an encoded event in a single-item envelope.

        Args:
            event: Event to send
            version: Protocol version for the event payload
            dsn: Dsn (or DSN string) echoed in the header
            sent_at: Send time; the current time when omitted
            codec: Codec to encode with

        Returns:
            Envelope with one ``event`` item
        """
        codec = codec or EventCodec()
        header = EnvelopeHeader(
            event_id=event.event_id,
            dsn=str(dsn) if dsn is not None else None,
            sent_at=coerce_datetime(sent_at),
            sdk=event.sdk.model_dump(exclude_none=True) if event.sdk else None,
        )
        payload = codec.encode(event, version)
        return cls(header=header, items=[EnvelopeItem(item_type="event", payload=payload)])

    def to_bytes(self) -> bytes:
        """Serialize to the newline delimited wire form."""
        parts = [orjson.dumps(self.header.to_dict()) + b"\n"]
        parts.extend(item.to_bytes() for item in self.items)
        return b"".join(parts)


class EnvelopeParser:
    """Sentry Envelope Format Parser."""

    def __init__(self, codec: Optional[EventCodec] = None):
        self.codec = codec or EventCodec()

    def parse(self, raw_body: bytes) -> Envelope:
        """
        Parse raw envelope body.

        Args:
            raw_body: Raw envelope bytes

        Returns:
            Envelope with header and items

        Raises:
            MalformedDocument: If a header line is not a JSON object or an
                item is shorter than its declared length
        """
        if not raw_body or not raw_body.strip():
            return Envelope(header=EnvelopeHeader())

        header_line, position = self._read_line(raw_body, 0)
        header = self._parse_header(header_line)
        items = self._parse_items(raw_body, position)

        return Envelope(header=header, items=items)

    def _read_line(self, raw_body: bytes, start: int) -> Tuple[bytes, int]:
        end = raw_body.find(b"\n", start)
        if end == -1:
            return raw_body[start:], len(raw_body)
        return raw_body[start:end], end + 1

    def _load_object(self, line: bytes, what: str) -> dict:
        try:
            data = orjson.loads(line)
        except orjson.JSONDecodeError as e:
            logger.warning(f"Failed to parse envelope {what}: {e}")
            raise MalformedDocument(f"invalid envelope {what}: {e}") from None
        if not isinstance(data, dict):
            raise MalformedDocument(f"envelope {what} must be a JSON object")
        return data

    def _parse_header(self, header_line: bytes) -> EnvelopeHeader:
        """
        Parse envelope header from first line.

        Args:
            header_line: First line bytes

        Returns:
            EnvelopeHeader object
        """
        if not header_line.strip():
            return EnvelopeHeader()

        data = self._load_object(header_line, "header")

        event_id = data.get("event_id")
        if event_id is not None:
            try:
                event_id = EventId.parse(event_id)
            except ValueError as e:
                raise InvalidField("event_id", str(e)) from None

        sent_at = data.get("sent_at")
        return EnvelopeHeader(
            event_id=event_id,
            dsn=data.get("dsn"),
            sent_at=parse_timestamp(sent_at, "sent_at") if sent_at is not None else None,
            sdk=data.get("sdk"),
            trace=data.get("trace"),
        )

    def _parse_items(self, raw_body: bytes, position: int) -> List[EnvelopeItem]:
        """
        Parse item header + payload pairs.

        If the item header carries ``length`` exactly that many bytes are
        read, otherwise the payload runs to the next newline.
        """
        items = []

        while position < len(raw_body):
            line, position = self._read_line(raw_body, position)

            # Skip empty lines
            if not line.strip():
                continue

            item_header = self._load_object(line, "item header")
            length = item_header.get("length")

            if length is not None:
                if isinstance(length, bool) or not isinstance(length, int) or length < 0:
                    raise MalformedDocument(f"invalid item length: {length!r}")
                payload = raw_body[position:position + length]
                if len(payload) < length:
                    raise MalformedDocument(
                        f"item truncated: expected {length} bytes, got {len(payload)}"
                    )
                position += length
                if raw_body[position:position + 1] == b"\n":
                    position += 1
            else:
                payload, position = self._read_line(raw_body, position)

            items.append(
                EnvelopeItem(
                    item_type=item_header.get("type", "unknown"),
                    headers=item_header,
                    payload=payload,
                )
            )

        return items

    def extract_events(self, envelope: Envelope) -> List[bytes]:
        """
        Extract event payloads from parsed envelope.

        Args:
            envelope: Parsed envelope

        Returns:
            List of event payload bytes
        """
        return [
            item.payload
            for item in envelope.items
            if item.item_type in EVENT_ITEM_TYPES
        ]

    def events(self, envelope: Envelope, version: Any = None) -> List[Event]:
        """Decode every event item of ``envelope``."""
        return [self.codec.decode(payload, version) for payload in self.extract_events(envelope)]
