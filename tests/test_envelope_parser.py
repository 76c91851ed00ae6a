"""Tests for envelope writer and parser."""

from datetime import datetime, timezone

import orjson
import pytest

from sentry_types.dsn import Dsn
from sentry_types.errors import InvalidField, MalformedDocument
from sentry_types.ids import EventId
from sentry_types.protocol.envelope import Envelope, EnvelopeItem, EnvelopeParser
from sentry_types.protocol.models import ClientSdkInfo, Event, Level
from sentry_types.protocol.versions import ProtocolVersion

EVENT_ID = "fc6d8c0c43fc4630ad850ee518f1b9d0"


class TestEnvelopeParser:
    """Test cases for EnvelopeParser."""

    def setup_method(self):
        """Set up test fixtures."""
        self.parser = EnvelopeParser()

    def test_parse_empty_body(self):
        """Test parsing empty body."""
        result = self.parser.parse(b"")
        assert result.header.event_id is None
        assert len(result.items) == 0

    def test_parse_header_only(self):
        """Test parsing envelope with only header."""
        body = (
            b'{"event_id":"' + EVENT_ID.encode() + b'","dsn":"https://key@host/1",'
            b'"sent_at":"2024-01-15T10:00:00Z"}'
        )
        result = self.parser.parse(body)

        assert result.header.event_id == EventId.parse(EVENT_ID)
        assert result.header.dsn == "https://key@host/1"
        assert result.header.sent_at == datetime(2024, 1, 15, 10, 0, tzinfo=timezone.utc)

    def test_parse_with_length(self):
        """Test that a declared length is read byte for byte, newlines included."""
        payload = b'{"message":"line one\\nline two"}\n{"x":1}'
        body = b"{}\n" + orjson.dumps({"type": "attachment", "length": len(payload)}) + b"\n" + payload
        result = self.parser.parse(body)

        assert len(result.items) == 1
        assert result.items[0].item_type == "attachment"
        assert result.items[0].payload == payload

    def test_parse_multiple_items(self):
        """Test parsing envelope with multiple items."""
        body = (
            b'{"event_id":"' + EVENT_ID.encode() + b'"}\n'
            b'{"type":"event"}\n'
            b'{"exception":{"values":[]}}\n'
            b'{"type":"session"}\n'
            b'{"sid":"xyz789","status":"ok"}'
        )
        result = self.parser.parse(body)

        assert len(result.items) == 2
        assert result.items[0].item_type == "event"
        assert result.items[1].item_type == "session"

    def test_parse_invalid_header(self):
        """Test parsing with invalid header."""
        with pytest.raises(MalformedDocument):
            self.parser.parse(b"not valid json\n")

    def test_parse_invalid_header_event_id(self):
        """Test that a malformed header event id is rejected."""
        with pytest.raises(InvalidField):
            self.parser.parse(b'{"event_id":"abc123"}\n')

    def test_parse_truncated_item(self):
        """Test that an item shorter than its length is rejected."""
        with pytest.raises(MalformedDocument):
            self.parser.parse(b'{}\n{"type":"event","length":50}\n{"message":"short"}')

    def test_extract_events(self):
        """Test extracting event payloads."""
        body = (
            b"{}\n"
            b'{"type":"event"}\n'
            b'{"message":"test error"}\n'
            b'{"type":"transaction"}\n'
            b'{"transaction":"GET /api/users"}\n'
            b'{"type":"session"}\n'
            b'{"sid":"xyz"}'
        )
        envelope = self.parser.parse(body)
        events = self.parser.extract_events(envelope)

        assert len(events) == 2
        assert b"test error" in events[0]

    def test_parse_with_sdk_info(self):
        """Test parsing envelope with SDK info in header."""
        body = b'{"sdk":{"name":"sentry.python","version":"1.0.0"}}'
        result = self.parser.parse(body)

        assert result.header.sdk == {"name": "sentry.python", "version": "1.0.0"}


class TestEnvelopeWriter:
    """Test cases for building envelopes."""

    def setup_method(self):
        """Set up test fixtures."""
        self.parser = EnvelopeParser()
        self.dsn = Dsn.parse("https://key@host/1")
        self.sent_at = datetime(2024, 1, 15, 10, 0, tzinfo=timezone.utc)
        self.event = Event(
            event_id=EVENT_ID,
            level=Level.ERROR,
            message="line one\nline two",
            sdk=ClientSdkInfo(name="sentry-types.python", version="0.21.0"),
        )

    def test_from_event_header(self):
        """Test the envelope header built for an event."""
        envelope = Envelope.from_event(self.event, ProtocolVersion.V7, self.dsn, self.sent_at)

        assert envelope.header.to_dict() == {
            "event_id": EVENT_ID,
            "dsn": "https://key@host/1",
            "sent_at": "2024-01-15T10:00:00.000000Z",
            "sdk": {"name": "sentry-types.python", "version": "0.21.0"},
        }

    def test_item_length_header(self):
        """Test that item headers carry the exact payload length."""
        item = EnvelopeItem(item_type="event", payload=b"{}")
        header_line, payload, _ = item.to_bytes().split(b"\n")

        assert orjson.loads(header_line) == {"type": "event", "length": 2}
        assert payload == b"{}"

    def test_write_then_parse(self):
        """Test that a written envelope reads back to the same event."""
        envelope = Envelope.from_event(self.event, ProtocolVersion.V7, self.dsn, self.sent_at)
        parsed = self.parser.parse(envelope.to_bytes())

        assert parsed.header == envelope.header
        assert parsed.items[0].payload == envelope.items[0].payload
        assert self.parser.events(parsed, ProtocolVersion.V7) == [self.event]
