"""Tests for the event schema models."""

import logging

import pytest
from pydantic import ValidationError

from sentry_types.errors import InvalidLevel
from sentry_types.ids import EventId
from sentry_types.protocol.models import (
    Addr,
    Breadcrumb,
    Event,
    Frame,
    Level,
    Mechanism,
    SentryException,
    Stacktrace,
    User,
    reserved_keys,
)


class TestLevel:
    """Test cases for Level."""

    def test_ordering(self):
        """Test severity ordering from debug to fatal."""
        assert Level.DEBUG < Level.INFO < Level.WARNING < Level.ERROR < Level.FATAL
        assert max([Level.WARNING, Level.FATAL, Level.INFO]) is Level.FATAL
        assert Level.ERROR >= Level.ERROR

    def test_str(self):
        """Test rendering as the wire tag."""
        assert str(Level.WARNING) == "warning"

    def test_parse(self):
        """Test parsing wire tags."""
        assert Level.parse("fatal") is Level.FATAL
        assert Level.parse(Level.INFO) is Level.INFO

    @pytest.mark.parametrize("raw", ["critical", "warn", "ERROR", "", None])
    def test_parse_unknown(self, raw):
        """Test rejecting tags outside of the closed set."""
        with pytest.raises(InvalidLevel):
            Level.parse(raw)

    @pytest.mark.parametrize(
        "levelno,expected",
        [
            (logging.DEBUG, Level.DEBUG),
            (5, Level.DEBUG),
            (logging.INFO, Level.INFO),
            (logging.WARNING, Level.WARNING),
            (logging.ERROR, Level.ERROR),
            (logging.CRITICAL, Level.FATAL),
            (35, Level.WARNING),
        ],
    )
    def test_from_logging_level(self, levelno, expected):
        """Test mapping stdlib logging levels."""
        assert Level.from_logging_level(levelno) is expected


class TestAddr:
    """Test cases for Addr."""

    @pytest.mark.parametrize("raw,expected", [("0x1A2B", 0x1A2B), ("4096", 4096), (255, 255), ("0x0", 0)])
    def test_parse(self, raw, expected):
        """Test parsing hex strings, decimal strings and integers."""
        assert Addr.parse(raw) == expected

    @pytest.mark.parametrize("raw", ["0xzz", "", "-5", -1, True, 1.5])
    def test_parse_invalid(self, raw):
        """Test rejecting values that are not addresses."""
        with pytest.raises(ValueError):
            Addr.parse(raw)

    def test_str(self):
        """Test rendering as lowercase hex."""
        assert str(Addr(0x7F0000)) == "0x7f0000"


class TestEventModel:
    """Test cases for Event and its sub-structures."""

    def test_only_event_id_required(self):
        """Test that an event can be built without any argument."""
        event = Event()

        assert isinstance(event.event_id, EventId)
        assert event.timestamp is None
        assert event.other == {}

    def test_event_is_frozen(self):
        """Test that events cannot be mutated."""
        event = Event(message="hi")
        with pytest.raises(ValidationError):
            event.message = "changed"

    def test_unknown_field_rejected(self):
        """Test that unknown keyword arguments belong in other."""
        with pytest.raises(ValidationError):
            Event(spans=[])

    @pytest.mark.parametrize("key", ["message", "exception", "sentry.interfaces.Exception", "event_id"])
    def test_other_cannot_hold_reserved_keys(self, key):
        """Test that the catch-all map never shadows a recognized key."""
        with pytest.raises(ValidationError):
            Event(other={key: "x"})

    def test_reserved_keys(self):
        """Test the set of recognized top-level keys."""
        keys = reserved_keys()
        assert "timestamp" in keys
        assert "sentry.interfaces.Exception" in keys
        assert "other" not in keys

    def test_tags_from_pairs(self):
        """Test the legacy list-of-pairs tag form."""
        event = Event(tags=[["a", "1"], ("b", True), ["c", 2.5]])
        assert event.tags == {"a": "1", "b": "true", "c": "2.5"}

    def test_tags_invalid_pair(self):
        """Test rejecting malformed tag pairs."""
        with pytest.raises(ValidationError):
            Event(tags=[["a", "1", "extra"]])

    def test_sub_structures_keep_unknown_keys(self):
        """Test that sub-structures keep keys they do not know."""
        user = User(id=1, segment="beta")
        frame = Frame(function="f", trust="cfi")

        assert user.model_extra == {"segment": "beta"}
        assert frame.model_extra == {"trust": "cfi"}

    def test_exception_requires_type(self):
        """Test that the exception type is mandatory."""
        with pytest.raises(ValidationError):
            SentryException(value="boom")

    def test_mechanism_requires_type(self):
        """Test that the mechanism type is mandatory."""
        with pytest.raises(ValidationError):
            Mechanism(handled=True)

    def test_stacktrace_defaults(self):
        """Test that an empty stacktrace has no frames."""
        assert Stacktrace().frames == []

    def test_breadcrumb_timestamp_parsed(self):
        """Test that breadcrumb timestamps accept epoch numbers."""
        crumb = Breadcrumb(timestamp=1705312800)
        assert crumb.timestamp.year == 2024
        assert crumb.timestamp.tzinfo is not None
