"""
Wire encoding and decoding of Sentry events.

Encoding is strict: only well-formed events are written and absent fields
are omitted. Decoding is permissive: unknown keys are kept, legacy container
shapes are accepted and both timestamp representations are read, but values
outside a closed domain (levels, ids, addresses) are rejected.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Union

import orjson
from pydantic import BaseModel, ValidationError

from ..config import settings
from ..errors import InvalidField, InvalidLevel, InvalidTimestamp, MalformedDocument
from ..ids import DebugId, EventId
from ..log import get_logger
from .models import EXCEPTION_KEYS, Addr, Event, Level, Stacktrace
from .versions import EncodingPolicy, get_policy

logger = get_logger(__name__)

# Event fields read from the wire under their own name.
_EVENT_FIELDS = frozenset(name for name in Event.model_fields if name != "other")
_LIST_FIELDS = ("threads", "breadcrumbs")

# Free-form maps may use int or float keys; they are written as strings.
_DUMPS_OPTIONS = orjson.OPT_NON_STR_KEYS


class EventCodec:
    """
    Sentry Event JSON codec.

    Args:
        version: Protocol version used when a call does not pass one;
            defaults to ``settings.default_protocol_version``
    """

    def __init__(self, version: Any = None):
        self.version = version

    def policy(self, version: Any = None) -> EncodingPolicy:
        if version is None:
            version = self.version
        if version is None:
            version = settings.default_protocol_version
        return get_policy(version)

    # Encoding

    def encode(self, event: Event, version: Any = None) -> bytes:
        """
        Serialize an event to JSON bytes.

        Args:
            event: Event to encode
            version: Protocol version selecting the encoding rules

        Returns:
            UTF-8 encoded JSON document

        Raises:
            InvalidLevel: If a level is not a ``Level`` member
            InvalidField: If a free-form value cannot be written as JSON
            UnsupportedVersion: If the version is unknown
        """
        document = self.to_document(event, version)
        try:
            return orjson.dumps(document, option=_DUMPS_OPTIONS)
        except orjson.JSONEncodeError as e:
            field = self._unencodable_key(document)
            logger.debug("event.encode_failed", field=field, error=str(e))
            raise InvalidField(field, f"not JSON serializable: {e}") from None

    def _unencodable_key(self, document: Dict[str, Any]) -> str:
        for key, value in document.items():
            try:
                orjson.dumps(value, option=_DUMPS_OPTIONS)
            except orjson.JSONEncodeError:
                return key
        return "event"

    def to_document(self, event: Event, version: Any = None) -> Dict[str, Any]:
        """Build the wire document (a plain dict) for ``event``."""
        policy = self.policy(version)
        document: Dict[str, Any] = {"event_id": str(event.event_id)}

        for name in Event.model_fields:
            if name in ("event_id", "other"):
                continue
            value = getattr(event, name)
            if value is None:
                continue

            if name == "exception":
                document[policy.exception_key] = policy.wrap(
                    [self._dump(exc, policy) for exc in value]
                )
            elif name in _LIST_FIELDS:
                document[name] = policy.wrap([self._dump(item, policy) for item in value])
            elif name == "level":
                document[name] = self._dump_level(value, name)
            else:
                document[name] = self._dump(value, policy)

        for key, value in event.other.items():
            if key in document or key in EXCEPTION_KEYS:
                raise InvalidField(key, "catch-all key duplicates a recognized key")
            document[key] = self._dump(value, policy)

        return document

    def _dump_level(self, value: Any, path: str) -> str:
        if not isinstance(value, Level):
            raise InvalidLevel(f"{path}: {value!r} is not a Level")
        return value.value

    def _dump_model(self, model: BaseModel, policy: EncodingPolicy) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        for name in type(model).model_fields:
            value = getattr(model, name)
            if value is None:
                continue
            if name == "level":
                out[name] = self._dump_level(value, f"{type(model).__name__}.level")
            elif name == "frames" and isinstance(model, Stacktrace):
                out[name] = [self._dump(frame, policy) for frame in policy.wire_frames(value)]
            else:
                out[name] = self._dump(value, policy)

        for key, value in (model.model_extra or {}).items():
            out.setdefault(key, self._dump(value, policy))
        return out

    def _dump(self, value: Any, policy: EncodingPolicy) -> Any:
        if isinstance(value, BaseModel):
            return self._dump_model(value, policy)
        if isinstance(value, datetime):
            return policy.format_timestamp(value)
        if isinstance(value, (EventId, DebugId, Addr)):
            return str(value)
        if isinstance(value, Enum):
            return value.value
        if isinstance(value, dict):
            return {key: self._dump(item, policy) for key, item in value.items()}
        if isinstance(value, (list, tuple)):
            return [self._dump(item, policy) for item in value]
        return value

    # Decoding

    def decode(self, payload: Union[bytes, str], version: Any = None) -> Event:
        """
        Parse a JSON payload into an Event.

        A missing ``event_id`` is replaced with a freshly generated one.

        Args:
            payload: Raw JSON bytes
            version: Protocol version the producer used

        Returns:
            Event object

        Raises:
            MalformedDocument: If the payload is not a JSON object
            InvalidField: If a field holds a value outside of its domain
            InvalidTimestamp: If a timestamp cannot be parsed
        """
        try:
            document = orjson.loads(payload)
        except orjson.JSONDecodeError as e:
            logger.debug("event.decode_failed", error=str(e))
            raise MalformedDocument(f"payload is not valid JSON: {e}") from None

        if not isinstance(document, dict):
            raise MalformedDocument(
                f"payload must be a JSON object, got {type(document).__name__}"
            )

        return self.from_document(document, version)

    def from_document(self, document: Dict[str, Any], version: Any = None) -> Event:
        """Build an Event from an already parsed wire document."""
        policy = self.policy(version)
        fields: Dict[str, Any] = {}
        other: Dict[str, Any] = {}

        for key, value in document.items():
            if key in EXCEPTION_KEYS:
                continue
            if key in _EVENT_FIELDS:
                fields[key] = value
            else:
                other[key] = value

        exceptions = self._exception_list(document, policy)
        if exceptions is not None:
            fields["exception"] = [
                self._canonical_stacktrace(exc, policy) for exc in exceptions
            ]

        for name in _LIST_FIELDS:
            if name in fields:
                items = self._unwrap(fields[name], name)
                if name == "threads" and items is not None:
                    items = [self._canonical_stacktrace(thread, policy) for thread in items]
                fields[name] = items

        if fields.get("event_id") is None:
            fields["event_id"] = EventId.new()
            logger.debug("event.id_generated", event_id=str(fields["event_id"]))

        if other:
            logger.debug("event.unknown_keys", keys=list(other))
        fields["other"] = other

        try:
            return Event.model_validate(fields)
        except ValidationError as e:
            error = self._translate(e)
            logger.debug("event.decode_failed", field=error.field, error=str(error))
            raise error from None

    def _exception_list(
        self, document: Dict[str, Any], policy: EncodingPolicy
    ) -> Optional[List[Any]]:
        present = [key for key in EXCEPTION_KEYS if key in document]
        if not present:
            return None
        if len(present) > 1:
            alias = next(key for key in present if key != policy.exception_key)
            raise InvalidField(alias, "event carries more than one exception list")
        return self._unwrap(document[present[0]], "exception")

    def _unwrap(self, value: Any, path: str) -> Optional[List[Any]]:
        """Accept ``{"values": [...]}``, a bare list, or a single object."""
        if value is None:
            return None
        if isinstance(value, dict):
            if "values" in value:
                value = value["values"]
                if value is None:
                    return None
            else:
                return [value]
        if not isinstance(value, list):
            raise InvalidField(path, f"expected a list, got {type(value).__name__}")
        return value

    def _canonical_stacktrace(self, item: Any, policy: EncodingPolicy) -> Any:
        """Reorder the frames of an exception or thread into oldest-first."""
        if not isinstance(item, dict):
            return item
        stacktrace = item.get("stacktrace")
        if not isinstance(stacktrace, dict):
            return item
        frames = stacktrace.get("frames")
        if not isinstance(frames, list):
            return item
        return {**item, "stacktrace": {**stacktrace, "frames": policy.canonical_frames(frames)}}

    def _translate(self, error: ValidationError) -> InvalidField:
        first = error.errors()[0]
        path = ".".join(str(part) for part in first["loc"]) or "event"
        cause = (first.get("ctx") or {}).get("error")
        if isinstance(cause, InvalidTimestamp):
            return InvalidTimestamp(path, cause.reason)
        return InvalidField(path, first["msg"])

    # Normalization

    def normalize(self, event: Event, version: Any = None) -> Event:
        """
        Apply the lossy parts of encoding to ``event``.

        Every typed timestamp field is converted to UTC and truncated to the
        precision of the selected version, so that
        ``decode(encode(e, v), v) == normalize(e, v)`` for events whose
        free-form values (``extra``, ``contexts``, ``data``, unknown keys)
        are plain JSON. A ``datetime`` or a non-string map key inside those
        values comes back as its wire form (a string or a float).
        """
        return self._normalize(event, self.policy(version))

    def _normalize(self, model: BaseModel, policy: EncodingPolicy) -> BaseModel:
        updates = {}
        for name in type(model).model_fields:
            value = getattr(model, name)
            if isinstance(value, datetime):
                updates[name] = policy.normalize_timestamp(value)
            elif isinstance(value, BaseModel):
                updates[name] = self._normalize(value, policy)
            elif isinstance(value, list) and any(isinstance(v, BaseModel) for v in value):
                updates[name] = [
                    self._normalize(v, policy) if isinstance(v, BaseModel) else v for v in value
                ]
        if not updates:
            return model
        return model.model_copy(update=updates)


_codec = EventCodec()


def encode(event: Event, version: Any = None) -> bytes:
    return _codec.encode(event, version)


def decode(payload: Union[bytes, str], version: Any = None) -> Event:
    return _codec.decode(payload, version)


def normalize(event: Event, version: Any = None) -> Event:
    return _codec.normalize(event, version)
