"""Convert stdlib ``logging.LogRecord`` objects into breadcrumbs and events."""

import logging
import traceback
from types import TracebackType
from typing import Any, Dict, List, Optional, Tuple, Type

from ..protocol.models import Breadcrumb, Event, Frame, Level, Mechanism, SentryException, Stacktrace

ExcInfo = Tuple[Type[BaseException], BaseException, Optional[TracebackType]]

# Attributes every LogRecord has; anything else came in through ``extra=``.
_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {
    "message",
    "asctime",
}


def convert_log_level(levelno: int) -> Level:
    """Converts a ``logging`` level number to a ``Level``."""
    return Level.from_logging_level(levelno)


def _json_value(value: Any) -> Any:
    """Turn an arbitrary ``extra=`` value into something the wire can carry."""
    if value is None or isinstance(value, (str, bool, float)):
        return value
    if isinstance(value, int):
        if -(2**63) <= value < 2**64:
            return value
        return str(value)
    if isinstance(value, dict):
        return {str(k): _json_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_json_value(v) for v in value]
    return str(value)


def record_extras(record: logging.LogRecord) -> Dict[str, Any]:
    """Values attached to the record through ``extra=``, made JSON safe."""
    return {
        key: _json_value(value)
        for key, value in vars(record).items()
        if key not in _RECORD_ATTRS and not key.startswith("_")
    }


def breadcrumb_from_record(record: logging.LogRecord) -> Breadcrumb:
    """Creates a ``Breadcrumb`` from the record."""
    return Breadcrumb(
        timestamp=record.created,
        type="log",
        category=record.name,
        level=convert_log_level(record.levelno),
        message=record.getMessage(),
        data=record_extras(record) or None,
    )


def event_from_record(record: logging.LogRecord) -> Event:
    """Creates a simple message ``Event`` from the record."""
    return Event(
        timestamp=record.created,
        level=convert_log_level(record.levelno),
        logger=record.name,
        message=record.getMessage(),
        extra=record_extras(record) or None,
    )


def exception_from_record(record: logging.LogRecord) -> Event:
    """
    Creates an exception ``Event`` from the record.

    With ``exc_info`` the exception chain is converted; otherwise a single
    exception with one frame pointing at the logging call site is used.
    """
    event = event_from_record(record)

    if record.exc_info and record.exc_info[1] is not None:
        exceptions = exceptions_from_exc_info(record.exc_info)
    else:
        frame = Frame(
            function=record.funcName,
            module=record.module,
            filename=record.filename,
            abs_path=record.pathname,
            lineno=record.lineno,
        )
        exceptions = [
            SentryException(
                type="logging.LogRecord",
                value=record.getMessage(),
                stacktrace=Stacktrace(frames=[frame]),
            )
        ]

    return event.model_copy(update={"exception": exceptions})


def _frames_from_traceback(tb: Optional[TracebackType]) -> List[Frame]:
    frames = []
    for frame, lineno in traceback.walk_tb(tb):
        code = frame.f_code
        summary = traceback.FrameSummary(code.co_filename, lineno, code.co_name)
        frames.append(
            Frame(
                filename=code.co_filename,
                abs_path=code.co_filename,
                function=code.co_name,
                module=frame.f_globals.get("__name__"),
                lineno=lineno,
                context_line=summary.line or None,
            )
        )
    return frames


def exceptions_from_exc_info(exc_info: ExcInfo) -> List[SentryException]:
    """
    Convert an exception and its causes, oldest cause first.

    Follows ``__cause__`` and, unless suppressed, ``__context__``.
    """
    chain = []
    seen = set()
    exc: Optional[BaseException] = exc_info[1]

    while exc is not None and id(exc) not in seen:
        seen.add(id(exc))
        chain.append(exc)
        if exc.__cause__ is not None:
            exc = exc.__cause__
        elif not exc.__suppress_context__:
            exc = exc.__context__
        else:
            exc = None

    result = []
    for index, error in enumerate(reversed(chain)):
        cls = type(error)
        frames = _frames_from_traceback(error.__traceback__)
        result.append(
            SentryException(
                type=cls.__name__,
                value=str(error) or None,
                module=cls.__module__,
                stacktrace=Stacktrace(frames=frames) if frames else None,
                mechanism=Mechanism(type="logging", handled=True) if index == len(chain) - 1 else None,
            )
        )
    return result
