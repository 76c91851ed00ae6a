"""
Typed context blocks.

``Event.contexts`` is a loosely typed mapping. These models give the well
known blocks a schema and render them into that mapping with their ``type``
key, which is how the ingestion side tells a block's kind apart from its
name.
"""

import platform
import socket
import sys
from typing import Any, ClassVar, Dict, Optional, Type

from .protocol.models import Event, ProtocolModel


class Context(ProtocolModel):
    """Base class of typed contexts."""

    context_type: ClassVar[str] = ""

    def to_context(self) -> Dict[str, Any]:
        """Render as a free-form context value, including ``type``."""
        data = self.model_dump(exclude_none=True)
        return {"type": self.context_type, **data}


class OsContext(Context):
    context_type: ClassVar[str] = "os"

    name: Optional[str] = None
    version: Optional[str] = None
    build: Optional[str] = None
    kernel_version: Optional[str] = None
    rooted: Optional[bool] = None


class DeviceContext(Context):
    context_type: ClassVar[str] = "device"

    name: Optional[str] = None
    family: Optional[str] = None
    model: Optional[str] = None
    brand: Optional[str] = None
    arch: Optional[str] = None
    memory_size: Optional[int] = None
    boot_time: Optional[str] = None


class RuntimeContext(Context):
    context_type: ClassVar[str] = "runtime"

    name: Optional[str] = None
    version: Optional[str] = None
    build: Optional[str] = None
    raw_description: Optional[str] = None


class AppContext(Context):
    context_type: ClassVar[str] = "app"

    app_name: Optional[str] = None
    app_version: Optional[str] = None
    app_identifier: Optional[str] = None
    app_build: Optional[str] = None
    build_type: Optional[str] = None
    device_app_hash: Optional[str] = None


class BrowserContext(Context):
    context_type: ClassVar[str] = "browser"

    name: Optional[str] = None
    version: Optional[str] = None


CONTEXT_TYPES: Dict[str, Type[Context]] = {
    cls.context_type: cls
    for cls in (OsContext, DeviceContext, RuntimeContext, AppContext, BrowserContext)
}


def parse_context(name: str, value: Dict[str, Any]) -> Optional[Context]:
    """
    Read a free-form context back into its typed model.

    The ``type`` key decides the model; without it the context name is
    used. Returns ``None`` for context kinds without a model.
    """
    kind = value.get("type") or name
    model = CONTEXT_TYPES.get(kind)
    if model is None:
        return None
    data = {k: v for k, v in value.items() if k != "type"}
    return model.model_validate(data)


def os_context() -> OsContext:
    return OsContext(
        name=platform.system() or None,
        version=platform.release() or None,
        kernel_version=platform.version() or None,
    )


def runtime_context() -> RuntimeContext:
    return RuntimeContext(
        name=platform.python_implementation(),
        version=platform.python_version(),
        raw_description=sys.version,
    )


def device_context() -> DeviceContext:
    return DeviceContext(arch=platform.machine() or None)


def server_name() -> Optional[str]:
    return socket.gethostname() or None


def default_contexts() -> Dict[str, Dict[str, Any]]:
    """Contexts describing the current host and interpreter."""
    return {
        "os": os_context().to_context(),
        "device": device_context().to_context(),
        "runtime": runtime_context().to_context(),
    }


def with_default_contexts(event: Event) -> Event:
    """
    Return a copy of ``event`` with host contexts and ``server_name`` added.

    Contexts and the server name already present on the event win.
    """
    contexts = {**default_contexts(), **(event.contexts or {})}
    return event.model_copy(
        update={
            "contexts": contexts,
            "server_name": event.server_name or server_name(),
        }
    )
