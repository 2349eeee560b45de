"""Asyncio client for the Locktopus distributed lock server."""

from .core import (
    ClientSettings,
    ClientState,
    ConnectionOptions,
    LocktopusClient,
    LockType,
    Resource,
)
from .core.errors import (
    ConnectionError,
    DecodeError,
    InternalError,
    LocktopusError,
    ProtocolError,
    TransportError,
    UsageError,
)

__all__ = [
    "__version__",
    "ClientSettings",
    "ClientState",
    "ConnectionOptions",
    "LocktopusClient",
    "LockType",
    "Resource",
    "ConnectionError",
    "DecodeError",
    "InternalError",
    "LocktopusError",
    "ProtocolError",
    "TransportError",
    "UsageError",
]

__version__ = "0.1.0"
