"""Core session engine and protocol models."""

from .client import LocktopusClient
from .locks import AsyncLock, HeldLock
from .models import (
    Action,
    ClientState,
    CloseEvent,
    ConnectionOptions,
    LockType,
    RequestMessage,
    Resource,
    ResponseMessage,
    build_address,
)
from .settings import ClientSettings

__all__ = [
    "LocktopusClient",
    "AsyncLock",
    "HeldLock",
    "Action",
    "ClientState",
    "CloseEvent",
    "ConnectionOptions",
    "LockType",
    "RequestMessage",
    "Resource",
    "ResponseMessage",
    "build_address",
    "ClientSettings",
]
