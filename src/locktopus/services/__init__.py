"""Transports carrying the lock protocol."""

from .transport import Transport
from .websocket import WebSocketTransport

__all__ = ["Transport", "WebSocketTransport"]
