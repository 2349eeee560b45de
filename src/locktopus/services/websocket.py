"""WebSocket transport implementation."""

from __future__ import annotations

import asyncio
from contextlib import suppress
from typing import Optional

from websockets.asyncio.client import ClientConnection, connect
from websockets.exceptions import ConnectionClosed, ConnectionClosedError, WebSocketException

from locktopus.core.errors import ConnectionError, TransportError
from locktopus.core.models import WS_NORMAL_CLOSE, CloseEvent
from locktopus.services.transport import Transport
from locktopus.utils.logging import get_logger

# Reported when the peer vanished without a close frame.
_NO_STATUS_CLOSE = 1006


class WebSocketTransport(Transport):
    """Transport over a ``websockets`` client connection with a background reader."""

    def __init__(self, *, open_timeout: Optional[float] = 10.0) -> None:
        super().__init__()
        self.open_timeout = open_timeout
        self.logger = get_logger("WebSocketTransport")
        self._ws: Optional[ClientConnection] = None
        self._reader: Optional[asyncio.Task[None]] = None

    async def open(self, address: str) -> None:
        if self._ws is not None:
            raise RuntimeError("WebSocket transport already open")
        self.logger.info("Connecting to lock server at %s", address)
        try:
            self._ws = await connect(address, open_timeout=self.open_timeout)
        except (OSError, asyncio.TimeoutError, WebSocketException) as exc:
            raise ConnectionError(f"Cannot connect to {address}: {exc}") from exc
        self._reader = asyncio.create_task(self._read_loop(self._ws), name=f"locktopus-reader-{address}")

    async def send(self, text: str) -> None:
        if not self._ws:
            raise RuntimeError("WebSocket transport not connected")
        self.logger.debug("WebSocket send: %s", text)
        try:
            await self._ws.send(text)
        except ConnectionClosed as exc:
            raise TransportError(f"Cannot send, connection closed: {exc}") from exc

    async def close(self, code: int = WS_NORMAL_CLOSE, reason: str = "") -> None:
        ws, self._ws = self._ws, None
        reader, self._reader = self._reader, None
        self.clear_observers()
        if ws is not None:
            self.logger.info("Closing WebSocket transport (code %d)", code)
            await ws.close(code=code, reason=reason)
        if reader is not None:
            reader.cancel()
            with suppress(asyncio.CancelledError):
                await reader

    async def _read_loop(self, ws: ClientConnection) -> None:
        clean = True
        try:
            async for raw in ws:
                if isinstance(raw, bytes):
                    raw = raw.decode("utf-8", errors="replace")
                self.logger.debug("WebSocket receive: %s", raw)
                self._emit_message(raw)
        except ConnectionClosedError as exc:
            clean = False
            self._emit_error(exc)
        self._emit_close(
            CloseEvent(
                code=ws.close_code if ws.close_code is not None else _NO_STATUS_CLOSE,
                reason=ws.close_reason or "",
                was_clean=clean,
            )
        )
