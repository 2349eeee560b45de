"""Session engine driving one connection through the lock protocol."""

from __future__ import annotations

from typing import Callable, NoReturn, Optional, Union

from pydantic import ValidationError

from locktopus.services.transport import Transport
from locktopus.utils.logging import get_logger

from .errors import ConnectionError, DecodeError, LocktopusError, ProtocolError, TransportError, UsageError
from .locks import AsyncLock, HeldLock
from .message_queue import ResponseQueue, Signal
from .models import (
    WS_ABNORMAL_CLOSE,
    WS_NORMAL_CLOSE,
    Action,
    ClientState,
    CloseEvent,
    ConnectionOptions,
    RequestMessage,
    Resource,
    ResponseMessage,
    build_address,
)
from .settings import ClientSettings

TransportFactory = Callable[[], Transport]
CloseObserver = Callable[[CloseEvent], None]


def _default_transport() -> Transport:
    from locktopus.services.websocket import WebSocketTransport

    return WebSocketTransport()


class LocktopusClient:
    """Client session for a Locktopus lock server.

    Operations are awaited one at a time. The only supported overlap is a
    pending :meth:`acquire` with a :meth:`release` on the same session; the
    release wins and the pending acquire returns False.
    """

    def __init__(
        self,
        address: Union[str, ConnectionOptions],
        *,
        transport_factory: Optional[TransportFactory] = None,
    ) -> None:
        if isinstance(address, ConnectionOptions):
            address = build_address(address)
        self.address = address
        self.logger = get_logger("LocktopusClient")
        self._transport_factory = transport_factory or _default_transport
        self._initialize()

    @classmethod
    def from_settings(
        cls,
        settings: ClientSettings,
        *,
        transport_factory: Optional[TransportFactory] = None,
    ) -> "LocktopusClient":
        client = cls(settings.address(), transport_factory=transport_factory)
        client.logger.setLevel(settings.log_level)
        return client

    def _initialize(self) -> None:
        self._queue = ResponseQueue()
        self._transport: Optional[Transport] = None
        self._error: Optional[LocktopusError] = None
        self._close_observer: Optional[CloseObserver] = None
        self._state = ClientState.NOT_CONNECTED
        self._lock_id: Optional[str] = None
        self._released = False

    @property
    def state(self) -> ClientState:
        return self._state

    @property
    def error(self) -> Optional[LocktopusError]:
        """The latched transport or protocol error, if any."""
        return self._error

    def get_state(self) -> ClientState:
        return self._state

    def is_acquired(self) -> bool:
        """True if the last lock is held. If False, use :meth:`acquire`."""
        if self._transport is None:
            raise UsageError("Not connected")
        return self._state is ClientState.ACQUIRED

    def get_lock_id(self) -> Optional[str]:
        """Lock id assigned by the server to the current lock request."""
        if self._transport is None:
            raise UsageError("Not connected")
        return self._lock_id

    def on_connection_close(self, handler: CloseObserver) -> None:
        """Call ``handler`` when the server or network closes the connection."""
        self._check_error()
        self._close_observer = handler

    def locked(self, *resources: Resource) -> AsyncLock:
        return HeldLock(self, resources)

    async def connect(self) -> None:
        if self._transport is not None:
            raise UsageError("Already connected; close() before connecting again")

        transport = self._transport_factory()
        transport.set_observers(
            on_message=self._handle_message,
            on_error=self._handle_error,
            on_close=self._handle_close,
        )
        self._error = None
        self._state = ClientState.CONNECTING
        try:
            await transport.open(self.address)
        except ConnectionError:
            transport.clear_observers()
            self._state = ClientState.NOT_CONNECTED
            raise

        self._transport = transport
        self._state = ClientState.READY
        self.logger.info("Connected to %s", self.address)

    async def close(self) -> None:
        """Close the connection. The client may :meth:`connect` again afterwards."""
        transport = self._transport
        if transport is None:
            self._initialize()
            return

        self.logger.info("Closing connection to %s", self.address)
        self._queue.clear()
        self._queue.fail(TransportError("Session closed"))
        self._initialize()
        await transport.close(WS_NORMAL_CLOSE)

    async def lock(self, *resources: Resource) -> bool:
        """Request a lock. True means acquired now; otherwise use :meth:`acquire`."""
        self._check_error()
        self._released = False

        if not resources:
            raise UsageError("No resources provided")
        if self._state is not ClientState.READY:
            raise UsageError(f"Cannot lock in current state: {self._state.value}")

        await self._send(RequestMessage(action=Action.LOCK, resources=list(resources)))
        response = await self._next_response()

        if response.action is not Action.LOCK:
            await self._raise_protocol_error(
                f"Unexpected response action: {response.action.value}. Expected: {Action.LOCK.value}"
            )
        if response.state is ClientState.READY:
            await self._raise_protocol_error(
                f"Unexpected response state: {response.state.value}. "
                f"Expected: {ClientState.ENQUEUED.value} or {ClientState.ACQUIRED.value}"
            )

        self._state = response.state
        self._lock_id = response.id
        self.logger.debug("Lock %s is %s", self._lock_id, self._state.value)
        return self._state is ClientState.ACQUIRED

    async def acquire(self) -> bool:
        """Wait until the last lock is acquired.

        Returns True at once if it already is. False means this client
        released the lock before it was acquired.
        """
        self._check_error()

        if self._state is ClientState.ACQUIRED:
            return True
        if self._released:
            return False
        if self._state is not ClientState.ENQUEUED:
            raise UsageError(f"Cannot acquire in current state: {self._state.value}")

        signal = await self._queue.wait()
        # a release that ran before this task resumed owns the queued messages
        if signal is Signal.RELEASE or self._released:
            return False

        self._check_error()
        response = self._queue.pop()

        if response.action is not Action.LOCK:
            await self._raise_protocol_error(
                f"Unexpected response action: {response.action.value}. Expected: {Action.LOCK.value}"
            )
        if response.state is not ClientState.ACQUIRED:
            await self._raise_protocol_error(
                f"Unexpected response state: {response.state.value}. Expected: {ClientState.ACQUIRED.value}"
            )
        if self._lock_id is not None and response.id != self._lock_id:
            await self._raise_protocol_error(f"Unexpected lock id: {response.id}. Expected: {self._lock_id}")

        self._state = response.state
        self._lock_id = response.id
        self.logger.debug("Lock %s acquired", self._lock_id)
        return True

    async def release(self) -> None:
        """Release the last enqueued or acquired lock. After that, :meth:`lock` again."""
        self._check_error()

        if self._state is ClientState.READY:
            raise UsageError(f"Cannot release in current state: {self._state.value}")

        prior_state = self._state
        self._released = True
        self._queue.notify_release()

        await self._send(RequestMessage(action=Action.RELEASE))
        response = await self._next_response()

        if (
            prior_state is ClientState.ENQUEUED
            and response.id == self._lock_id
            and response.action is Action.LOCK
            and response.state is ClientState.ACQUIRED
        ):
            # acquisition notice sent before the server saw our release
            self.logger.warning("Discarding stale acquired notification for lock %s", response.id)
            response = await self._next_response()

        if response.id != self._lock_id:
            await self._raise_protocol_error(f"Unexpected lock id: {response.id}. Expected: {self._lock_id}")
        if response.action is not Action.RELEASE:
            await self._raise_protocol_error(
                f"Unexpected response action: {response.action.value}. Expected: {Action.RELEASE.value}"
            )
        if response.state is not ClientState.READY:
            await self._raise_protocol_error(
                f"Unexpected response state: {response.state.value}. Expected: {ClientState.READY.value}"
            )

        self._state = response.state
        self._lock_id = response.id
        self.logger.debug("Lock %s released", self._lock_id)

    def _check_error(self) -> None:
        if self._transport is None:
            raise UsageError("Not connected")
        if self._error is not None:
            raise self._error

    async def _send(self, message: RequestMessage) -> None:
        if self._transport is None:
            raise UsageError("Not connected")
        try:
            await self._transport.send(message.to_wire())
        except TransportError as exc:
            self._latch(exc)
            raise

    async def _next_response(self) -> ResponseMessage:
        message = await self._queue.next_message()
        self._check_error()
        return message

    async def _raise_protocol_error(self, message: str) -> NoReturn:
        error = ProtocolError(message)
        self.logger.error("Protocol violation, closing connection: %s", message)
        self._latch(error)
        if self._transport is not None:
            await self._transport.close(WS_ABNORMAL_CLOSE, "protocol violation")
        raise error

    def _latch(self, error: LocktopusError) -> None:
        if self._error is None:
            self._error = error
            self.logger.warning("Session failed: %s", error)
        self._queue.fail(self._error)

    def _handle_message(self, text: str) -> None:
        try:
            message = ResponseMessage.model_validate_json(text)
        except ValidationError as exc:
            error = DecodeError(f"Cannot parse response from server: {exc}")
            error.__cause__ = exc
            self._latch(error)
            return
        self.logger.debug("Received %s", message)
        self._queue.put(message)

    def _handle_error(self, exc: BaseException) -> None:
        error = TransportError(f"Transport error: {exc}")
        error.__cause__ = exc
        self._latch(error)

    def _handle_close(self, event: CloseEvent) -> None:
        self._latch(TransportError(f"Connection closed with code {event.code}: {event.reason}"))
        if self._close_observer is not None:
            self._close_observer(event)
