"""Abstract interface for the message channel under a lock session."""

from __future__ import annotations

import abc
from typing import Callable, Optional

from locktopus.core.models import WS_NORMAL_CLOSE, CloseEvent

MessageHandler = Callable[[str], None]
ErrorHandler = Callable[[BaseException], None]
CloseHandler = Callable[[CloseEvent], None]


class Transport(abc.ABC):
    """Full-duplex, ordered text channel.

    Implementations push inbound frames, errors and the final close to the
    observers installed with :meth:`set_observers`. Observers are detached
    when the owner closes the transport, so a locally requested close is not
    reported back.
    """

    def __init__(self) -> None:
        self._on_message: Optional[MessageHandler] = None
        self._on_error: Optional[ErrorHandler] = None
        self._on_close: Optional[CloseHandler] = None

    def set_observers(
        self,
        *,
        on_message: MessageHandler,
        on_error: ErrorHandler,
        on_close: CloseHandler,
    ) -> None:
        self._on_message = on_message
        self._on_error = on_error
        self._on_close = on_close

    def clear_observers(self) -> None:
        self._on_message = None
        self._on_error = None
        self._on_close = None

    @abc.abstractmethod
    async def open(self, address: str) -> None:  # pragma: no cover - interface
        """Connect to ``address``. Raises ``locktopus.core.errors.ConnectionError``."""
        raise NotImplementedError

    @abc.abstractmethod
    async def send(self, text: str) -> None:  # pragma: no cover - interface
        raise NotImplementedError

    @abc.abstractmethod
    async def close(self, code: int = WS_NORMAL_CLOSE, reason: str = "") -> None:  # pragma: no cover - interface
        raise NotImplementedError

    def _emit_message(self, text: str) -> None:
        if self._on_message is not None:
            self._on_message(text)

    def _emit_error(self, exc: BaseException) -> None:
        if self._on_error is not None:
            self._on_error(exc)

    def _emit_close(self, event: CloseEvent) -> None:
        if self._on_close is not None:
            self._on_close(event)
