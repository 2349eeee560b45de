"""FIFO response queue bridging transport callbacks to awaiting operations."""

from __future__ import annotations

import asyncio
from collections import deque
from enum import Enum
from typing import Deque, Optional

from .errors import InternalError
from .models import ResponseMessage


class Signal(str, Enum):
    """Why a waiting consumer was woken."""

    RESPONSE = "response"
    RELEASE = "release"


class ResponseQueue:
    """Single-consumer queue of decoded server messages.

    Messages are consumed strictly in arrival order. At most one coroutine
    waits at a time; it is woken either by a new message or by a local
    release signal, and fails with the error passed to :meth:`fail`.
    """

    def __init__(self) -> None:
        self._messages: Deque[ResponseMessage] = deque()
        self._waiter: Optional["asyncio.Future[Signal]"] = None

    def __len__(self) -> int:
        return len(self._messages)

    def put(self, message: ResponseMessage) -> None:
        self._messages.append(message)
        self._wake(Signal.RESPONSE)

    def notify_release(self) -> None:
        """Wake the current waiter, if any, without queueing a message."""
        self._wake(Signal.RELEASE)

    def fail(self, exc: BaseException) -> None:
        waiter, self._waiter = self._waiter, None
        if waiter is not None and not waiter.done():
            waiter.set_exception(exc)

    def clear(self) -> None:
        self._messages.clear()

    async def wait(self) -> Signal:
        """Return immediately if a message is queued, else wait for a signal."""
        if self._messages:
            return Signal.RESPONSE

        waiter: "asyncio.Future[Signal]" = asyncio.get_running_loop().create_future()
        self._waiter = waiter
        try:
            return await waiter
        finally:
            if self._waiter is waiter:
                self._waiter = None

    def pop(self) -> ResponseMessage:
        if not self._messages:
            raise InternalError("No response received from server")
        return self._messages.popleft()

    async def next_message(self) -> ResponseMessage:
        await self.wait()
        return self.pop()

    def _wake(self, signal: Signal) -> None:
        waiter, self._waiter = self._waiter, None
        if waiter is not None and not waiter.done():
            waiter.set_result(signal)
