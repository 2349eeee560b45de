"""Async context manager wrapping the lock/acquire/release cycle."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, Sequence, runtime_checkable

from .models import ClientState, Resource

if TYPE_CHECKING:
    from .client import LocktopusClient


@runtime_checkable
class AsyncLock(Protocol):
    async def __aenter__(self) -> bool: ...
    async def __aexit__(self, exc_type, exc, tb) -> None: ...


class HeldLock(AsyncLock):
    """Lock ``resources`` on enter, waiting for acquisition; release on exit.

    ``__aenter__`` returns False only if the lock was released concurrently
    while it was still waiting.
    """

    def __init__(self, client: "LocktopusClient", resources: Sequence[Resource]) -> None:
        self._client = client
        self._resources = tuple(resources)

    async def __aenter__(self) -> bool:
        acquired = await self._client.lock(*self._resources)
        if not acquired:
            acquired = await self._client.acquire()
        return acquired

    async def __aexit__(self, exc_type, exc, tb) -> None:
        # a failed session cannot release; let the pending exception surface
        if self._client.error is not None:
            return
        if self._client.state in (ClientState.ENQUEUED, ClientState.ACQUIRED):
            await self._client.release()
