from __future__ import annotations

import asyncio
import itertools
import json
from collections import deque
from contextlib import suppress
from dataclasses import dataclass, field
from typing import Any, Deque, Dict, List, Optional, Union
from urllib.parse import parse_qs, urlsplit

import pytest
import pytest_asyncio
from websockets.asyncio.server import ServerConnection, serve
from websockets.exceptions import ConnectionClosed

from locktopus.core.client import LocktopusClient
from locktopus.core.errors import ConnectionError
from locktopus.core.models import WS_NORMAL_CLOSE, CloseEvent, ConnectionOptions
from locktopus.services.transport import Transport

Reply = Union[str, Dict[str, Any]]


def reply(lock_id: str, action: str, state: str) -> Dict[str, str]:
    return {"id": lock_id, "action": action, "state": state}


class FakeTransport(Transport):
    """Transport double answering each send with the next scripted batch of replies."""

    def __init__(self, *, fail_open: bool = False) -> None:
        super().__init__()
        self.fail_open = fail_open
        self.address: Optional[str] = None
        self.sent: List[Dict[str, Any]] = []
        self.closed_with: Optional[int] = None
        self._script: Deque[List[Reply]] = deque()

    def script(self, *batches: List[Reply]) -> None:
        self._script.extend(batches)

    async def open(self, address: str) -> None:
        if self.fail_open:
            raise ConnectionError(f"Cannot connect to {address}: refused")
        self.address = address

    async def send(self, text: str) -> None:
        self.sent.append(json.loads(text))
        if self._script:
            for item in self._script.popleft():
                self.push(item)

    async def close(self, code: int = WS_NORMAL_CLOSE, reason: str = "") -> None:
        self.clear_observers()
        self.closed_with = code

    def push(self, item: Reply) -> None:
        """Deliver a server frame on the next loop iteration."""
        text = item if isinstance(item, str) else json.dumps(item)
        asyncio.get_running_loop().call_soon(self._emit_message, text)

    def drop(self, code: int = 1006, reason: str = "") -> None:
        self._emit_close(CloseEvent(code=code, reason=reason, was_clean=False))


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def client(transport: FakeTransport) -> LocktopusClient:
    return LocktopusClient("ws://locks.test:9009/v1?namespace=unit", transport_factory=lambda: transport)


# ---------------------------------------------------------------------------
# In-process lock server
# ---------------------------------------------------------------------------


def _overlaps(a: List[str], b: List[str]) -> bool:
    shortest = min(len(a), len(b))
    return a[:shortest] == b[:shortest]


def _conflicts(first: List[Dict[str, Any]], second: List[Dict[str, Any]]) -> bool:
    for left in first:
        for right in second:
            if "write" in (left["type"], right["type"]) and _overlaps(left["path"], right["path"]):
                return True
    return False


@dataclass(eq=False)
class _Entry:
    connection: ServerConnection
    lock_id: str
    resources: List[Dict[str, Any]]
    acquired: bool = False


@dataclass
class _Namespace:
    entries: List[_Entry] = field(default_factory=list)

    def find(self, connection: ServerConnection) -> Optional[_Entry]:
        for entry in self.entries:
            if entry.connection is connection:
                return entry
        return None

    def grantable(self, entry: _Entry) -> bool:
        earlier = self.entries[: self.entries.index(entry)]
        return not any(_conflicts(other.resources, entry.resources) for other in earlier)

    async def promote(self) -> None:
        for entry in list(self.entries):
            if entry in self.entries and not entry.acquired and self.grantable(entry):
                entry.acquired = True
                with suppress(ConnectionClosed):
                    await entry.connection.send(json.dumps(reply(entry.lock_id, "lock", "acquired")))


class LockServer:
    """Minimal FIFO lock server speaking the client's wire protocol."""

    def __init__(self) -> None:
        self.namespaces: Dict[str, _Namespace] = {}
        self.received: List[Dict[str, Any]] = []
        self.options: Optional[ConnectionOptions] = None
        self._ids = itertools.count(1)

    async def handler(self, connection: ServerConnection) -> None:
        query = parse_qs(urlsplit(connection.request.path).query)
        namespace = self.namespaces.setdefault(query.get("namespace", ["default"])[0], _Namespace())
        try:
            async for raw in connection:
                message = json.loads(raw)
                self.received.append(message)
                if message["action"] == "lock":
                    entry = _Entry(connection, f"lock-{next(self._ids)}", message.get("Resources") or [])
                    namespace.entries.append(entry)
                    entry.acquired = namespace.grantable(entry)
                    state = "acquired" if entry.acquired else "enqueued"
                    await connection.send(json.dumps(reply(entry.lock_id, "lock", state)))
                elif message["action"] == "release":
                    entry = namespace.find(connection)
                    lock_id = entry.lock_id if entry else ""
                    if entry is not None:
                        namespace.entries.remove(entry)
                    await connection.send(json.dumps(reply(lock_id, "release", "ready")))
                    await namespace.promote()
        except ConnectionClosed:
            pass
        finally:
            entry = namespace.find(connection)
            if entry is not None:
                namespace.entries.remove(entry)
                await namespace.promote()


@pytest_asyncio.fixture
async def lock_server():
    server = LockServer()
    async with serve(server.handler, "127.0.0.1", 0) as ws_server:
        port = list(ws_server.sockets)[0].getsockname()[1]
        server.options = ConnectionOptions(host="127.0.0.1", port=port, namespace="test")
        yield server
