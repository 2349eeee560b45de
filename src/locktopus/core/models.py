"""Wire and value models shared across the Locktopus client."""

from __future__ import annotations

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

WS_NORMAL_CLOSE = 1000
WS_ABNORMAL_CLOSE = 3000


class Action(str, Enum):
    """Request/response actions understood by the lock server."""

    LOCK = "lock"
    RELEASE = "release"


class LockType(str, Enum):
    READ = "read"
    WRITE = "write"


class ClientState(str, Enum):
    """Session states. The last three double as the server's wire states."""

    NOT_CONNECTED = "not_connected"
    CONNECTING = "connecting"
    READY = "ready"
    ENQUEUED = "enqueued"
    ACQUIRED = "acquired"


_WIRE_STATES = frozenset({ClientState.READY, ClientState.ENQUEUED, ClientState.ACQUIRED})


class Resource(BaseModel):
    """A hierarchical resource path locked for reading or writing."""

    model_config = ConfigDict(frozen=True)

    type: LockType
    path: List[str] = Field(default_factory=list)

    @classmethod
    def read(cls, *path: str) -> "Resource":
        return cls(type=LockType.READ, path=list(path))

    @classmethod
    def write(cls, *path: str) -> "Resource":
        return cls(type=LockType.WRITE, path=list(path))


class RequestMessage(BaseModel):
    """Client-to-server frame."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    action: Action
    resources: Optional[List[Resource]] = Field(default=None, alias="Resources")

    def to_wire(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True)


class ResponseMessage(BaseModel):
    """Server-to-client frame."""

    model_config = ConfigDict(frozen=True)

    id: str
    action: Action
    state: ClientState

    @field_validator("state")
    @classmethod
    def _wire_state_only(cls, value: ClientState) -> ClientState:
        if value not in _WIRE_STATES:
            raise ValueError(f"state {value.value!r} is not a server state")
        return value


class ConnectionOptions(BaseModel):
    """Structured server address."""

    host: str
    port: int = Field(ge=1, le=65535)
    namespace: str
    secure: bool = False


class CloseEvent(BaseModel):
    """Details of a transport close reported to observers."""

    model_config = ConfigDict(frozen=True)

    code: int
    reason: str = ""
    was_clean: bool = False


def build_address(options: ConnectionOptions) -> str:
    scheme = "wss" if options.secure else "ws"
    return f"{scheme}://{options.host}:{options.port}/v1?namespace={options.namespace}"
