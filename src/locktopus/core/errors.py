"""Exception hierarchy raised by the Locktopus client."""

from __future__ import annotations

import builtins


class LocktopusError(Exception):
    """Base class for every client error."""


class UsageError(LocktopusError):
    """The caller violated a precondition. Nothing was sent."""


class ConnectionError(LocktopusError, builtins.ConnectionError):  # noqa: A001
    """The transport could not be opened."""


class TransportError(LocktopusError):
    """The session's transport failed after connecting. Latched until reconnect."""


class DecodeError(TransportError):
    """An inbound frame was not a valid protocol message."""


class ProtocolError(TransportError):
    """The server answered with an unexpected action, state or lock id."""


class InternalError(LocktopusError):
    """A consumer was woken without a queued message."""
