"""
Error taxonomy for the broker protocol.

Every failure the broker surfaces is a ``BrokerError`` tagged with one of the
five ``ErrorKind`` values, a message and (where the server answered) an HTTP
status. Callers can either catch the subclasses or use
``Broker.try_invoke()`` which returns a ``CommandResult`` instead of raising.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    CONFIGURATION = "configuration"
    NOT_ATTACHED = "not_attached"
    TRANSPORT = "transport"
    PROTOCOL = "protocol"
    SERVER = "server"


class BrokerError(Exception):
    """Base error. Never carries the token or secret."""

    kind: ErrorKind = ErrorKind.SERVER

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status = status

    def __repr__(self) -> str:
        return f"{type(self).__name__}(kind={self.kind.value!r}, message={self.message!r}, status={self.status!r})"


class ConfigurationError(BrokerError):
    """Missing server URL, broker id or secret."""

    kind = ErrorKind.CONFIGURATION


class NotAttached(BrokerError):
    """No local token, or the server rejected it (403). Re-run the attach flow."""

    kind = ErrorKind.NOT_ATTACHED


class TransportError(BrokerError):
    """Connection, DNS or timeout failure reaching the SSO server."""

    kind = ErrorKind.TRANSPORT


class ProtocolError(BrokerError):
    """Response is not ``application/json`` or its body can't be parsed."""

    kind = ErrorKind.PROTOCOL


class ServerError(BrokerError):
    """HTTP status >= 400 other than 403."""

    kind = ErrorKind.SERVER


class AttachRedirect(Exception):
    """
    Raised by ``attach()`` to end the current request with a redirect.

    Not a ``BrokerError``: it is control flow, and the host turns it into a
    307 response pointing the browser at the SSO server.
    """

    def __init__(self, url: str, status_code: int = 307) -> None:
        super().__init__(url)
        self.url = url
        self.status_code = status_code


@dataclass(frozen=True)
class CommandResult:
    """Outcome of ``Broker.try_invoke()``: either ``value`` or ``error`` is set."""

    value: Any = None
    error: BrokerError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def kind(self) -> ErrorKind | None:
        return self.error.kind if self.error is not None else None

    def unwrap(self) -> Any:
        if self.error is not None:
            raise self.error
        return self.value
