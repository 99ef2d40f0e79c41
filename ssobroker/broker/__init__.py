"""
Standalone SSO broker protocol client.

This package has no dependency on other ssobroker packages (db, security,
routers). Construct a ``Broker`` per request with a ``BrokerConfig`` and the
host's cookie/session/request adapters.
"""

from .attach import AttachProtocol, AttachState
from .broker import Broker
from .checksum import Base64UrlEncoder, ShiftEncoder, checksum, make_encoder, session_id
from .client import RequestClient, probe_alive
from .commands import Command, KnownCommand, dispatch
from .config import BrokerConfig
from .errors import (
    AttachRedirect,
    BrokerError,
    CommandResult,
    ConfigurationError,
    ErrorKind,
    NotAttached,
    ProtocolError,
    ServerError,
    TransportError,
)
from .identity_cache import CookieCacheBackend, IdentityCache
from .stores import MemoryCookieStore, MemorySessionStore, StaticRequestContext
from .token_store import TokenStore, cookie_name

__all__ = [
    "AttachProtocol",
    "AttachRedirect",
    "AttachState",
    "Base64UrlEncoder",
    "Broker",
    "BrokerConfig",
    "BrokerError",
    "Command",
    "CommandResult",
    "ConfigurationError",
    "CookieCacheBackend",
    "ErrorKind",
    "IdentityCache",
    "KnownCommand",
    "MemoryCookieStore",
    "MemorySessionStore",
    "NotAttached",
    "ProtocolError",
    "RequestClient",
    "ServerError",
    "ShiftEncoder",
    "StaticRequestContext",
    "TokenStore",
    "TransportError",
    "checksum",
    "cookie_name",
    "dispatch",
    "make_encoder",
    "probe_alive",
    "session_id",
]
