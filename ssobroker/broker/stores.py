"""
Capability interfaces the broker needs from its host.

The broker never reads ambient request state. The host injects a
``CookieStore`` (browser-bound storage), a ``SessionStore`` (server-side,
per-visitor storage) and a ``RequestContext`` (current URL). In-memory
implementations are provided for tests and non-web hosts.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol
from urllib.parse import urlencode


class CookieStore(Protocol):
    def get(self, name: str) -> str | None: ...

    def set(self, name: str, value: str, max_age: int, path: str = "/") -> None: ...

    def clear(self, name: str, path: str = "/") -> None: ...


class SessionStore(Protocol):
    def get(self, key: str) -> Any | None: ...

    def set(self, key: str, value: Any) -> None: ...

    def delete(self, key: str) -> None: ...


class RequestContext(Protocol):
    scheme: str
    host: str
    path: str
    query: Mapping[str, str]


def current_url(ctx: RequestContext) -> str:
    """Absolute URL of the current request, query string included."""
    url = f"{ctx.scheme}://{ctx.host}{ctx.path}"
    if ctx.query:
        url = f"{url}?{urlencode(dict(ctx.query))}"
    return url


@dataclass(frozen=True)
class CookieWrite:
    name: str
    value: str
    max_age: int
    path: str


class MemoryCookieStore:
    """Dict-backed cookie jar. ``writes`` records every Set-Cookie in order."""

    def __init__(self, cookies: Mapping[str, str] | None = None) -> None:
        self._cookies: dict[str, str] = dict(cookies or {})
        self.writes: list[CookieWrite] = []

    def get(self, name: str) -> str | None:
        return self._cookies.get(name) or None

    def set(self, name: str, value: str, max_age: int, path: str = "/") -> None:
        self._cookies[name] = value
        self.writes.append(CookieWrite(name, value, max_age, path))

    def clear(self, name: str, path: str = "/") -> None:
        self._cookies.pop(name, None)
        self.writes.append(CookieWrite(name, "", 0, path))


class MemorySessionStore:
    def __init__(self, data: dict[str, Any] | None = None) -> None:
        self.data: dict[str, Any] = data if data is not None else {}

    def get(self, key: str) -> Any | None:
        return self.data.get(key)

    def set(self, key: str, value: Any) -> None:
        self.data[key] = value

    def delete(self, key: str) -> None:
        self.data.pop(key, None)


@dataclass(frozen=True)
class StaticRequestContext:
    scheme: str = "http"
    host: str = "localhost"
    path: str = "/"
    query: Mapping[str, str] = field(default_factory=dict)
