"""
Starlette adapters for the broker's cookie and request-context interfaces.
"""

from __future__ import annotations

from dataclasses import dataclass

from fastapi import Request, Response

from ssobroker.broker.stores import CookieWrite


class StarletteCookieStore:
    """
    Reads cookies from the request and writes Set-Cookie headers to the
    response FastAPI injected into the dependency.

    Writes are remembered so they can be replayed onto a different response
    (the 307 built when ``attach()`` ends the request).
    """

    def __init__(self, request: Request, response: Response, secure: bool | None = None) -> None:
        self._request = request
        self._response = response
        self._secure = request.url.scheme == "https" if secure is None else secure
        self._overrides: dict[str, str | None] = {}
        self.pending: list[CookieWrite] = []

    def get(self, name: str) -> str | None:
        if name in self._overrides:
            return self._overrides[name]
        return self._request.cookies.get(name) or None

    def set(self, name: str, value: str, max_age: int, path: str = "/") -> None:
        self._overrides[name] = value
        write = CookieWrite(name, value, max_age, path)
        self.pending.append(write)
        self._write(self._response, write)

    def clear(self, name: str, path: str = "/") -> None:
        self._overrides[name] = None
        write = CookieWrite(name, "", 0, path)
        self.pending.append(write)
        self._write(self._response, write)

    def apply(self, response: Response) -> None:
        for write in self.pending:
            self._write(response, write)

    def _write(self, response: Response, write: CookieWrite) -> None:
        if write.max_age <= 0:
            response.delete_cookie(write.name, path=write.path)
            return
        response.set_cookie(
            write.name,
            write.value,
            max_age=write.max_age,
            path=write.path,
            httponly=True,
            samesite="lax",
            secure=self._secure,
        )


@dataclass(frozen=True)
class StarletteRequestContext:
    scheme: str
    host: str
    path: str
    query: dict[str, str]

    @classmethod
    def from_request(cls, request: Request) -> StarletteRequestContext:
        return cls(
            scheme=request.url.scheme,
            host=request.headers.get("host") or request.url.netloc,
            path=request.url.path,
            query=dict(request.query_params),
        )
