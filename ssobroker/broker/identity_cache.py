"""
Local cache of the user identity returned by the SSO server.

The cache is advisory: a miss only costs one ``userInfo`` round trip, and an
unreadable or expired entry is treated as a miss. Entries are addressed by the
server-issued ``uuid`` and remember the token they were fetched with, so a
new token never sees another token's identity.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import json
import logging
import re
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from .stores import CookieStore, SessionStore

logger = logging.getLogger(__name__)

_SIGNATURE_SIZE = hashlib.sha256().digest_size


@dataclass(frozen=True)
class CacheEntry:
    uuid: str
    payload: Any
    stored_at: float
    token: str

    def to_dict(self) -> dict[str, Any]:
        return {"uuid": self.uuid, "payload": self.payload, "stored_at": self.stored_at, "token": self.token}

    @classmethod
    def from_dict(cls, raw: Any) -> CacheEntry | None:
        if not isinstance(raw, dict):
            return None
        try:
            return cls(
                uuid=str(raw["uuid"]),
                payload=raw["payload"],
                stored_at=float(raw["stored_at"]),
                token=str(raw["token"]),
            )
        except (KeyError, TypeError, ValueError):
            return None


class CookieCacheBackend:
    """
    Keeps cache values in browser cookies.

    Each value is JSON with an HMAC-SHA256 signature prepended, keyed by the
    broker secret and bound to the cookie name, then base64url-wrapped. A
    value that fails verification reads as absent, so a forged or
    transplanted cookie only ever causes a refetch.

    Suitable for small identity payloads only; browsers cap cookies at ~4 KB.
    """

    def __init__(self, cookies: CookieStore, max_age: int, secret: str) -> None:
        if not secret:
            raise ValueError("CookieCacheBackend requires a signing secret")
        self._cookies = cookies
        self._max_age = max_age
        self._secret = secret.encode("utf-8")

    def _sign(self, key: str, data: bytes) -> bytes:
        return hmac.new(self._secret, key.encode("utf-8") + b"\0" + data, hashlib.sha256).digest()

    def get(self, key: str) -> Any | None:
        raw = self._cookies.get(key)
        if not raw:
            return None
        try:
            padding = "=" * (-len(raw) % 4)
            decoded = base64.urlsafe_b64decode(raw + padding)
        except ValueError:
            logger.debug("Ignoring unreadable identity cookie key=%s", key)
            return None

        signature, data = decoded[:_SIGNATURE_SIZE], decoded[_SIGNATURE_SIZE:]
        if len(signature) != _SIGNATURE_SIZE or not hmac.compare_digest(signature, self._sign(key, data)):
            logger.warning("Ignoring identity cookie with bad signature key=%s", key)
            return None
        try:
            return json.loads(data)
        except ValueError:
            logger.debug("Ignoring unreadable identity cookie key=%s", key)
            return None

    def set(self, key: str, value: Any) -> None:
        data = json.dumps(value, separators=(",", ":")).encode("utf-8")
        encoded = base64.urlsafe_b64encode(self._sign(key, data) + data).rstrip(b"=").decode("ascii")
        self._cookies.set(key, encoded, max_age=self._max_age, path="/")

    def delete(self, key: str) -> None:
        self._cookies.clear(key, path="/")


class IdentityCache:
    def __init__(
        self,
        backend: SessionStore,
        broker_id: str,
        token_getter: Callable[[], str | None],
        ttl: int,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._backend = backend
        self._suffix = re.sub(r"[_\W]+", "_", broker_id.lower())
        self._token_getter = token_getter
        self._ttl = ttl
        self._clock = clock

    @property
    def uuid_key(self) -> str:
        return f"sso_uuid_{self._suffix}"

    def entry_key(self, uuid: str) -> str:
        return f"sso_user_{uuid}"

    def bound_uuid(self) -> str | None:
        value = self._backend.get(self.uuid_key)
        return str(value) if value else None

    def get(self) -> Any | None:
        token = self._token_getter()
        if not token:
            return None
        uuid = self.bound_uuid()
        if not uuid:
            return None

        entry = CacheEntry.from_dict(self._backend.get(self.entry_key(uuid)))
        if entry is None:
            # dangling uuid: drop it so the next fetch starts clean
            self.clear()
            return None
        if entry.token != token:
            logger.debug("Cached identity belongs to another token; dropping")
            self.clear()
            return None
        if self._clock() - entry.stored_at >= self._ttl:
            logger.debug("Cached identity expired")
            self.clear()
            return None
        return entry.payload

    def put(self, payload: Any) -> bool:
        """Store ``payload`` under its ``uuid``. Payloads without one aren't cached."""
        token = self._token_getter()
        uuid = payload.get("uuid") if isinstance(payload, dict) else None
        if not token or not uuid:
            return False
        uuid = str(uuid)
        previous = self.bound_uuid()
        if previous and previous != uuid:
            self._backend.delete(self.entry_key(previous))
        entry = CacheEntry(uuid=uuid, payload=payload, stored_at=self._clock(), token=token)
        self._backend.set(self.entry_key(uuid), entry.to_dict())
        self._backend.set(self.uuid_key, uuid)
        return True

    def get_or_fetch(self, fetch: Callable[[], Any]) -> Any:
        cached = self.get()
        if cached is not None:
            logger.debug("Identity cache hit")
            return cached
        logger.debug("Identity cache miss; fetching from SSO server")
        payload = fetch()
        if payload:
            self.put(payload)
        return payload

    def update(self, payload: Any) -> Any | None:
        """Replace the cached identity, only if one is currently cached."""
        if self.get() is None:
            return None
        return payload if self.put(payload) else None

    def clear(self) -> None:
        uuid = self.bound_uuid()
        if uuid:
            self._backend.delete(self.entry_key(uuid))
        self._backend.delete(self.uuid_key)
