"""
Server-side visitor session store backed by SQLAlchemy.

Plays the role of a classic web-framework session: a random key in a cookie
points at rows in ``broker_sessions``. The identity cache uses it as its
default backend.
"""

from __future__ import annotations

import json
import logging
import secrets
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from ssobroker.broker.stores import CookieStore
from ssobroker.models.session import SessionEntry

logger = logging.getLogger(__name__)


class SqlSessionStore:
    """
    ``SessionStore`` over one visitor's rows.

    The visitor cookie is only created on the first ``set()``, so read-only
    pages never issue a session cookie.
    """

    def __init__(self, db: Session, cookies: CookieStore, cookie_name: str, lifetime: int) -> None:
        self._db = db
        self._cookies = cookies
        self._cookie_name = cookie_name
        self._lifetime = lifetime

    @property
    def session_key(self) -> str | None:
        return self._cookies.get(self._cookie_name)

    def _ensure_key(self) -> str:
        key = self.session_key
        if not key:
            key = secrets.token_urlsafe(32)
            self._cookies.set(self._cookie_name, key, max_age=self._lifetime, path="/")
        return key

    def _entry(self, key: str, name: str) -> SessionEntry | None:
        return self._db.execute(
            select(SessionEntry).where(SessionEntry.session_key == key, SessionEntry.name == name)
        ).scalar_one_or_none()

    def get(self, name: str) -> Any | None:
        key = self.session_key
        if not key:
            return None
        entry = self._entry(key, name)
        if entry is None:
            return None
        try:
            return json.loads(entry.value)
        except ValueError:
            logger.warning("Dropping unreadable session value name=%s", name)
            return None

    def set(self, name: str, value: Any) -> None:
        key = self._ensure_key()
        encoded = json.dumps(value, separators=(",", ":"))
        entry = self._entry(key, name)
        if entry is None:
            self._db.add(SessionEntry(session_key=key, name=name, value=encoded))
        else:
            entry.value = encoded
        self._db.commit()

    def delete(self, name: str) -> None:
        key = self.session_key
        if not key:
            return
        self._db.execute(delete(SessionEntry).where(SessionEntry.session_key == key, SessionEntry.name == name))
        self._db.commit()
