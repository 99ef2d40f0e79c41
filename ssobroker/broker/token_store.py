"""Broker-local session token, persisted in a browser cookie."""

from __future__ import annotations

import logging
import re
import secrets
from collections.abc import Callable

from .checksum import to_base36
from .stores import CookieStore

logger = logging.getLogger(__name__)

COOKIE_PREFIX = "sso_token_"


def cookie_name(broker_id: str) -> str:
    """
    ``sso_token_<broker>`` with the broker id lowercased and runs of
    underscores / non-word characters collapsed to ``_``, so several brokers
    can share a domain.
    """
    return COOKIE_PREFIX + re.sub(r"[_\W]+", "_", broker_id.lower())


def new_token() -> str:
    # 128 random bits, base 36 (about 25 chars)
    return to_base36(int(secrets.token_hex(16), 16))


class TokenStore:
    """
    Creates, reads and revokes the token for one broker.

    At most one live token exists per (broker id, browser): ``generate()``
    is a no-op once a token is known. Callbacks registered with
    ``on_clear`` run after the cookie is revoked (used to drop cached identity).
    """

    def __init__(
        self,
        cookies: CookieStore,
        broker_id: str,
        lifetime: int,
        token_factory: Callable[[], str] = new_token,
    ) -> None:
        self._cookies = cookies
        self._name = cookie_name(broker_id)
        self._lifetime = lifetime
        self._token_factory = token_factory
        self._token: str | None = cookies.get(self._name)
        self._clear_hooks: list[Callable[[], None]] = []

    @property
    def name(self) -> str:
        return self._name

    def get(self) -> str | None:
        return self._token

    def generate(self) -> str:
        if self._token:
            return self._token
        self._token = self._token_factory()
        self._cookies.set(self._name, self._token, max_age=self._lifetime, path="/")
        logger.debug("Generated SSO token cookie=%s", self._name)
        return self._token

    def on_clear(self, hook: Callable[[], None]) -> None:
        self._clear_hooks.append(hook)

    def clear(self) -> None:
        self._cookies.clear(self._name, path="/")
        self._token = None
        for hook in self._clear_hooks:
            hook()
