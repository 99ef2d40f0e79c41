"""
Broker facade.

One ``Broker`` per inbound request: the host passes the config and the three
capability stores in, nothing is held in module globals.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import Any
from urllib.parse import urlencode

from .attach import AttachProtocol, AttachState
from .checksum import Base64UrlEncoder, RedirectEncoder
from .client import RequestClient, probe_alive
from .commands import Command, KnownCommand, dispatch
from .config import BrokerConfig
from .errors import BrokerError, CommandResult
from .identity_cache import IdentityCache
from .stores import CookieStore, MemorySessionStore, RequestContext, SessionStore
from .token_store import TokenStore, new_token

logger = logging.getLogger(__name__)


class Broker:
    def __init__(
        self,
        config: BrokerConfig,
        cookies: CookieStore,
        cache_backend: SessionStore | None = None,
        context: RequestContext | None = None,
        *,
        probe: Callable[[BrokerConfig], bool] = probe_alive,
        encoder: RedirectEncoder | None = None,
        token_factory: Callable[[], str] = new_token,
    ) -> None:
        self.config = config
        self.tokens = TokenStore(cookies, config.broker_id, config.cookie_lifetime, token_factory)
        self.identity = IdentityCache(
            cache_backend if cache_backend is not None else MemorySessionStore(),
            config.broker_id,
            self.tokens.get,
            config.identity_cache_ttl,
        )
        self.tokens.on_clear(self.identity.clear)
        self.client = RequestClient(config, self.tokens)
        self._attach = AttachProtocol(config, self.tokens, context, probe)
        self._encoder = encoder or Base64UrlEncoder()

    @property
    def broker_id(self) -> str:
        return self.config.broker_id

    @property
    def token(self) -> str | None:
        return self.tokens.get()

    @property
    def state(self) -> AttachState:
        return self._attach.state

    def session_id(self) -> str | None:
        return self.client.session_id()

    # ---- attach -------------------------------------------------------------------

    def is_attached(self) -> bool:
        return self._attach.is_attached()

    def attach(self, return_url: str | bool | None = None, params: Mapping[str, Any] | None = None) -> None:
        self._attach.attach(return_url, params)

    def attach_url(self, params: Mapping[str, Any] | None = None) -> str:
        return self._attach.attach_url(params)

    def clear_token(self) -> None:
        self.tokens.clear()

    # ---- commands -----------------------------------------------------------------

    def request(self, method: str, command: str, data: Mapping[str, Any] | str | None = None) -> Any:
        return self.client.request(method, command, data)

    def invoke(self, command: str | KnownCommand, method: str = "POST", params: Mapping[str, Any] | str | None = None) -> Any:
        name = command.value if isinstance(command, KnownCommand) else command
        return self.execute(Command(method=method, name=name, params=params))

    def execute(self, command: Command) -> Any:
        return self.client.request(command.method, command.name, command.params)

    def call(self, operation: str, *args: Any, **kwargs: Any) -> Any:
        """Generic path: ``broker.call("deleteSession")`` -> ``DELETE session``."""
        return self.execute(dispatch(operation, *args, **kwargs))

    def try_invoke(self, command: str | KnownCommand, method: str = "POST", params: Mapping[str, Any] | str | None = None) -> CommandResult:
        try:
            return CommandResult(value=self.invoke(command, method, params))
        except BrokerError as e:
            return CommandResult(error=e)

    # ---- identity -----------------------------------------------------------------

    def get_user_info(self) -> Any:
        return self.identity.get_or_fetch(lambda: self.request("GET", KnownCommand.USER_INFO.value))

    def update_user_info(self, payload: Any) -> Any | None:
        return self.identity.update(payload)

    def login(self, username: str | None = None, password: str | None = None) -> Any:
        """Log in at the SSO server. Only trusted brokers may pass credentials."""
        data = {k: v for k, v in (("username", username), ("password", password)) if v is not None}
        user = self.request("POST", KnownCommand.LOGIN.value, data)
        self.identity.clear()
        if user:
            self.identity.put(user)
        return user

    def logout(self) -> None:
        """Log out at the SSO server; the local token and cached identity go either way."""
        try:
            self.request("GET", KnownCommand.LOGOUT.value)
        finally:
            self.tokens.clear()

    # ---- sync-login redirects -----------------------------------------------------

    def login_redirect_url(self, redirect_url: str) -> str:
        """SSO login page URL carrying the encoded session id as ``bid``."""
        sid = self.session_id()
        params = {"redirect_url": redirect_url}
        if sid is not None:
            params["bid"] = self._encoder.encode(sid)
        return f"{self.config.url}/login?{urlencode(params)}"

    def logout_redirect_url(self, redirect_url: str) -> str:
        return f"{self.config.url}/logout?{urlencode({'redirect_url': redirect_url})}"
