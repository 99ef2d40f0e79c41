"""
Attach handshake: link the broker token to the visitor's session at the SSO
server.

    Unattached --attach()--> Attaching (307 to server) --server redirects back--> Attached
    Attached --clear()--> Unattached

The handshake is fail-open: when the liveness probe says the server is down,
``attach()`` returns quietly and the host keeps serving unauthenticated pages.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from enum import Enum
from typing import Any
from urllib.parse import urlencode

from .checksum import attach_checksum
from .client import probe_alive
from .commands import KnownCommand
from .config import BrokerConfig
from .errors import AttachRedirect
from .stores import RequestContext, current_url
from .token_store import TokenStore

logger = logging.getLogger(__name__)

_PROTOCOL_KEYS = frozenset({"command", "broker", "token", "checksum"})
# Only the broker decides where the server sends the browser back to.
_NO_PASSTHROUGH = _PROTOCOL_KEYS | {"return_url"}


class AttachState(str, Enum):
    UNATTACHED = "unattached"
    ATTACHING = "attaching"
    ATTACHED = "attached"


class AttachProtocol:
    def __init__(
        self,
        config: BrokerConfig,
        tokens: TokenStore,
        context: RequestContext | None = None,
        probe: Callable[[BrokerConfig], bool] = probe_alive,
    ) -> None:
        self._config = config
        self._tokens = tokens
        self._context = context
        self._probe = probe
        self._redirecting = False

    @property
    def state(self) -> AttachState:
        if self._redirecting:
            return AttachState.ATTACHING
        return AttachState.ATTACHED if self.is_attached() else AttachState.UNATTACHED

    def is_attached(self) -> bool:
        return self._tokens.get() is not None

    def attach_url(self, params: Mapping[str, Any] | None = None) -> str:
        """
        Build the attach URL, generating a token if there is none yet.

        Query parameters of the current request are passed through, but never
        override the protocol keys or caller-supplied ``params`` and never
        supply ``return_url``.
        """
        token = self._tokens.generate()
        data: dict[str, Any] = {
            "command": KnownCommand.ATTACH.value,
            "broker": self._config.broker_id,
            "token": token,
            "checksum": attach_checksum(token, self._config.secret),
        }
        for key, value in (params or {}).items():
            if key not in _PROTOCOL_KEYS and value is not None:
                data[key] = value
        if self._context is not None:
            for key, value in self._context.query.items():
                if key not in _NO_PASSTHROUGH:
                    data.setdefault(key, value)
        return f"{self._config.url}?{urlencode(data, doseq=True)}"

    def attach(self, return_url: str | bool | None = None, params: Mapping[str, Any] | None = None) -> None:
        """
        Redirect the browser to the SSO server unless already attached.

        ``return_url=True`` means "come back to the current page". Raises
        ``AttachRedirect`` to end the request; returns ``None`` when there is
        nothing to do or the server is unreachable.
        """
        if self.is_attached():
            return

        if return_url is True:
            if self._context is None:
                raise ValueError("return_url=True requires a request context")
            return_url = current_url(self._context)

        if not self._probe(self._config):
            logger.warning("SSO server not alive; continuing unattached")
            return

        merged: dict[str, Any] = {"return_url": return_url or None}
        merged.update(params or {})
        url = self.attach_url(merged)
        self._redirecting = True
        logger.info("Redirecting to SSO server to attach broker=%s", self._config.broker_id)
        raise AttachRedirect(url, status_code=307)
