"""
Authenticated HTTP calls to the SSO server command endpoint.

Every call carries ``Authorization: Bearer <session id>`` where the session id
is derived from the broker token and shared secret. The server answers JSON
only; anything else is a protocol error. There is no retry: a failure is
raised straight to the caller.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any
from urllib.parse import urlencode

import requests

from .checksum import session_id
from .config import BrokerConfig
from .errors import NotAttached, ProtocolError, ServerError, TransportError
from .token_store import TokenStore

logger = logging.getLogger(__name__)

JSON_CONTENT_TYPE = "application/json"
FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


def build_url(base: str, command: str, params: Mapping[str, Any] | str | None = None) -> str:
    query = urlencode({"command": command})
    if isinstance(params, str):
        if params:
            query = f"{query}&{params.lstrip('?&')}"
    elif params:
        extra = {k: v for k, v in params.items() if k != "command"}
        if extra:
            query = f"{query}&{urlencode(extra, doseq=True)}"
    return f"{base}?{query}"


def _media_type(response: requests.Response) -> str:
    raw = response.headers.get("Content-Type", "")
    return raw.split(";", 1)[0].strip().lower()


def _error_message(body: Any, raw: str) -> str:
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return raw


class RequestClient:
    def __init__(self, config: BrokerConfig, tokens: TokenStore) -> None:
        self._config = config
        self._tokens = tokens

    def session_id(self) -> str | None:
        token = self._tokens.get()
        if not token:
            return None
        return session_id(self._config.broker_id, token, self._config.secret)

    def request(self, method: str, command: str, data: Mapping[str, Any] | str | None = None) -> Any:
        """
        Execute ``command`` on the SSO server and return the decoded JSON body.

        For POST, ``data`` is the request body (form-encoded mapping or raw
        string); for GET/DELETE it is appended to the query string.
        """
        sid = self.session_id()
        if sid is None:
            raise NotAttached("No token")

        method = method.upper()
        url = build_url(self._config.url, command, None if method == "POST" else data)
        headers = {"Accept": JSON_CONTENT_TYPE, "Authorization": f"Bearer {sid}"}
        body = data if method == "POST" and data else None
        if isinstance(body, str):
            headers["Content-Type"] = FORM_CONTENT_TYPE

        try:
            response = requests.request(
                method,
                url,
                headers=headers,
                data=body,
                timeout=self._config.timeout,
                verify=self._config.verify_tls,
                allow_redirects=False,
            )
        except requests.RequestException as e:
            logger.warning("SSO request failed command=%s error=%s", command, type(e).__name__)
            raise TransportError(f"Server request failed: {e}") from e

        return self._handle(command, response)

    def _handle(self, command: str, response: requests.Response) -> Any:
        media_type = _media_type(response)
        if media_type != JSON_CONTENT_TYPE:
            logger.warning("SSO non-JSON response command=%s status=%s type=%s", command, response.status_code, media_type)
            raise ProtocolError(
                f"Expected {JSON_CONTENT_TYPE} response, got {media_type or 'nothing'}",
                status=response.status_code,
            )

        raw = response.text
        try:
            body = json.loads(raw) if raw else None
        except ValueError as e:
            raise ProtocolError("Invalid JSON in response", status=response.status_code) from e

        status = response.status_code
        if status == 403:
            logger.info("SSO server rejected token command=%s; clearing", command)
            self._tokens.clear()
            raise NotAttached(_error_message(body, raw), status=status)
        if status >= 400:
            logger.warning("SSO server error command=%s status=%s", command, status)
            raise ServerError(_error_message(body, raw), status=status)
        return body


def probe_alive(config: BrokerConfig) -> bool:
    """
    HEAD the configured health path. 404 or a connection failure means the
    SSO server is not alive; any other status counts as alive.
    """
    try:
        response = requests.head(
            config.health_url,
            timeout=(config.probe_timeout, config.probe_timeout),
            verify=config.verify_tls,
            allow_redirects=False,
        )
    except requests.RequestException as e:
        logger.warning("SSO liveness probe failed url=%s error=%s", config.health_url, type(e).__name__)
        return False

    if response.status_code == 404:
        logger.warning("SSO liveness probe returned 404 url=%s", config.health_url)
        return False
    logger.debug("SSO liveness probe ok status=%s", response.status_code)
    return True
