from __future__ import annotations

import logging
from typing import Any
from urllib.parse import urlencode

from fastapi import Depends, HTTPException, Request, Response, status
from sqlalchemy.orm import Session

from ssobroker.broker import Broker, BrokerConfig, CookieCacheBackend, MemorySessionStore, make_encoder
from ssobroker.broker.stores import SessionStore
from ssobroker.db.session import get_db
from ssobroker.security.config import BrokerRouteConfig
from ssobroker.security.cookies import StarletteCookieStore, StarletteRequestContext
from ssobroker.security.session_store import SqlSessionStore
from ssobroker.settings import Settings, get_settings

logger = logging.getLogger(__name__)


def get_broker_config(request: Request) -> BrokerConfig:
    config = getattr(request.app.state, "broker_config", None)
    if config is None:
        raise RuntimeError("Broker config not loaded. Did app startup run?")
    return config


def get_route_config(request: Request) -> BrokerRouteConfig:
    config = getattr(request.app.state, "route_config", None)
    if config is None:
        raise RuntimeError("Broker route config not loaded. Did app startup run?")
    return config


def get_cookie_store(request: Request, response: Response) -> StarletteCookieStore:
    # Exception handlers replay pending cookie writes from request.state.
    cookies = StarletteCookieStore(request, response)
    request.state.sso_cookies = cookies
    return cookies


def _cache_backend(settings: Settings, cookies: StarletteCookieStore, db: Session, config: BrokerConfig) -> SessionStore:
    if settings.identity_cache_backend == "cookie":
        return CookieCacheBackend(cookies, max_age=config.identity_cache_ttl, secret=config.secret)
    if settings.identity_cache_backend == "memory":
        return MemorySessionStore()
    return SqlSessionStore(db, cookies, settings.session_cookie_name, settings.session_cookie_lifetime)


def get_broker(
    request: Request,
    config: BrokerConfig = Depends(get_broker_config),
    cookies: StarletteCookieStore = Depends(get_cookie_store),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> Broker:
    """A fresh Broker for this request; nothing is shared between requests."""

    return Broker(
        config,
        cookies,
        _cache_backend(settings, cookies, db, config),
        StarletteRequestContext.from_request(request),
        encoder=make_encoder(settings.redirect_encoding, settings.redirect_encoding_key),
    )


def get_current_user(request: Request) -> Any:
    user = getattr(request.state, "user", None)
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")
    return user


class HostRedirect(Exception):
    """
    Ends the request with a 307 to ``url``. Handled in ``main`` so cookie
    writes made earlier in the request are kept on the redirect.
    """

    def __init__(self, url: str) -> None:
        super().__init__(url)
        self.url = url


def enforce_sso(
    request: Request,
    route_config: BrokerRouteConfig = Depends(get_route_config),
    broker: Broker = Depends(get_broker),
) -> None:
    """
    Global SSO dependency, driven by the YAML route rules.

    - ``attach``: make sure the visitor's token is attached (may end the
      request with a 307 to the SSO server).
    - ``require_user``: resolve the user identity, redirect to the login page
      when there is none.
    """

    rule = route_config.match(request.url.path, request.method)
    if not rule.attach and not rule.require_user:
        return

    sso_error = request.query_params.get("sso_error")
    if sso_error:
        logger.info("SSO server reported an error path=%s", request.url.path)
        raise HostRedirect(f"{route_config.error_path}?{urlencode({'sso_error': sso_error})}")

    broker.attach(True)

    if rule.require_user:
        user = broker.get_user_info() if broker.is_attached() else None
        if not user:
            logger.info("No SSO user; redirecting to login path=%s", request.url.path)
            raise HostRedirect(route_config.login_path)
        request.state.user = user
