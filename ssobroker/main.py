from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from urllib.parse import urlencode

from fastapi import Depends, FastAPI, Request
from fastapi.responses import RedirectResponse

from ssobroker.broker import AttachRedirect, BrokerConfig, BrokerError, NotAttached
from ssobroker.db.init_db import init_db
from ssobroker.logging_config import configure_app_logging
from ssobroker.routers import account, health
from ssobroker.security.config import load_broker_route_config
from ssobroker.security.dependencies import HostRedirect, enforce_sso
from ssobroker.settings import get_settings

logger = logging.getLogger(__name__)


def _redirect_with_cookies(request: Request, url: str) -> RedirectResponse:
    response = RedirectResponse(url, status_code=307)
    cookies = getattr(request.state, "sso_cookies", None)
    if cookies is not None:
        cookies.apply(response)
    return response


def create_app(broker_config: BrokerConfig | None = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        settings = get_settings()
        configure_app_logging(settings.log_level)
        logger.info("App startup beginning")

        app.state.broker_config = broker_config or BrokerConfig.from_environ()
        logger.info("Broker configured: %r", app.state.broker_config)
        app.state.route_config = load_broker_route_config(settings.resolved_broker_config_path())
        logger.info("Loaded broker route config: %s", settings.resolved_broker_config_path())
        init_db()
        logger.info("Database initialized (session table ensured)")

        yield

    # Global dependency: SSO rules apply with zero changes to route handlers.
    app = FastAPI(dependencies=[Depends(enforce_sso)], lifespan=lifespan)

    @app.exception_handler(AttachRedirect)
    async def attach_redirect_handler(request: Request, exc: AttachRedirect) -> RedirectResponse:
        return _redirect_with_cookies(request, exc.url)

    @app.exception_handler(HostRedirect)
    async def host_redirect_handler(request: Request, exc: HostRedirect) -> RedirectResponse:
        return _redirect_with_cookies(request, exc.url)

    @app.exception_handler(NotAttached)
    async def not_attached_handler(request: Request, exc: NotAttached) -> RedirectResponse:
        route_config = request.app.state.route_config
        if exc.status == 403:
            # Server rejected the token and it was cleared; reloading re-runs attach.
            logger.info("SSO token rejected (%s); reloading path=%s", exc.message, request.url.path)
            return _redirect_with_cookies(request, str(request.url))
        # No local token (e.g. SSO server down, attach skipped): reloading would loop.
        logger.info("Broker not attached; sending to error page path=%s", request.url.path)
        return _redirect_with_cookies(request, f"{route_config.error_path}?{urlencode({'sso_error': exc.message})}")

    @app.exception_handler(BrokerError)
    async def broker_error_handler(request: Request, exc: BrokerError) -> RedirectResponse:
        logger.warning("SSO error kind=%s status=%s path=%s", exc.kind.value, exc.status, request.url.path)
        route_config = request.app.state.route_config
        return _redirect_with_cookies(request, f"{route_config.error_path}?{urlencode({'sso_error': exc.message})}")

    app.include_router(health.router)
    app.include_router(account.router)

    return app


app = create_app()
