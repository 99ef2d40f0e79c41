from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends, Request
from fastapi.responses import RedirectResponse

from ssobroker.broker import Broker
from ssobroker.schemas.account import BrokerStatusOut, SsoErrorOut
from ssobroker.security.cookies import StarletteCookieStore
from ssobroker.security.dependencies import get_broker, get_cookie_store, get_current_user

router = APIRouter(tags=["account"])


def _index_url(request: Request) -> str:
    return str(request.url_for("index"))


@router.get("/", response_model=BrokerStatusOut)
def index(broker: Broker = Depends(get_broker)) -> BrokerStatusOut:
    return BrokerStatusOut(broker=broker.broker_id, attached=broker.is_attached(), state=broker.state.value)


@router.get("/me")
def me(user: Any = Depends(get_current_user)) -> Any:
    return user


@router.get("/login")
def login(
    request: Request,
    broker: Broker = Depends(get_broker),
    cookies: StarletteCookieStore = Depends(get_cookie_store),
) -> RedirectResponse:
    # Already known at the SSO server: go to the profile. Otherwise send the
    # browser to the SSO login page with our session id as ``bid``.
    if broker.is_attached() and broker.get_user_info():
        response = RedirectResponse(str(request.url_for("me")), status_code=303)
    else:
        response = RedirectResponse(broker.login_redirect_url(str(request.url)), status_code=303)
    cookies.apply(response)
    return response


@router.get("/logout")
def logout(
    request: Request,
    broker: Broker = Depends(get_broker),
    cookies: StarletteCookieStore = Depends(get_cookie_store),
) -> RedirectResponse:
    broker.clear_token()
    response = RedirectResponse(broker.logout_redirect_url(_index_url(request)), status_code=303)
    cookies.apply(response)
    return response


@router.get("/error", response_model=SsoErrorOut)
def error(sso_error: str | None = None) -> SsoErrorOut:
    return SsoErrorOut(error=sso_error)


@router.post("/commands/{operation}")
def run_command(
    operation: str,
    params: dict[str, Any] | None = Body(default=None),
    broker: Broker = Depends(get_broker),
) -> Any:
    """Forward any server-defined operation, e.g. ``POST /commands/getOrders``."""
    return broker.call(operation, params or {})
