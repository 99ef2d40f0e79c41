"""Broker configuration. Identity values come from the SSO server operator."""

from __future__ import annotations

import os
from dataclasses import dataclass

from .errors import ConfigurationError


def _getenv(key: str, default: str | None = None) -> str | None:
    return os.environ.get(key, default)


def _getenv_int(key: str, default: int) -> int:
    raw = os.environ.get(key)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


@dataclass(frozen=True)
class BrokerConfig:
    """
    Broker identity plus protocol tunables.

    Required:
        SSO_SERVER: URL of the SSO server command endpoint.
        SSO_BROKER_ID: Broker identifier issued by the SSO operator.
        SSO_BROKER_SECRET: Shared secret issued by the SSO operator.

    Optional:
        SSO_COOKIE_LIFETIME: Token cookie Max-Age in seconds (default 7200).
        SSO_HEALTH_PATH: Path probed before attaching (default ``/login``).
        SSO_PROBE_TIMEOUT: Connect timeout of the liveness probe (default 5).
        SSO_CONNECT_TIMEOUT / SSO_READ_TIMEOUT: Command request timeouts (15 / 30).
        SSO_IDENTITY_CACHE_TTL: Seconds a cached user identity stays valid (7200).
        SSO_VERIFY_TLS: Set to 0 or false to skip certificate verification.
    """

    url: str
    broker_id: str
    secret: str
    cookie_lifetime: int = 7200
    health_path: str = "/login"
    probe_timeout: int = 5
    connect_timeout: int = 15
    read_timeout: int = 30
    identity_cache_ttl: int = 7200
    verify_tls: bool = True

    def __post_init__(self) -> None:
        if not self.url or not self.url.strip():
            raise ConfigurationError("SSO server URL not specified")
        if not self.broker_id or not self.broker_id.strip():
            raise ConfigurationError("SSO broker id not specified")
        if not self.secret or not self.secret.strip():
            raise ConfigurationError("SSO broker secret not specified")
        # frozen: normalize through object.__setattr__
        object.__setattr__(self, "url", self.url.strip().rstrip("/"))
        object.__setattr__(self, "broker_id", self.broker_id.strip())

    @property
    def health_url(self) -> str:
        path = self.health_path if self.health_path.startswith("/") else f"/{self.health_path}"
        return f"{self.url}{path}"

    @property
    def timeout(self) -> tuple[int, int]:
        """(connect, read) tuple as accepted by ``requests``."""
        return (self.connect_timeout, self.read_timeout)

    def __repr__(self) -> str:
        return f"BrokerConfig(url={self.url!r}, broker_id={self.broker_id!r}, secret='***')"

    @classmethod
    def from_environ(cls) -> BrokerConfig:
        return cls(
            url=_getenv("SSO_SERVER", "") or "",
            broker_id=_getenv("SSO_BROKER_ID", "") or "",
            secret=_getenv("SSO_BROKER_SECRET", "") or "",
            cookie_lifetime=_getenv_int("SSO_COOKIE_LIFETIME", 7200),
            health_path=_getenv("SSO_HEALTH_PATH", "/login") or "/login",
            probe_timeout=_getenv_int("SSO_PROBE_TIMEOUT", 5),
            connect_timeout=_getenv_int("SSO_CONNECT_TIMEOUT", 15),
            read_timeout=_getenv_int("SSO_READ_TIMEOUT", 30),
            identity_cache_ttl=_getenv_int("SSO_IDENTITY_CACHE_TTL", 7200),
            verify_tls=(_getenv("SSO_VERIFY_TLS", "true") or "").strip().lower() not in ("0", "false", "no"),
        )
