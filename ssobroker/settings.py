from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Host application settings.

    Notes:
    - Broker identity (SSO_SERVER, SSO_BROKER_ID, SSO_BROKER_SECRET) is read by
      ``BrokerConfig.from_environ()``, not here.
    - Everything below can be overridden with ``APP_*`` env vars.
    """

    model_config = SettingsConfigDict(env_prefix="APP_", extra="ignore")

    db_url: str | None = None
    broker_config_path: str | None = None
    log_level: str = "INFO"

    identity_cache_backend: Literal["session", "cookie", "memory"] = "session"
    session_cookie_name: str = "broker_session"
    session_cookie_lifetime: int = 7200

    redirect_encoding: Literal["base64url", "shift"] = "base64url"
    redirect_encoding_key: str | None = None

    def resolved_db_url(self) -> str:
        if self.db_url:
            return self.db_url

        repo_root = Path(__file__).resolve().parents[1]
        db_path = repo_root / "broker.db"
        return f"sqlite:///{db_path}"

    def resolved_broker_config_path(self) -> Path:
        if self.broker_config_path:
            return Path(self.broker_config_path)

        repo_root = Path(__file__).resolve().parents[1]
        return repo_root / "config" / "broker_config.yaml"


@lru_cache
def get_settings() -> Settings:
    return Settings()
