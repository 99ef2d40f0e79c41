from __future__ import annotations

from pydantic import BaseModel


class BrokerStatusOut(BaseModel):
    broker: str
    attached: bool
    state: str


class SsoErrorOut(BaseModel):
    error: str | None = None
