from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field


class DefaultRule(BaseModel):
    attach: bool = False
    require_user: bool = False


class RouteRule(BaseModel):
    path: str
    methods: list[str] = Field(default_factory=lambda: ["GET"])

    attach: bool | None = None
    require_user: bool | None = None

    def normalized_methods(self) -> set[str]:
        return {m.upper() for m in self.methods}


class BrokerConfigModel(BaseModel):
    login_path: str = "/login"
    error_path: str = "/error"
    default: DefaultRule = Field(default_factory=DefaultRule)
    routes: list[RouteRule] = Field(default_factory=list)


@dataclass(frozen=True)
class EffectiveRule:
    """
    Fully-resolved SSO rule (defaults applied) for a particular request.
    """

    attach: bool
    require_user: bool


def _path_template_to_regex(path_template: str) -> re.Pattern[str]:
    # Convert "/orders/{id}" -> r"^/orders/[^/]+$"
    regex = re.sub(r"\{[^/]+\}", r"[^/]+", path_template)
    return re.compile(rf"^{regex}$")


class BrokerRouteConfig:
    """
    Runtime helper around validated config + route matching.
    """

    def __init__(self, model: BrokerConfigModel):
        self.model = model

        self._exact_rules: dict[str, list[RouteRule]] = {}
        for r in self.model.routes:
            self._exact_rules.setdefault(r.path, []).append(r)
        self._compiled_rules = [(_path_template_to_regex(r.path), r) for r in self.model.routes]

    @property
    def login_path(self) -> str:
        return self.model.login_path

    @property
    def error_path(self) -> str:
        return self.model.error_path

    def match(self, path: str, method: str) -> EffectiveRule:
        """
        Find the best matching rule for (path, method), then apply defaults.
        """

        method = method.upper()
        default = self.model.default

        # 1) exact path match
        for candidate in self._exact_rules.get(path, []):
            if method in candidate.normalized_methods():
                return _effective(candidate, default)

        # 2) template match
        for regex, candidate in self._compiled_rules:
            if method not in candidate.normalized_methods():
                continue
            if regex.match(path):
                return _effective(candidate, default)

        # 3) no match -> defaults
        return EffectiveRule(attach=default.attach, require_user=default.require_user)


def _effective(rule: RouteRule, default: DefaultRule) -> EffectiveRule:
    require_user = default.require_user if rule.require_user is None else rule.require_user
    # A user can only be resolved through an attached token.
    inferred_attach = default.attach or require_user

    return EffectiveRule(
        attach=inferred_attach if rule.attach is None else rule.attach,
        require_user=require_user,
    )


def load_broker_route_config(path: Path) -> BrokerRouteConfig:
    raw_text = path.read_text(encoding="utf-8")
    raw: dict[str, Any] = yaml.safe_load(raw_text) or {}

    if "broker" not in raw:
        raise ValueError(f"Missing top-level 'broker' key in config: {path}")

    model = BrokerConfigModel.model_validate(raw["broker"])
    return BrokerRouteConfig(model)
