"""
Maps operation names to SSO server commands.

``getUserInfo`` -> ``GET user-info``, ``deleteSession`` -> ``DELETE session``,
``doSomething`` -> ``POST do-something``. snake_case names (``get_user_info``)
map the same way. Command names aren't checked locally; an unknown command
surfaces as whatever error the server returns.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

HTTP_METHODS = frozenset({"GET", "POST", "DELETE"})

_CASE_BOUNDARY = re.compile(r"([a-z0-9])([A-Z])")


class KnownCommand(str, Enum):
    """Commands the broker itself issues. Other names go through the generic path."""

    ATTACH = "attach"
    LOGIN = "login"
    LOGOUT = "logout"
    USER_INFO = "userInfo"


@dataclass(frozen=True)
class Command:
    method: str
    name: str
    params: Mapping[str, Any] | str | None = field(default=None)

    def __post_init__(self) -> None:
        method = self.method.upper()
        if method not in HTTP_METHODS:
            raise ValueError(f"Unsupported HTTP method: {self.method}")
        object.__setattr__(self, "method", method)


def split_words(operation: str) -> list[str]:
    sentence = _CASE_BOUNDARY.sub(r"\1 \2", operation).replace("_", " ").replace("-", " ")
    return [w for w in sentence.lower().split() if w]


def resolve(operation: str) -> tuple[str, str]:
    """Return ``(method, command)`` for an operation name."""
    words = split_words(operation)
    if not words:
        raise ValueError("Operation name is empty")
    if len(words) > 1 and words[0] in ("get", "delete"):
        return words[0].upper(), "-".join(words[1:])
    return "POST", "-".join(words)


def _params(args: tuple[Any, ...], kwargs: Mapping[str, Any]) -> dict[str, Any] | str | None:
    if len(args) == 1 and isinstance(args[0], str) and not kwargs:
        return args[0]
    params: dict[str, Any] = {}
    for index, arg in enumerate(args):
        if isinstance(arg, Mapping):
            params.update(arg)
        else:
            params[str(index)] = arg
    params.update(kwargs)
    return params or None


def dispatch(operation: str, *args: Any, **kwargs: Any) -> Command:
    """
    Build a ``Command`` from an operation name and its arguments.

    Mapping positionals are merged into the parameters, other positionals are
    keyed by index. A single string positional is sent as-is (raw POST body).
    """
    method, name = resolve(operation)
    return Command(method=method, name=name, params=_params(args, kwargs))
