"""Tests for operation-name to command mapping."""

import pytest

from ssobroker.broker.commands import Command, dispatch, resolve, split_words


@pytest.mark.parametrize(
    "operation, method, command",
    [
        ("getUserInfo", "GET", "user-info"),
        ("deleteSession", "DELETE", "session"),
        ("doSomething", "POST", "do-something"),
        ("login", "POST", "login"),
        ("get", "POST", "get"),
        ("get_user_info", "GET", "user-info"),
        ("getOAuth2Token", "GET", "oauth2-token"),
    ],
)
def test_resolve(operation, method, command):
    assert resolve(operation) == (method, command)


def test_split_words():
    assert split_words("getUserInfo") == ["get", "user", "info"]


def test_resolve_empty_raises():
    with pytest.raises(ValueError):
        resolve("")


def test_dispatch_keyword_params():
    cmd = dispatch("getOrders", status="open", page=2)
    assert cmd == Command(method="GET", name="orders", params={"status": "open", "page": 2})


def test_dispatch_positional_params():
    cmd = dispatch("doSomething", {"a": 1}, "x", b=2)
    assert cmd.method == "POST"
    assert cmd.params == {"a": 1, "1": "x", "b": 2}


def test_dispatch_raw_string_body():
    assert dispatch("doSomething", "a=1&b=2").params == "a=1&b=2"


def test_dispatch_without_params():
    assert dispatch("deleteSession").params is None


def test_command_rejects_unknown_method():
    with pytest.raises(ValueError):
        Command(method="PATCH", name="x")
    assert Command(method="get", name="x").method == "GET"
