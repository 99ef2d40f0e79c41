"""Tests for the request client and liveness probe (requests mocked)."""

from unittest.mock import patch
from urllib.parse import parse_qs, urlsplit

import pytest
import requests

from ssobroker.broker.checksum import session_id
from ssobroker.broker.client import RequestClient, build_url, probe_alive
from ssobroker.broker.errors import NotAttached, ProtocolError, ServerError, TransportError
from ssobroker.broker.stores import MemoryCookieStore
from ssobroker.broker.token_store import TokenStore


def _client(config, token="abc123"):
    cookies = MemoryCookieStore({"sso_token_demo": token} if token else {})
    tokens = TokenStore(cookies, config.broker_id, config.cookie_lifetime)
    return RequestClient(config, tokens), tokens, cookies


def test_build_url():
    assert build_url("http://sso", "user-info") == "http://sso?command=user-info"
    assert build_url("http://sso", "orders", {"page": 2, "command": "x"}) == "http://sso?command=orders&page=2"
    assert build_url("http://sso", "orders", "page=2") == "http://sso?command=orders&page=2"


@patch("ssobroker.broker.client.requests.request")
def test_request_requires_token(mock_request, config):
    client, _, _ = _client(config, token=None)
    with pytest.raises(NotAttached, match="No token"):
        client.request("GET", "userInfo")
    mock_request.assert_not_called()


@patch("ssobroker.broker.client.requests.request")
def test_get_request_sends_session_id(mock_request, config, json_response):
    mock_request.return_value = json_response(200, {"uuid": "u-1"})
    client, _, _ = _client(config)

    assert client.request("GET", "userInfo", {"x": "1"}) == {"uuid": "u-1"}

    args, kwargs = mock_request.call_args
    assert args[0] == "GET"
    query = parse_qs(urlsplit(args[1]).query)
    assert query == {"command": ["userInfo"], "x": ["1"]}
    assert kwargs["headers"]["Accept"] == "application/json"
    assert kwargs["headers"]["Authorization"] == "Bearer " + session_id("demo", "abc123", "s3cr3t")
    assert kwargs["data"] is None
    assert kwargs["timeout"] == (15, 30)


@patch("ssobroker.broker.client.requests.request")
def test_post_request_sends_body(mock_request, config, json_response):
    mock_request.return_value = json_response(200, {"ok": True})
    client, _, _ = _client(config)

    client.request("POST", "login", {"username": "alice", "password": "pw"})

    args, kwargs = mock_request.call_args
    assert args[1] == "http://sso.example.com/api?command=login"
    assert kwargs["data"] == {"username": "alice", "password": "pw"}


@patch("ssobroker.broker.client.requests.request")
def test_403_clears_token_and_raises_not_attached(mock_request, config, json_response):
    mock_request.return_value = json_response(403, {"error": "expired"})
    client, tokens, cookies = _client(config)

    with pytest.raises(NotAttached) as exc_info:
        client.request("GET", "userInfo")

    assert exc_info.value.message == "expired"
    assert exc_info.value.status == 403
    assert tokens.get() is None
    assert cookies.get("sso_token_demo") is None


@patch("ssobroker.broker.client.requests.request")
def test_500_raises_server_error(mock_request, config, json_response):
    mock_request.return_value = json_response(500, {"error": "db down"})
    client, tokens, _ = _client(config)

    with pytest.raises(ServerError) as exc_info:
        client.request("GET", "userInfo")

    assert exc_info.value.status == 500
    assert exc_info.value.message == "db down"
    assert tokens.get() == "abc123"


@patch("ssobroker.broker.client.requests.request")
def test_error_without_error_field_uses_raw_body(mock_request, config, json_response):
    mock_request.return_value = json_response(400, '{"detail": "bad"}')
    client, _, _ = _client(config)

    with pytest.raises(ServerError) as exc_info:
        client.request("POST", "do-something")
    assert exc_info.value.message == '{"detail": "bad"}'


@patch("ssobroker.broker.client.requests.request")
def test_non_json_content_type_is_protocol_error(mock_request, config, json_response):
    mock_request.return_value = json_response(200, "<html></html>", content_type="text/html")
    client, _, _ = _client(config)
    with pytest.raises(ProtocolError, match="text/html"):
        client.request("GET", "userInfo")


@patch("ssobroker.broker.client.requests.request")
def test_non_json_content_type_wins_over_403(mock_request, config, json_response):
    mock_request.return_value = json_response(403, "Forbidden", content_type="text/plain")
    client, tokens, _ = _client(config)
    with pytest.raises(ProtocolError):
        client.request("GET", "userInfo")
    assert tokens.get() == "abc123"


@patch("ssobroker.broker.client.requests.request")
def test_content_type_parameters_are_ignored(mock_request, config, json_response):
    mock_request.return_value = json_response(200, {"a": 1}, content_type="application/json; charset=utf-8")
    client, _, _ = _client(config)
    assert client.request("GET", "userInfo") == {"a": 1}


@patch("ssobroker.broker.client.requests.request")
def test_invalid_json_is_protocol_error(mock_request, config, json_response):
    mock_request.return_value = json_response(200, "{not json")
    client, _, _ = _client(config)
    with pytest.raises(ProtocolError):
        client.request("GET", "userInfo")


@patch("ssobroker.broker.client.requests.request")
def test_connection_failure_is_transport_error(mock_request, config):
    mock_request.side_effect = requests.ConnectionError("connection refused")
    client, _, _ = _client(config)
    with pytest.raises(TransportError, match="connection refused"):
        client.request("GET", "userInfo")


@patch("ssobroker.broker.client.requests.head")
def test_probe_alive_statuses(mock_head, config, json_response):
    mock_head.return_value = json_response(200, "")
    assert probe_alive(config) is True
    mock_head.return_value = json_response(405, "")
    assert probe_alive(config) is True
    mock_head.return_value = json_response(404, "")
    assert probe_alive(config) is False

    args, kwargs = mock_head.call_args
    assert args[0] == "http://sso.example.com/api/login"
    assert kwargs["timeout"] == (5, 5)


@patch("ssobroker.broker.client.requests.head")
def test_probe_connection_failure(mock_head, config):
    mock_head.side_effect = requests.Timeout("timed out")
    assert probe_alive(config) is False


@patch("ssobroker.broker.client.requests.request")
def test_raw_string_post_body_is_form_encoded(mock_request, config, json_response):
    mock_request.return_value = json_response(200, {"ok": True})
    client, _, _ = _client(config)

    client.request("POST", "do-something", "a=1&b=2")

    _, kwargs = mock_request.call_args
    assert kwargs["data"] == "a=1&b=2"
    assert kwargs["headers"]["Content-Type"] == "application/x-www-form-urlencoded"


@patch("ssobroker.broker.client.requests.request")
def test_get_request_has_no_content_type(mock_request, config, json_response):
    mock_request.return_value = json_response(200, {})
    client, _, _ = _client(config)
    client.request("GET", "user-info", "page=2")
    assert "Content-Type" not in mock_request.call_args[1]["headers"]
