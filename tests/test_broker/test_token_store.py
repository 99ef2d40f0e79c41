"""Tests for the cookie-bound token store."""

from ssobroker.broker.stores import MemoryCookieStore
from ssobroker.broker.token_store import TokenStore, cookie_name, new_token


def test_cookie_name_normalizes_broker_id():
    assert cookie_name("demo") == "sso_token_demo"
    assert cookie_name("Demo Broker") == "sso_token_demo_broker"
    assert cookie_name("my__app-1") == "sso_token_my_app_1"


def test_new_token_is_random_base36():
    a, b = new_token(), new_token()
    assert a != b
    assert a.isalnum() and a == a.lower()
    assert 20 <= len(a) <= 25


def test_reads_existing_cookie():
    store = TokenStore(MemoryCookieStore({"sso_token_demo": "tok"}), "demo", 7200)
    assert store.get() == "tok"


def test_generate_sets_cookie_once():
    cookies = MemoryCookieStore()
    store = TokenStore(cookies, "demo", 3600, token_factory=lambda: "tok123")

    assert store.get() is None
    assert store.generate() == "tok123"
    assert store.generate() == "tok123"

    assert len(cookies.writes) == 1
    write = cookies.writes[0]
    assert (write.name, write.value, write.max_age, write.path) == ("sso_token_demo", "tok123", 3600, "/")


def test_generate_keeps_existing_token():
    cookies = MemoryCookieStore({"sso_token_demo": "existing"})
    store = TokenStore(cookies, "demo", 3600, token_factory=lambda: "new")
    assert store.generate() == "existing"
    assert cookies.writes == []


def test_clear_is_idempotent_and_runs_hooks():
    cookies = MemoryCookieStore({"sso_token_demo": "tok"})
    store = TokenStore(cookies, "demo", 3600)
    calls = []
    store.on_clear(lambda: calls.append("cleared"))

    store.clear()
    store.clear()

    assert store.get() is None
    assert cookies.get("sso_token_demo") is None
    assert [w.max_age for w in cookies.writes] == [0, 0]
    assert calls == ["cleared", "cleared"]
