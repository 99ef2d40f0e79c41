"""
Tests for the SQLAlchemy-backed visitor session store.

Uses db_session fixture: in-memory SQLite, rolled back after each test.
"""
from __future__ import annotations

from sqlalchemy import select

from ssobroker.broker.stores import MemoryCookieStore
from ssobroker.models.session import SessionEntry
from ssobroker.security.session_store import SqlSessionStore


def test_get_without_cookie_creates_nothing(db_session):
    cookies = MemoryCookieStore()
    store = SqlSessionStore(db_session, cookies, "broker_session", 600)

    assert store.get("anything") is None
    store.delete("anything")
    assert cookies.writes == []


def test_set_creates_cookie_and_row(db_session):
    cookies = MemoryCookieStore()
    store = SqlSessionStore(db_session, cookies, "broker_session", 600)

    store.set("sso_uuid_demo", "u-1")
    store.set("sso_user_u-1", {"uuid": "u-1", "roles": ["a"]})

    assert len(cookies.writes) == 1
    assert cookies.writes[0].max_age == 600
    assert store.get("sso_uuid_demo") == "u-1"
    assert store.get("sso_user_u-1") == {"uuid": "u-1", "roles": ["a"]}


def test_set_overwrites(db_session):
    store = SqlSessionStore(db_session, MemoryCookieStore(), "broker_session", 600)
    store.set("k", 1)
    store.set("k", 2)

    assert store.get("k") == 2
    rows = db_session.scalars(select(SessionEntry).where(SessionEntry.name == "k")).all()
    assert len(rows) == 1


def test_visitors_are_isolated(db_session):
    first = SqlSessionStore(db_session, MemoryCookieStore({"broker_session": "visitor-a"}), "broker_session", 600)
    second = SqlSessionStore(db_session, MemoryCookieStore({"broker_session": "visitor-b"}), "broker_session", 600)

    first.set("k", "a")
    assert second.get("k") is None


def test_delete(db_session):
    store = SqlSessionStore(db_session, MemoryCookieStore(), "broker_session", 600)
    store.set("k", "v")
    store.delete("k")
    assert store.get("k") is None
