"""
Pytest fixtures for the test suite.

Host tests run against a throwaway SQLite file (set before ``ssobroker`` is
imported). Session-store tests use an in-memory engine and a session that
rolls back after each test.
"""
from __future__ import annotations

import json
import os
import tempfile
from unittest.mock import MagicMock

os.environ.setdefault("APP_DB_URL", f"sqlite:///{os.path.join(tempfile.mkdtemp(), 'test_broker.db')}")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from ssobroker.broker import BrokerConfig


TEST_DB_URL = "sqlite:///:memory:"
SSO_URL = "http://sso.example.com/api"


@pytest.fixture
def config() -> BrokerConfig:
    return BrokerConfig(url=SSO_URL, broker_id="demo", secret="s3cr3t")


def _json_response(status: int, body, content_type: str = "application/json") -> MagicMock:
    """Stand-in for ``requests.Response``."""
    response = MagicMock()
    response.status_code = status
    response.headers = {"Content-Type": content_type}
    response.text = body if isinstance(body, str) else json.dumps(body)
    return response


@pytest.fixture
def json_response():
    return _json_response


@pytest.fixture
def engine():
    """Create a fresh in-memory SQLite engine for each test."""
    return create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        echo=False,
    )


@pytest.fixture
def tables(engine):
    """Create all ORM tables on the test engine."""
    from ssobroker.db.base import Base
    from ssobroker.models import session as _session_models  # noqa: F401

    Base.metadata.create_all(bind=engine)
    return engine


@pytest.fixture
def db_session(tables):
    """
    Provide a Session bound to the test DB; roll back after each test.
    """
    connection = tables.connect()
    transaction = connection.begin()
    TestSession = sessionmaker(
        bind=connection,
        autocommit=False,
        autoflush=False,
        class_=Session,
    )
    session = TestSession()
    yield session
    session.close()
    transaction.rollback()
    connection.close()
