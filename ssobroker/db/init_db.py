from __future__ import annotations

from ssobroker.db.base import Base
from ssobroker.db.session import engine
from ssobroker.models import session as _session_models  # noqa: F401  (register tables)


def init_db() -> None:
    """Create the visitor session table if it doesn't exist."""

    Base.metadata.create_all(bind=engine)
