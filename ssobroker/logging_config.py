from __future__ import annotations

import logging


def configure_app_logging(level: str = "INFO") -> None:
    """
    Set levels for the ``ssobroker`` logger tree.

    Uvicorn already configures handlers; set ``APP_LOG_LEVEL=DEBUG`` to see
    identity-cache hits and liveness probe details.
    """

    normalized = level.upper()
    logging.getLogger("ssobroker").setLevel(normalized)
    logging.getLogger("ssobroker").propagate = True
