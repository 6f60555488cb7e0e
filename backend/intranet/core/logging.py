"""Root logger configuration shared by the API and the scripts."""

from __future__ import annotations

import logging

from intranet.core.config import settings

# chatty third-party loggers kept at WARNING unless DEBUG is requested
_QUIET = ("httpx", "httpcore", "sqlalchemy.engine", "passlib", "multipart")


def setup_logging(level: str | None = None) -> None:
    root = logging.getLogger()
    if root.handlers:
        return
    level_name = (level or settings.LOG_LEVEL or "INFO").upper()
    logging.basicConfig(
        level=level_name,
        format="%(asctime)s %(levelname)-7s [%(name)s] %(message)s",
    )
    if level_name != "DEBUG":
        for name in _QUIET:
            logging.getLogger(name).setLevel(logging.WARNING)
