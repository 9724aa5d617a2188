"""Process-wide logging setup shared by the bot, the CLI and the DB tools.

Log lines are `key=value` diagnostics for operators. They may contain SQL text and bound
parameters, so nothing logged here is ever echoed back to a user.
"""

from __future__ import annotations

import logging
import os

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"

# Third-party loggers that are chatty at INFO.
_QUIET_LOGGERS = ("aiogram.event", "psycopg.pool", "tzlocal")


def configure_logging(level: str | None = None) -> None:
    """Install the root handler once; `level` falls back to `LOG_LEVEL`, then INFO."""

    name = (level or os.getenv("LOG_LEVEL") or "INFO").upper()
    if not isinstance(logging.getLevelName(name), int):
        name = "INFO"
    logging.basicConfig(level=name, format=LOG_FORMAT)

    for quiet in _QUIET_LOGGERS:
        logging.getLogger(quiet).setLevel(logging.WARNING)
