"""Async Postgres connection pool.

The bot and query pipeline use an async pool (psycopg3) for efficient DB access. Every new
connection is configured with the session timezone from settings.
"""

from __future__ import annotations

from psycopg_pool import AsyncConnectionPool

from src.db.connection import require_database_url
from src.db.session import timezone_configurer


def create_pool(
        database_url: str | None = None,
        *,
        timezone: str = "UTC",
        min_size: int = 1,
        max_size: int | None = None,
        timeout: float = 30.0,
) -> AsyncConnectionPool:
    """Create an async DB pool.

    Notes:
        - The returned pool is created with `open=False`. Call `await pool.open()` at startup.
        - If `database_url` is omitted, `DATABASE_URL` is read from the environment.
    """

    if database_url is None:
        database_url = require_database_url()

    return AsyncConnectionPool(
        conninfo=database_url,
        min_size=min_size,
        max_size=max_size,
        timeout=timeout,
        open=False,
        configure=timezone_configurer(timezone),
    )
