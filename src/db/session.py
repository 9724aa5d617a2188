"""DB session configuration helpers.

Date filters are compared as calendar days, so every DB session runs in the configured timezone
(`DB_TIMEZONE`, default UTC). The zone name is always passed as a bound parameter.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable

from psycopg import AsyncConnection


async def ensure_timezone(conn: AsyncConnection, timezone: str = "UTC") -> None:
    """Set the current Postgres session timezone."""

    async with conn.cursor() as cur:
        await cur.execute("SELECT set_config('TimeZone', %s, false)", (timezone,))
    # The statement starts a transaction when autocommit is disabled; commit so the pool doesn't
    # see INTRANS.
    await conn.commit()


def timezone_configurer(timezone: str = "UTC") -> Callable[[AsyncConnection], Awaitable[None]]:
    """Pool `configure=` callback that applies `timezone` to each new connection."""

    async def configure(conn: AsyncConnection) -> None:
        await ensure_timezone(conn, timezone)

    return configure
