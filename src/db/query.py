"""Database execution collaborator.

The query compiler depends only on the `QueryExecutor` capability: run one parameterized statement
and return its rows as dicts. Nothing here accepts raw SQL built from user input; the SQL text
always comes from the allowlisting builder and values travel separately in `params`.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, LiteralString, Protocol, cast

from psycopg.rows import dict_row
from psycopg_pool import AsyncConnectionPool


class QueryExecutor(Protocol):
    """Capability: `execute(text, params) -> rows`."""

    async def execute(self, sql: str, params: Sequence[Any]) -> list[dict[str, Any]]:
        ...


class PoolQueryExecutor:
    """`QueryExecutor` over an open `AsyncConnectionPool`.

    Contract:
        - The query must be parameterized; all values are passed via `params`.
        - DB errors are not swallowed (the compiler decides how to report them).
    """

    def __init__(self, pool: AsyncConnectionPool) -> None:
        self._pool = pool

    async def execute(self, sql: str, params: Sequence[Any]) -> list[dict[str, Any]]:
        async with self._pool.connection() as conn:
            async with conn.cursor(row_factory=dict_row) as cur:
                await cur.execute(cast(LiteralString, sql), tuple(params))
                return await cur.fetchall()
