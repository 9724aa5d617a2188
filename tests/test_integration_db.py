"""Integration tests against a real Postgres database.

These tests exercise the end-to-end pipeline:
rules extractor -> confidence gate -> SQL builder -> psycopg async pool -> QueryResult.

They are skipped if `DATABASE_URL` is not configured or the DB is unreachable.
"""

from __future__ import annotations

import json
import os
import uuid
import warnings
from collections.abc import AsyncIterator, Iterator
from pathlib import Path
from typing import NoReturn

import psycopg
import pytest
import pytest_asyncio
from dotenv import load_dotenv
from psycopg import sql
from psycopg.conninfo import make_conninfo
from psycopg_pool import AsyncConnectionPool

from src.db.connection import connect
from src.db.load_json import insert_dataset, parse_payload
from src.db.migrate import apply_pending
from src.db.pool import create_pool
from src.db.query import PoolQueryExecutor
from src.domains.registry import SchemaRegistry
from src.intent.parser import IntentParser
from src.query.compiler import QueryCompiler
from src.service.controller import SmartQueryController
from src.service.responses import CompleteResponse, ConfirmedResponse

_FIXTURE_PATH = Path(__file__).resolve().parent / "fixtures" / "budget_fixture.json"


def _skip(reason: str) -> NoReturn:
    pytest.skip(reason)


def _require_database_url() -> str:
    load_dotenv(".env")
    database_url = os.getenv("DATABASE_URL")
    if not database_url:
        _skip("DATABASE_URL is not set; skipping integration tests")
    return database_url


@pytest.fixture(scope="session")
def schema_conninfo() -> Iterator[str]:
    """Create an isolated schema, run migrations, load the fixture; yield a conninfo bound to it."""

    database_url = _require_database_url()
    schema = f"it_{uuid.uuid4().hex}"
    tabarim = parse_payload(json.loads(_FIXTURE_PATH.read_text(encoding="utf-8")))

    try:
        conn_ctx = connect(database_url)
    except psycopg.OperationalError as exc:
        _skip(f"Postgres is unreachable ({exc}); skipping integration tests")

    with conn_ctx as conn:
        with conn.transaction():
            conn.execute(sql.SQL("CREATE SCHEMA {}").format(sql.Identifier(schema)), prepare=False)
            conn.execute(
                sql.SQL("SET search_path TO {}").format(sql.Identifier(schema)), prepare=False
            )
        apply_pending(conn)
        insert_dataset(conn, tabarim, truncate=False)

    yield make_conninfo(database_url, options=f"-c search_path={schema}")

    try:
        with psycopg.connect(database_url) as conn:
            with conn.transaction():
                conn.execute(
                    sql.SQL("DROP SCHEMA IF EXISTS {} CASCADE").format(sql.Identifier(schema)),
                    prepare=False,
                )
    except psycopg.Error as exc:
        warnings.warn(f"could not drop test schema {schema}: {exc}", stacklevel=1)


@pytest_asyncio.fixture()
async def pool(schema_conninfo: str) -> AsyncIterator[AsyncConnectionPool]:
    db_pool = create_pool(schema_conninfo, timezone="UTC", max_size=2)
    await db_pool.open(wait=True)
    yield db_pool
    await db_pool.close()


def _controller(pool: AsyncConnectionPool, registry: SchemaRegistry) -> SmartQueryController:
    return SmartQueryController(
        registry, IntentParser(registry), QueryCompiler(registry, PoolQueryExecutor(pool))
    )


@pytest.mark.asyncio
async def test_pool_sets_session_timezone(pool: AsyncConnectionPool) -> None:
    async with pool.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute("SHOW TimeZone", prepare=False)
            row = await cur.fetchone()
    assert row is not None
    assert row[0] == "UTC"


@pytest.mark.asyncio
async def test_questions_end_to_end(pool: AsyncConnectionPool, registry: SchemaRegistry) -> None:
    controller = _controller(pool, registry)

    ministry = await controller.process("תב״רים של משרד החינוך")
    assert isinstance(ministry, CompleteResponse)
    assert sorted(r["tabar_number"] for r in ministry.query_result.rows) == ["2210", "2211"]

    active = await controller.process("כמה פרויקטים פעילים יש")
    assert isinstance(active, CompleteResponse)
    assert active.query_result.rows == [{"count": 3}]

    invoices = await controller.process("סכום חשבוניות מעל 100,000 שקל")
    assert isinstance(invoices, CompleteResponse)
    assert invoices.query_result.rows == [{"count": 2, "total_sum": 1_150_000}]


@pytest.mark.asyncio
async def test_tenant_scope(pool: AsyncConnectionPool, registry: SchemaRegistry) -> None:
    controller = _controller(pool, registry)

    response = await controller.process("תב״רים של משרד החינוך", tenant_id=1)

    assert isinstance(response, CompleteResponse)
    assert [r["tabar_number"] for r in response.query_result.rows] == ["2211"]


@pytest.mark.asyncio
async def test_confirm_comprehensive_supplier_filter_is_idempotent(
        pool: AsyncConnectionPool, registry: SchemaRegistry
) -> None:
    controller = _controller(pool, registry)
    intent = {
        "intent": "list_comprehensive_filtered",
        "domain": "comprehensive",
        "action": "list",
        "filters": {"supplier_name": "סולל", "nonsense_key": "x"},
        "confidence": 0.2,
    }

    first = await controller.confirm(intent, "דוח מקיף של סולל בונה")
    second = await controller.confirm(intent, "דוח מקיף של סולל בונה")

    assert isinstance(first, ConfirmedResponse)
    assert isinstance(second, ConfirmedResponse)
    assert [r["tabar_number"] for r in first.query_result.rows] == ["2211", "2305"]
    assert first.query_result.rows == second.query_result.rows


@pytest.mark.asyncio
async def test_budget_item_execution(pool: AsyncConnectionPool, registry: SchemaRegistry) -> None:
    controller = _controller(pool, registry)
    intent = {
        "intent": "list_budget_items",
        "domain": "budget_items",
        "action": "list",
        "filters": {"tabar_number": "2211"},
        "confidence": 0.9,
    }

    response = await controller.confirm(intent, "סעיפי תקציב של תב״ר 2211")

    assert isinstance(response, ConfirmedResponse)
    rows = {r["item_name"]: r for r in response.query_result.rows}
    assert rows["ריהוט"]["executed_amount"] == 50_000
    assert rows["ריהוט"]["execution_percentage"] == 25
