"""Tests for Stage 2: intent validation, execution and result shaping."""

from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal
from typing import Any

import psycopg
import pytest

from src.domains.registry import DomainNotFoundError, SchemaRegistry
from src.intent.schema import ParsedIntent
from src.query.compiler import QueryCompiler, QueryExecutionError, format_currency


class FakeExecutor:
    """In-memory `QueryExecutor` that records statements and returns canned rows."""

    def __init__(self, rows: list[dict[str, Any]] | None = None, error: Exception | None = None) -> None:
        self.rows = rows or []
        self.error = error
        self.calls: list[tuple[str, tuple[Any, ...]]] = []

    async def execute(self, sql: str, params: Sequence[Any]) -> list[dict[str, Any]]:
        self.calls.append((sql, tuple(params)))
        if self.error is not None:
            raise self.error
        return list(self.rows)


def _intent(**overrides: Any) -> ParsedIntent:
    data: dict[str, Any] = {
        "intent": "list_tabarim_filtered",
        "domain": "tabarim",
        "action": "list",
        "filters": {"ministry": "חינוך"},
        "confidence": 0.6,
        "explanation": "הצגת תב״רים",
    }
    data.update(overrides)
    return ParsedIntent.model_validate(data)


@pytest.mark.asyncio
async def test_list_result_shape(registry: SchemaRegistry) -> None:
    executor = FakeExecutor(
        rows=[
            {
                "tabar_number": "2211",
                "name": "שיפוץ בית ספר",
                "ministry": "משרד החינוך",
                "total_authorized": Decimal("1500000.00"),
                "status": "פעיל",
                "year": 2024,
            }
        ]
    )
    compiler = QueryCompiler(registry, executor)

    result = await compiler.execute(_intent())

    assert [c.key for c in result.columns] == [
        "tabar_number",
        "name",
        "ministry",
        "total_authorized",
        "status",
        "year",
    ]
    assert result.columns[3].label == "תקציב מאושר"
    assert result.columns[3].type == "number"
    assert result.rows[0]["total_authorized"] == 1_500_000
    assert isinstance(result.rows[0]["total_authorized"], int)
    assert result.summary.total_rows == 1
    assert result.summary.domain == "tabarim"
    assert result.summary.action == "list"
    assert result.summary.filters == {"ministry": "חינוך"}
    assert result.metadata.confidence == pytest.approx(0.6)
    assert result.metadata.query_source == "rules"

    sql, params = executor.calls[0]
    assert "חינוך" not in sql
    assert params == ("%חינוך%", 100)


@pytest.mark.asyncio
async def test_count_result_message(registry: SchemaRegistry) -> None:
    executor = FakeExecutor(rows=[{"count": 7}])
    compiler = QueryCompiler(registry, executor)

    result = await compiler.execute(_intent(action="count", filters={"status": "פעיל"}))

    assert result.rows == [{"count": 7}]
    assert result.columns[0].label == "מספר רשומות"
    assert "7" in result.summary.message


@pytest.mark.asyncio
async def test_sum_message_is_formatted_as_currency(registry: SchemaRegistry) -> None:
    executor = FakeExecutor(rows=[{"count": 3, "total_sum": Decimal("12500.50")}])
    compiler = QueryCompiler(registry, executor)

    result = await compiler.execute(_intent(domain="transactions", action="sum", filters={}))

    assert result.rows[0]["total_sum"] == pytest.approx(12500.5)
    assert "₪12,500.50" in result.summary.message


@pytest.mark.asyncio
async def test_unknown_domain_fails_fast(registry: SchemaRegistry) -> None:
    executor = FakeExecutor()
    compiler = QueryCompiler(registry, executor)

    with pytest.raises(DomainNotFoundError):
        await compiler.execute(_intent(domain="projects"))
    with pytest.raises(DomainNotFoundError):
        await compiler.execute(_intent(domain=None))
    assert executor.calls == []


@pytest.mark.asyncio
async def test_unsupported_filter_is_not_applied(registry: SchemaRegistry) -> None:
    executor = FakeExecutor(rows=[{"supplier_name": "אלקטרה"}])
    compiler = QueryCompiler(registry, executor)

    result = await compiler.execute(
        _intent(domain="transactions", filters={"nonsense_key": "x"}, fields=["supplier_name"])
    )

    sql, params = executor.calls[0]
    assert "WHERE" not in sql
    assert params == (100,)
    assert result.summary.filters == {}
    assert [c.key for c in result.columns] == ["supplier_name"]


@pytest.mark.asyncio
async def test_rows_never_exceed_cap(registry: SchemaRegistry) -> None:
    executor = FakeExecutor(rows=[{"name": f"p{i}"} for i in range(150)])
    compiler = QueryCompiler(registry, executor, max_rows=100)

    capped = await compiler.execute(_intent(fields=["name"], filters={}))
    limited = await compiler.execute(_intent(fields=["name"], filters={"limit": 10}))

    assert len(capped.rows) == 100
    assert len(limited.rows) == 10
    assert executor.calls[1][1] == (10,)


@pytest.mark.asyncio
async def test_database_error_is_sanitized(registry: SchemaRegistry) -> None:
    executor = FakeExecutor(error=psycopg.OperationalError("relation tabarim does not exist"))
    compiler = QueryCompiler(registry, executor)

    with pytest.raises(QueryExecutionError) as excinfo:
        await compiler.execute(_intent())

    error = excinfo.value
    assert error.domain == "tabarim"
    assert "tabarim" not in error.public_message
    assert "SELECT" not in error.public_message
    assert isinstance(error.__cause__, psycopg.OperationalError)


def test_max_rows_defaults_to_catalog(registry: SchemaRegistry) -> None:
    assert QueryCompiler(registry, FakeExecutor()).max_rows == registry.max_results


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (12500, "₪12,500"),
        (Decimal("99.5"), "₪99.50"),
        (None, "₪0"),
    ],
)
def test_format_currency(value: Any, expected: str) -> None:
    assert format_currency(value) == expected


@pytest.mark.asyncio
async def test_summary_reports_only_applied_filters(registry: SchemaRegistry) -> None:
    executor = FakeExecutor(rows=[{"count": 1}])
    compiler = QueryCompiler(registry, executor)

    result = await compiler.execute(
        _intent(
            domain="transactions",
            action="count",
            filters={"amount_gt": "abc", "status": "שולם", "limit": "NaN"},
        )
    )

    assert result.summary.filters == {"status": "שולם"}
    assert executor.calls[0][1] == ("שולם",)
