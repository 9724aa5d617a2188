"""Query compiler (Stage 2).

Validates a `ParsedIntent` against the registry, builds the domain's parameterized query, executes
it through the `QueryExecutor` collaborator and shapes the rows into a `QueryResult`.
"""

from __future__ import annotations

import logging
import time
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any

import psycopg

from src.db.query import QueryExecutor
from src.domains.models import DomainSchema
from src.domains.registry import SchemaRegistry
from src.intent.schema import Action, ParsedIntent
from src.query.result import QueryResult, ResultColumn, ResultMetadata, ResultSummary
from src.sql.builder import SQLBuilderError, build_query, effective_limit

logger = logging.getLogger(__name__)

DEFAULT_PUBLIC_MESSAGE = "אירעה שגיאה בביצוע השאילתה. נסה שוב או נסח את השאלה מחדש."

AGGREGATE_COLUMNS: dict[str, tuple[str, str]] = {
    "count": ("מספר רשומות", "number"),
    "total_sum": ("סכום כולל", "number"),
    "average_amount": ("ממוצע", "number"),
}


class QueryExecutionError(RuntimeError):
    """Raised when the database rejects or fails a query.

    `public_message` is safe to show to users: it never contains SQL or parameter values.
    """

    def __init__(self, domain: str, public_message: str = DEFAULT_PUBLIC_MESSAGE) -> None:
        super().__init__(f"query execution failed for domain {domain!r}")
        self.domain = domain
        self.public_message = public_message


def format_currency(value: Any) -> str:
    """Format an amount as shekels (`₪12,500`)."""

    amount = float(value or 0)
    if amount.is_integer():
        return f"₪{amount:,.0f}"
    return f"₪{amount:,.2f}"


def _plain(value: Any) -> Any:
    # Decimal is not JSON-native; integral amounts become int.
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    return value


def _columns(domain: DomainSchema, names: tuple[str, ...]) -> list[ResultColumn]:
    columns: list[ResultColumn] = []
    for name in names:
        if name in AGGREGATE_COLUMNS:
            label, kind = AGGREGATE_COLUMNS[name]
            columns.append(ResultColumn(key=name, label=label, type=kind))
            continue
        f = domain.field(name)
        columns.append(
            ResultColumn(key=name, label=f.label if f else name, type=f.type.value if f else "string")
        )
    return columns


def _message(domain: DomainSchema, action: Action, rows: list[dict[str, Any]], group_by: str | None) -> str:
    if action == Action.list:
        return f"נמצאו {len(rows)} רשומות ב{domain.label}"

    first = rows[0] if rows else {}
    count = first.get("count", 0) or 0
    if action == Action.count:
        return f"נמצאו {count} רשומות ב{domain.label}"
    if action == Action.sum:
        return f"סכום כולל ב{domain.label}: {format_currency(first.get('total_sum'))} ({count} רשומות)"
    if action == Action.average:
        return f"ממוצע ב{domain.label}: {format_currency(first.get('average_amount'))} ({count} רשומות)"

    f = domain.field(group_by) if group_by else None
    return f"{len(rows)} קבוצות ב{domain.label} לפי {f.label if f else group_by}"


class QueryCompiler:
    """Stage 2 orchestrator.

    The registry and executor are injected; `max_rows` is the effective row cap (defaults to the
    catalog's `max_results`).
    """

    def __init__(
            self,
            registry: SchemaRegistry,
            executor: QueryExecutor,
            *,
            max_rows: int | None = None,
    ) -> None:
        self._registry = registry
        self._executor = executor
        self._max_rows = max_rows or registry.max_results

    @property
    def max_rows(self) -> int:
        return self._max_rows

    async def execute(self, intent: ParsedIntent, *, tenant_id: Any | None = None) -> QueryResult:
        """Execute a parsed intent.

        Raises:
            DomainNotFoundError: If `intent.domain` is not a registry key.
            QueryExecutionError: If the query cannot be built or the database fails.
        """

        domain = self._registry.get_domain(intent.domain)

        filters: dict[str, Any] = {}
        for key, value in intent.filters.items():
            if self._registry.accepts_filter(domain.key, key):
                filters[key] = value
            else:
                logger.info("compile: ignored unsupported filter domain=%s key=%s", domain.key, key)

        requested = [name for name in (intent.fields or []) if domain.field(name) is not None]
        fields = requested or list(domain.default_fields)

        try:
            built = build_query(
                domain.key,
                intent.action,
                fields,
                filters,
                tenant_id=tenant_id,
                max_rows=self._max_rows,
            )
        except SQLBuilderError as exc:
            logger.error("compile: builder rejected intent domain=%s: %s", domain.key, exc)
            raise QueryExecutionError(domain.key) from exc

        started = time.perf_counter()
        try:
            raw_rows = await self._executor.execute(built.sql, built.params)
        except psycopg.Error as exc:
            logger.exception("compile: query failed domain=%s action=%s", domain.key, intent.action)
            raise QueryExecutionError(domain.key) from exc

        cap = effective_limit(filters, self._max_rows)
        rows = [{key: _plain(value) for key, value in row.items()} for row in raw_rows[:cap]]

        logger.info(
            "compile: domain=%s action=%s rows=%d latency_ms=%d",
            domain.key,
            intent.action,
            len(rows),
            (time.perf_counter() - started) * 1000,
        )

        group_by = built.columns[0] if intent.action == Action.group else None
        return QueryResult(
            columns=_columns(domain, built.columns),
            rows=rows,
            summary=ResultSummary(
                total_rows=len(rows),
                message=_message(domain, intent.action, rows, group_by),
                intent=intent.intent,
                domain=domain.key,
                action=intent.action.value,
                filters={key: filters[key] for key in built.applied_filters},
            ),
            metadata=ResultMetadata(
                executed_at=datetime.now(UTC),
                query_source=intent.source.value,
                confidence=intent.confidence,
            ),
        )
