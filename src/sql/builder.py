"""Deterministic SQL builder.

The builder converts `(domain, action, fields, filters)` into a parameterized SQL query. Identifiers
(columns, tables, operators) are strictly allowlisted through each domain's `DomainShape`; only
filter values become bound parameters, including `contains` patterns.

Filters the shape cannot explain, and values that cannot be coerced to the column's kind, are
skipped: a slightly mismatched intent degrades to a broader query instead of failing.
"""

from __future__ import annotations

import logging
import math
import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any

from src.intent.schema import Action
from src.sql import budget_items, comprehensive, tabarim, transactions
from src.sql.columns import ColumnRef, DomainShape

logger = logging.getLogger(__name__)

DEFAULT_MAX_ROWS = 100

DOMAIN_SHAPES: dict[str, DomainShape] = {
    shape.key: shape
    for shape in (comprehensive.SHAPE, transactions.SHAPE, tabarim.SHAPE, budget_items.SHAPE)
}

_SUFFIX_OPS: tuple[tuple[str, str], ...] = (
    ("_from", ">="),
    ("_to", "<="),
    ("_gt", ">"),
    ("_lt", "<"),
)


class SQLBuilderError(ValueError):
    """Raised when a query cannot be converted into deterministic SQL."""


@dataclass(frozen=True)
class BuiltQuery:
    """A parameterized SQL query ready for execution."""

    sql: str
    params: tuple[Any, ...]
    columns: tuple[str, ...]
    # Filter keys that became constraints (or the row limit), in request order.
    applied_filters: tuple[str, ...] = ()


@dataclass(frozen=True)
class _Constraint:
    clause: str
    params: list[Any]
    exists: str | None = None


def _where_and(clauses: list[str]) -> str:
    if not clauses:
        return ""
    return "WHERE " + " AND ".join(clauses)


def escape_like(value: str) -> str:
    """Escape LIKE wildcards so user text is matched literally."""

    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _coerce_number(value: Any) -> int | Decimal | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return Decimal(str(value)) if math.isfinite(value) else None
    if isinstance(value, str):
        raw = value.replace(",", "").replace("₪", "").strip()
        if re.fullmatch(r"-?\d+", raw):
            return int(raw)
        try:
            number = Decimal(raw)
        except InvalidOperation:
            return None
        # "nan" and "inf" parse as Decimal but are not usable bounds.
        return number if number.is_finite() else None
    return None


def _coerce_date(value: Any) -> date | None:
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip()[:10])
        except ValueError:
            return None
    return None


def _coerce_year(value: Any) -> int | None:
    number = _coerce_number(value)
    if number is None or not 1900 <= number <= 2100 or number != int(number):
        return None
    return int(number)


def _coerce(kind: str, value: Any) -> Any:
    if kind == "number":
        return _coerce_number(value)
    if kind == "date":
        return _coerce_date(value)
    if isinstance(value, (str, int)) and not isinstance(value, bool):
        text = str(value).strip()
        return text or None
    return None


def _resolve(shape: DomainShape, key: str) -> tuple[ColumnRef, str] | None:
    """Map a filter key to `(column, op)`; op is `eq`, a SQL comparator, or `year`."""

    if key in ("date_from", "date_to"):
        if shape.date_field is None:
            return None
        return shape.columns[shape.date_field], ">=" if key == "date_from" else "<="

    column = shape.columns.get(key)
    if column is not None:
        return column, "eq"

    if key.endswith("_year"):
        base = key.removesuffix("_year")
        for name in (base, f"{base}_date"):
            column = shape.columns.get(name)
            if column is not None and column.kind == "date":
                return column, "year"
        return None

    for suffix, op in _SUFFIX_OPS:
        if key.endswith(suffix):
            column = shape.columns.get(key.removesuffix(suffix))
            if column is not None and column.kind in ("number", "date"):
                return column, op
            return None
    return None


def _search_constraint(shape: DomainShape, value: Any) -> _Constraint | None:
    if not isinstance(value, str) or not value.strip() or not shape.search_fields:
        return None
    pattern = f"%{escape_like(value.strip())}%"
    exprs = [shape.columns[name].expr for name in shape.search_fields]
    clause = "(" + " OR ".join(f"{expr}::text ILIKE %s" for expr in exprs) + ")"
    return _Constraint(clause=clause, params=[pattern] * len(exprs))


def translate_filter(shape: DomainShape, key: str, value: Any) -> _Constraint | None:
    """Translate one filter into a parameterized constraint, or `None` if unsupported."""

    if key == "limit":
        return None
    if key == "search":
        return _search_constraint(shape, value)

    resolved = _resolve(shape, key)
    if resolved is None:
        return None
    column, op = resolved

    if op == "year":
        year = _coerce_year(value)
        if year is None:
            return None
        return _Constraint(
            clause=f"{column.expr} >= %s AND {column.expr} < %s",
            params=[date(year, 1, 1), date(year + 1, 1, 1)],
            exists=column.exists,
        )

    coerced = _coerce(column.kind, value)
    if coerced is None:
        return None

    if op == "eq":
        if column.kind == "text" and column.match == "contains":
            return _Constraint(
                clause=f"{column.expr} ILIKE %s",
                params=[f"%{escape_like(coerced)}%"],
                exists=column.exists,
            )
        return _Constraint(clause=f"{column.expr} = %s", params=[coerced], exists=column.exists)

    return _Constraint(clause=f"{column.expr} {op} %s", params=[coerced], exists=column.exists)


def supports_filter(domain_key: str, key: str) -> bool:
    """Whether the domain's builder can translate the filter key."""

    shape = DOMAIN_SHAPES.get(domain_key)
    if shape is None:
        return False
    if key in ("search", "limit"):
        return True
    return _resolve(shape, key) is not None


def _where(
        shape: DomainShape,
        filters: Mapping[str, Any],
        *,
        tenant_id: Any | None,
) -> tuple[list[str], list[Any], list[str]]:
    clauses: list[str] = []
    params: list[Any] = []
    applied: list[str] = []

    if tenant_id is not None:
        clauses.append(f"{shape.tenant_column} = %s")
        params.append(tenant_id)

    # Correlated filters on the same source share one EXISTS (same transaction / same item).
    exists_groups: dict[str, _Constraint] = {}
    for key, value in filters.items():
        constraint = translate_filter(shape, key, value)
        if constraint is None:
            if key != "limit":
                logger.info("sql: ignored filter domain=%s key=%s", shape.key, key)
            continue
        applied.append(key)
        if constraint.exists is None:
            clauses.append(constraint.clause)
            params.extend(constraint.params)
            continue
        group = exists_groups.get(constraint.exists)
        if group is None:
            exists_groups[constraint.exists] = constraint
        else:
            exists_groups[constraint.exists] = _Constraint(
                clause=f"{group.clause} AND {constraint.clause}",
                params=[*group.params, *constraint.params],
                exists=group.exists,
            )

    for source, group in exists_groups.items():
        clauses.append(f"EXISTS (SELECT 1 FROM {source} AND {group.clause})")
        params.extend(group.params)

    return clauses, params, applied


def effective_limit(filters: Mapping[str, Any], max_rows: int) -> int:
    """Row cap: the requested `limit` when smaller than `max_rows`, else `max_rows`."""

    requested = _coerce_number(filters.get("limit")) if "limit" in filters else None
    if requested is None or not 0 < requested < max_rows or requested != int(requested):
        return max_rows
    return int(requested)


def _append_limit(
        params: list[Any], applied: list[str], filters: Mapping[str, Any], max_rows: int
) -> None:
    limit = effective_limit(filters, max_rows)
    params.append(limit)
    if limit != max_rows:
        applied.append("limit")


def _selected_fields(shape: DomainShape, fields: Sequence[str] | None) -> list[str]:
    """Requested selectable fields in request order; unknown names are dropped."""

    chosen: list[str] = []
    for name in fields or ():
        column = shape.columns.get(name)
        if column is not None and column.selectable and name not in chosen:
            chosen.append(name)
    if not chosen:
        chosen = list(shape.default_fields)
    return chosen


def _group_field(shape: DomainShape, fields: Sequence[str] | None) -> str:
    for name in fields or ():
        column = shape.columns.get(name)
        if column is not None and column.selectable:
            return name
    return shape.group_default


def build_domain_query(
        shape: DomainShape,
        action: Action | str,
        fields: Sequence[str] | None,
        filters: Mapping[str, Any],
        *,
        tenant_id: Any | None = None,
        max_rows: int = DEFAULT_MAX_ROWS,
) -> BuiltQuery:
    """Build a parameterized query for one domain shape."""

    try:
        action = Action(action)
    except ValueError as exc:
        raise SQLBuilderError(f"Unsupported action: {action}") from exc

    clauses, params, applied = _where(shape, filters, tenant_id=tenant_id)
    where_sql = _where_and(clauses)
    measure = shape.columns[shape.measure].expr

    if action == Action.list:
        names = _selected_fields(shape, fields)
        select = ", ".join(f"{shape.columns[name].expr} AS {name}" for name in names)
        sql = (
            f"SELECT {select} {shape.from_sql} {where_sql} "
            f"ORDER BY {shape.order_by} LIMIT %s"
        )
        _append_limit(params, applied, filters, max_rows)
        columns = tuple(names)

    elif action == Action.count:
        sql = f"SELECT COUNT(*)::bigint AS count {shape.from_sql} {where_sql}"
        columns = ("count",)

    elif action == Action.sum:
        sql = (
            f"SELECT COUNT(*)::bigint AS count, COALESCE(SUM({measure}), 0) AS total_sum "
            f"{shape.from_sql} {where_sql}"
        )
        columns = ("count", "total_sum")

    elif action == Action.average:
        sql = (
            f"SELECT COUNT(*)::bigint AS count, ROUND(COALESCE(AVG({measure}), 0), 2) AS average_amount "
            f"{shape.from_sql} {where_sql}"
        )
        columns = ("count", "average_amount")

    else:
        name = _group_field(shape, fields)
        key_expr = shape.columns[name].expr
        sql = (
            f"SELECT {key_expr} AS {name}, COUNT(*)::bigint AS count, "
            f"COALESCE(SUM({measure}), 0) AS total_sum "
            f"{shape.from_sql} {where_sql} "
            f"GROUP BY {key_expr} ORDER BY count DESC, {key_expr} ASC NULLS LAST LIMIT %s"
        )
        _append_limit(params, applied, filters, max_rows)
        columns = (name, "count", "total_sum")

    sql = re.sub(r"\s+", " ", sql).strip()
    return BuiltQuery(
        sql=sql, params=tuple(params), columns=columns, applied_filters=tuple(applied)
    )


def build_query(
        domain_key: str,
        action: Action | str,
        fields: Sequence[str] | None,
        filters: Mapping[str, Any],
        *,
        tenant_id: Any | None = None,
        max_rows: int = DEFAULT_MAX_ROWS,
) -> BuiltQuery:
    """Dispatch to the domain's shape and build its query."""

    try:
        shape = DOMAIN_SHAPES[domain_key]
    except KeyError as exc:
        raise SQLBuilderError(f"Unsupported domain: {domain_key}") from exc

    return build_domain_query(
        shape, action, fields, filters, tenant_id=tenant_id, max_rows=max_rows
    )
