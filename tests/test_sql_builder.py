"""Tests for the deterministic SQL builder (allowlists + parameter binding)."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from src.intent.schema import Action
from src.sql.builder import (
    DOMAIN_SHAPES,
    SQLBuilderError,
    build_query,
    effective_limit,
    escape_like,
    supports_filter,
)


def _placeholder_count(sql: str) -> int:
    return sql.count("%s")


def test_list_tabarim_by_ministry() -> None:
    built = build_query("tabarim", Action.list, None, {"ministry": "חינוך"})

    assert built.sql.startswith("SELECT t.tabar_number AS tabar_number, t.name AS name")
    assert "FROM tabarim t WHERE t.ministry ILIKE %s" in built.sql
    assert built.sql.endswith("ORDER BY t.updated_at DESC NULLS LAST, t.id DESC LIMIT %s")
    assert "חינוך" not in built.sql
    assert built.params == ("%חינוך%", 100)
    assert built.columns == ("tabar_number", "name", "ministry", "total_authorized", "status", "year")
    assert _placeholder_count(built.sql) == len(built.params)


def test_count_active_tabarim() -> None:
    built = build_query("tabarim", "count", None, {"status": "פעיל"})

    assert built.sql == "SELECT COUNT(*)::bigint AS count FROM tabarim t WHERE t.status = %s"
    assert built.params == ("פעיל",)
    assert built.columns == ("count",)


def test_sum_and_average_return_count_too() -> None:
    total = build_query("transactions", Action.sum, None, {"amount_gt": 10_000})
    average = build_query("transactions", Action.average, None, {})

    assert "COUNT(*)::bigint AS count, COALESCE(SUM(tt.amount), 0) AS total_sum" in total.sql
    assert "tt.amount > %s" in total.sql
    assert total.params == (10_000,)
    assert average.columns == ("count", "average_amount")
    assert "ROUND(COALESCE(AVG(tt.amount), 0), 2)" in average.sql
    assert "WHERE" not in average.sql


def test_group_by_requested_field() -> None:
    built = build_query("tabarim", Action.group, ["ministry"], {"limit": 5})

    assert "GROUP BY t.ministry ORDER BY count DESC, t.ministry ASC NULLS LAST LIMIT %s" in built.sql
    assert built.columns == ("ministry", "count", "total_sum")
    assert built.params == (5,)


def test_group_falls_back_to_domain_default() -> None:
    built = build_query("transactions", Action.group, ["no_such_field"], {})
    assert built.columns[0] == "supplier_name"


def test_unknown_fields_are_dropped() -> None:
    built = build_query("tabarim", Action.list, ["name", "password", "name"], {})
    assert built.columns == ("name",)

    fallback = build_query("tabarim", Action.list, ["password"], {})
    assert fallback.columns == DOMAIN_SHAPES["tabarim"].default_fields


def test_unsupported_filter_keys_are_ignored() -> None:
    built = build_query("transactions", Action.list, None, {"nonsense_key": "x"})

    assert "WHERE" not in built.sql
    assert built.params == (100,)


@pytest.mark.parametrize(
    "filters",
    [
        {"amount_gt": "lots", "transaction_date_from": "soon"},
        {"amount_gt": "nan", "amount_lt": "-Infinity"},
        {"amount_gt": float("inf")},
        {"transaction_year": "inf"},
        {"transaction_year": "NaN"},
        {"transaction_year": "1e999999"},
    ],
)
def test_uncoercible_values_are_ignored(filters: dict[str, object]) -> None:
    built = build_query("transactions", Action.count, None, filters)

    assert "WHERE" not in built.sql
    assert built.params == ()
    assert built.applied_filters == ()


def test_applied_filters_lists_only_constraints() -> None:
    built = build_query(
        "transactions",
        Action.list,
        None,
        {"amount_gt": "abc", "status": "שולם", "nonsense_key": 1, "limit": 10},
    )

    assert built.applied_filters == ("status", "limit")
    assert built.params[-1] == 10


def test_year_filter_on_date_column() -> None:
    built = build_query("transactions", Action.count, None, {"transaction_year": 2024})

    assert "tt.transaction_date >= %s AND tt.transaction_date < %s" in built.sql
    assert built.params == (date(2024, 1, 1), date(2025, 1, 1))


def test_date_range_and_decimal_amounts() -> None:
    built = build_query(
        "transactions",
        Action.list,
        None,
        {"date_from": "2024-01-01", "date_to": "2024-03-31", "amount_lt": 99.5},
    )

    assert "tt.transaction_date >= %s" in built.sql
    assert "tt.transaction_date <= %s" in built.sql
    assert "tt.amount < %s" in built.sql
    assert built.params[:3] == (date(2024, 1, 1), date(2024, 3, 31), Decimal("99.5"))


def test_search_is_parameterized_and_escaped() -> None:
    built = build_query("tabarim", Action.list, None, {"search": "100%_'; DROP TABLE tabarim;--"})

    assert "DROP TABLE" not in built.sql
    assert "t.name::text ILIKE %s OR t.tabar_number::text ILIKE %s" in built.sql
    pattern = "%100\\%\\_'; DROP TABLE tabarim;--%"
    assert built.params[:4] == (pattern, pattern, pattern, pattern)
    assert _placeholder_count(built.sql) == len(built.params)


def test_tenant_scope_comes_first() -> None:
    built = build_query("budget_items", Action.count, None, {"item_type": "הוצאה"}, tenant_id=7)

    assert "WHERE ti.tenant_id = %s AND" in built.sql
    assert built.params[0] == 7


def test_comprehensive_transaction_filters_share_one_exists() -> None:
    built = build_query(
        "comprehensive",
        Action.list,
        None,
        {"supplier_name": "אלקטרה", "transaction_status": "שולם", "item_name": "ריהוט"},
    )

    assert built.sql.count("EXISTS (SELECT 1 FROM tabar_transactions x") == 1
    assert built.sql.count("EXISTS (SELECT 1 FROM tabar_items i") == 1
    assert "x.supplier_name ILIKE %s AND x.status = %s" in built.sql
    assert built.params[:3] == ("%אלקטרה%", "שולם", "%ריהוט%")
    assert _placeholder_count(built.sql) == len(built.params)


def test_filter_only_fields_are_not_selectable() -> None:
    built = build_query("comprehensive", Action.list, ["supplier_name", "name"], {})
    assert built.columns == ("name",)


@pytest.mark.parametrize(
    ("filters", "expected"),
    [
        ({}, 100),
        ({"limit": 10}, 10),
        ({"limit": "25"}, 25),
        ({"limit": 5000}, 100),
        ({"limit": 0}, 100),
        ({"limit": -3}, 100),
        ({"limit": "abc"}, 100),
        ({"limit": "nan"}, 100),
        ({"limit": "Infinity"}, 100),
        ({"limit": float("nan")}, 100),
        ({"limit": float("inf")}, 100),
        ({"limit": "1e999999"}, 100),
        ({"limit": 2.5}, 100),
    ],
)
def test_effective_limit(filters: dict[str, object], expected: int) -> None:
    assert effective_limit(filters, 100) == expected


@pytest.mark.parametrize("domain", sorted(DOMAIN_SHAPES))
@pytest.mark.parametrize("action", [Action.list, Action.group])
def test_row_cap_is_always_bound(domain: str, action: Action) -> None:
    built = build_query(domain, action, None, {"limit": 1_000_000}, max_rows=100)

    assert built.sql.endswith("LIMIT %s")
    assert built.params[-1] == 100


def test_unknown_domain_or_action_raises() -> None:
    with pytest.raises(SQLBuilderError):
        build_query("projects", Action.list, None, {})
    with pytest.raises(SQLBuilderError):
        build_query("tabarim", "delete", None, {})


def test_supports_filter() -> None:
    assert supports_filter("transactions", "transaction_year")
    assert supports_filter("tabarim", "search")
    assert not supports_filter("budget_items", "date_from")
    assert not supports_filter("nope", "ministry")


def test_escape_like() -> None:
    assert escape_like("50%_a\\b") == "50\\%\\_a\\\\b"
