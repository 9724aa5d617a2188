"""Tests for the filter key vocabulary."""

from __future__ import annotations

import pytest

from src.domains.filters import resolve_filter_field, split_filter_key
from src.domains.registry import SchemaRegistry


@pytest.mark.parametrize(
    ("key", "expected"),
    [
        ("amount_gt", ("amount", "gt")),
        ("open_date_from", ("open_date", "from")),
        ("transaction_year", ("transaction", "year")),
        ("ministry", ("ministry", "eq")),
        ("_to", ("_to", "eq")),
    ],
)
def test_split_filter_key(key: str, expected: tuple[str, str]) -> None:
    assert split_filter_key(key) == expected


def test_year_filter_resolves_to_date_field(registry: SchemaRegistry) -> None:
    resolved = resolve_filter_field(registry.get_domain("transactions"), "transaction_year")
    assert resolved is not None
    assert resolved.field.name == "transaction_date"
    assert resolved.op == "year"


def test_plain_year_field_is_equality(registry: SchemaRegistry) -> None:
    resolved = resolve_filter_field(registry.get_domain("tabarim"), "year")
    assert resolved is not None
    assert resolved.op == "eq"


def test_range_suffix_requires_number_or_date(registry: SchemaRegistry) -> None:
    tabarim = registry.get_domain("tabarim")
    assert resolve_filter_field(tabarim, "total_authorized_gt") is not None
    assert resolve_filter_field(tabarim, "ministry_gt") is None


@pytest.mark.parametrize(
    ("domain", "key", "accepted"),
    [
        ("tabarim", "ministry", True),
        ("tabarim", "search", True),
        ("tabarim", "limit", True),
        ("tabarim", "date_from", True),
        ("budget_items", "date_from", False),
        ("transactions", "transaction_year", True),
        ("transactions", "nonsense_key", False),
        ("transactions", "document_url", False),
        ("comprehensive", "supplier_name", True),
        ("comprehensive", "transaction_count", False),
    ],
)
def test_accepts_filter(registry: SchemaRegistry, domain: str, key: str, accepted: bool) -> None:
    assert registry.accepts_filter(domain, key) is accepted


def test_vocabulary_lists_synthetic_keys(registry: SchemaRegistry) -> None:
    vocabulary = registry.filter_vocabulary("transactions")
    assert vocabulary[-4:] == ["search", "limit", "date_from", "date_to"]
    assert "transaction_year" in vocabulary
    assert "amount_lt" in vocabulary
