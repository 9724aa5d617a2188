"""Tests for the schema catalog and registry lookups."""

from __future__ import annotations

import json

import pytest
from pydantic import ValidationError

from src.domains.models import DomainSchema, FieldDefinition, FieldType, KeywordSet
from src.domains.registry import DomainNotFoundError, SchemaRegistry


def test_domains_are_listed_in_priority_order(registry: SchemaRegistry) -> None:
    keys = [d.key for d in registry.list_domains()]
    assert keys == ["comprehensive", "transactions", "tabarim", "budget_items"]


def test_get_domain_unknown_raises(registry: SchemaRegistry) -> None:
    with pytest.raises(DomainNotFoundError) as excinfo:
        registry.get_domain("invoices")
    assert excinfo.value.domain == "invoices"

    with pytest.raises(DomainNotFoundError):
        registry.get_domain(None)


def test_has_domain(registry: SchemaRegistry) -> None:
    assert registry.has_domain("tabarim")
    assert not registry.has_domain("projects")
    assert not registry.has_domain(None)


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("תב״רים של משרד החינוך", "tabarim"),
        ("כמה פרויקטים פעילים יש", "tabarim"),
        ("חשבוניות של חברת אלקטרה", "transactions"),
        ("סעיפי תקציב עם ניצול מעל 80 אחוז", "budget_items"),
        ("דוח מקיף של תב״ר 2211", "comprehensive"),
        ("Show all invoices", "transactions"),
        ("מה שלומך היום", None),
        ("", None),
    ],
)
def test_estimate_domain(registry: SchemaRegistry, text: str, expected: str | None) -> None:
    assert registry.estimate_domain(text) == expected


def test_estimate_domain_prefers_earlier_domain(registry: SchemaRegistry) -> None:
    # Both transactions ("חשבוניות") and tabarim ("תב"ר") keywords are present.
    assert registry.estimate_domain('חשבוניות של תב"ר 2211') == "transactions"


def test_secondary_hits(registry: SchemaRegistry) -> None:
    assert "משרד" in registry.secondary_hits("tabarim", "תב״רים של משרד החינוך")
    assert registry.secondary_hits("tabarim", "תב״רים") == []


def test_examples_filtered_by_domain(registry: SchemaRegistry) -> None:
    all_examples = registry.examples()
    tabarim = registry.examples("tabarim")

    assert len(all_examples) > len(tabarim) > 0
    assert all(ex.domain == "tabarim" for ex in tabarim)
    with pytest.raises(DomainNotFoundError):
        registry.examples("nope")


def test_schema_summary_is_json_serializable(registry: SchemaRegistry) -> None:
    summary = registry.schema_summary()
    encoded = json.dumps(summary, ensure_ascii=False)

    assert summary["version"] == "2.0"
    assert summary["actions"] == ["list", "count", "sum", "average", "group"]
    tabarim = next(d for d in summary["domains"] if d["key"] == "tabarim")
    assert "ministry" in tabarim["filters"]
    assert "total_authorized_gt" in tabarim["filters"]
    assert "פעיל" in encoded


def test_schema_info_counts(registry: SchemaRegistry) -> None:
    info = registry.schema_info()
    assert info["domainCount"] == 4
    assert info["totalFields"] == sum(len(d.fields) for d in registry.list_domains())


def test_domain_rejects_undeclared_default_field() -> None:
    with pytest.raises(ValidationError):
        DomainSchema(
            key="x",
            label="x",
            description="x",
            fields=(FieldDefinition(name="a", label="a", type=FieldType.string),),
            default_fields=("b",),
            keywords=KeywordSet(primary=("x",)),
        )


def test_enum_field_requires_options() -> None:
    with pytest.raises(ValidationError):
        FieldDefinition(name="status", label="status", type=FieldType.enum)
