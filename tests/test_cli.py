"""Tests for the catalog-only CLI commands (no database required)."""

from __future__ import annotations

import json

import pytest

from src.cli import main


def _run(capsys: pytest.CaptureFixture[str], *argv: str) -> tuple[int, object]:
    code = main(list(argv))
    return code, json.loads(capsys.readouterr().out)


def test_validate_prints_json(capsys: pytest.CaptureFixture[str]) -> None:
    code, out = _run(capsys, "validate", "תב״רים של 2024")

    assert code == 0
    assert out["valid"] is True
    assert out["estimatedDomain"] == "tabarim"
    assert out["hasNumbers"] is True


def test_domains_and_fields(capsys: pytest.CaptureFixture[str]) -> None:
    code, domains = _run(capsys, "domains")
    assert code == 0
    assert {d["key"] for d in domains} == {"tabarim", "transactions", "budget_items", "comprehensive"}

    code, fields = _run(capsys, "fields", "transactions")
    assert code == 0
    assert any(f["name"] == "supplier_name" for f in fields)


def test_examples_for_one_domain(capsys: pytest.CaptureFixture[str]) -> None:
    code, grouped = _run(capsys, "examples", "--domain", "tabarim")

    assert code == 0
    assert list(grouped) == ["tabarim"]


@pytest.mark.parametrize(
    "argv",
    [
        ("fields", "projects"),
        ("validate", "   "),
    ],
)
def test_bad_input_exits_with_2(capsys: pytest.CaptureFixture[str], argv: tuple[str, ...]) -> None:
    code, out = _run(capsys, *argv)

    assert code == 2
    assert out["success"] is False
