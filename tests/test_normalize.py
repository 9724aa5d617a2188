"""Tests for deterministic text normalization."""

from __future__ import annotations

import pytest

from src.intent.normalize import normalize_text


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("תב״רים של משרד החינוך", 'תב"רים של משרד החינוך'),
        ("  Show   ALL invoices!  ", "show all invoices"),
        ("סכום חשבוניות מעל 10,000 שקל?", "סכום חשבוניות מעל 10,000 שקל"),
        ("מ-1/1/2024 עד 31.3.2024.", "מ-1/1/2024 עד 31.3.2024"),
        ("שָׁלוֹם", "שלום"),
        ('"מקיף"', "מקיף"),
        ("", ""),
    ],
)
def test_normalize_text(raw: str, expected: str) -> None:
    assert normalize_text(raw) == expected


def test_normalize_maps_maqaf_to_hyphen() -> None:
    assert normalize_text("ב־2024") == "ב-2024"
