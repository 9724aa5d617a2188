"""Tests for action detection, enum inflections and amount parsing."""

from __future__ import annotations

import pytest

from src.intent.dictionaries import detect_action, enum_value_regex, parse_amount
from src.intent.schema import Action


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("כמה פרויקטים פעילים יש", Action.count),
        ('סה"כ חשבוניות', Action.sum),
        ("סכום חשבוניות מעל 10,000", Action.sum),
        ("ממוצע תשלומים לספק", Action.average),
        ("תקציב תב\"רים לפי משרד", Action.group),
        ("how many invoices", Action.count),
        ("total payments", Action.sum),
        ('תב"רים של משרד החינוך', Action.list),
    ],
)
def test_detect_action(text: str, expected: Action) -> None:
    action, _ = detect_action(text)
    assert action == expected


def test_group_wins_over_count() -> None:
    action, match = detect_action("כמה תב\"רים לפי משרד")
    assert action == Action.group
    assert match is not None and match.phrase == "לפי"


def test_no_action_word_has_no_match() -> None:
    action, match = detect_action("חשבוניות")
    assert action == Action.list
    assert match is None


@pytest.mark.parametrize(
    ("value", "text", "matches"),
    [
        ("פעיל", "פרויקטים פעילים", True),
        ("פעיל", "active projects", True),
        ("לא שולם", "תשלומים שלא שולמו", True),
        ("שולם", "תשלומים ששולמו", True),
        ("סגור", "פרויקטים שנסגרו", True),
        ("חינוך", "education", True),
        ("פעיל", "פעילויות", False),
    ],
)
def test_enum_value_regex(value: str, text: str, matches: bool) -> None:
    assert (enum_value_regex(value).search(text) is not None) is matches


@pytest.mark.parametrize(
    ("raw", "multiplier", "expected"),
    [
        ("10,000", None, 10_000.0),
        ("1.5", "מיליון", 1_500_000.0),
        ("50", "k", 50_000.0),
        ("", None, None),
        ("abc", None, None),
    ],
)
def test_parse_amount(raw: str, multiplier: str | None, expected: float | None) -> None:
    assert parse_amount(raw, multiplier) == expected
