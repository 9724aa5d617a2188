"""Hebrew/English date extraction for budget queries (calendar days).

All functions take *normalized* text (see `normalize_text`) and return the character span they
matched so the caller can avoid re-reading the same digits as an amount or a year.

Recognized forms:
    - explicit days: `15/03/2024`, `15.3.2024`, `2024-03-15` (DMY for the numeric forms)
    - day ranges: `מ-1/1/2024 עד 31/3/2024`, `between 1.1.2024 and 31.3.2024`
    - open ranges: `מאז 1/1/2024`, `after 1.1.2024`, `לפני 1/6/2024`, `until 1.6.2024`
    - months: `במרץ 2024`, `מרץ`, `march 2024` (first to last day; current year when omitted)
    - years: `2024`, `ב-2024`, `השנה`, `בשנה שעברה`, `אשתקד`, `this year`, `last year`
"""

from __future__ import annotations

import calendar
import re
from dataclasses import dataclass
from datetime import UTC, date, datetime

import dateparser
from dateparser.conf import Settings as DateparserSettings

_DATEPARSER_SETTINGS = DateparserSettings().replace(
    STRICT_PARSING=True,
    DATE_ORDER="DMY",
    TIMEZONE="UTC",
    TO_TIMEZONE="UTC",
    RETURN_AS_TIMEZONE_AWARE=True,
)

_HE_MONTH_NAMES: tuple[str, ...] = (
    "ינואר",
    "פברואר",
    "מרץ",
    "אפריל",
    "מאי",
    "יוני",
    "יולי",
    "אוגוסט",
    "ספטמבר",
    "אוקטובר",
    "נובמבר",
    "דצמבר",
)
_EN_MONTH_NAMES: tuple[str, ...] = tuple(name.lower() for name in calendar.month_name[1:])

_MONTHS: dict[str, int] = {
    **{name: idx + 1 for idx, name in enumerate(_HE_MONTH_NAMES)},
    **{name: idx + 1 for idx, name in enumerate(_EN_MONTH_NAMES)},
}

_DAY_FRAGMENT = r"\d{1,2}[./-]\d{1,2}[./-]\d{4}|\d{4}-\d{1,2}-\d{1,2}"
_DAY_RE = re.compile(rf"(?<![\d./])(?:{_DAY_FRAGMENT})(?![\d./-])")

_FROM_WORDS_RE = re.compile(r"(?:^|\s)(?:מ|מ-|החל מ|החל מ-|מאז|אחרי|לאחר|from|since|after)\s*$")
_TO_WORDS_RE = re.compile(r"(?:^|\s)(?:עד|לפני|before|until|till)\s*$")

# Hebrew months may take a one-letter prefix ("במרץ"); English months require a year ("may").
_HE_MONTH_RE = re.compile(
    rf"(?<!\w)[בלמו]?(?P<m>{'|'.join(_HE_MONTH_NAMES)})(?!\w)(?:\s+(?P<y>(?:19|20)\d{{2}})(?!\d))?"
)
_EN_MONTH_RE = re.compile(
    rf"(?<!\w)(?P<m>{'|'.join(_EN_MONTH_NAMES)})\s+(?P<y>(?:19|20)\d{{2}})(?!\d)"
)

_LAST_YEAR_RE = re.compile(
    r"(?<!\w)(?:ב?(?:ה)?שנה\s+(?:ה)?(?:שעברה|קודמת)|אשתקד|last year|previous year)(?!\w)"
)
_THIS_YEAR_RE = re.compile(
    r"(?<!\w)(?:ב?השנה(?:\s+הנוכחית)?|this year|current year)(?!\w)"
)
_YEAR_RE = re.compile(r"(?<![\w.,/])[בלמ]?-?(?P<y>(?:19|20)\d{2})(?![\d])(?![.,/]\d)")


@dataclass(frozen=True)
class DateMatch:
    """An inclusive day range found in text; either bound may be open."""

    start_date: date | None
    end_date: date | None
    span: tuple[int, int]


@dataclass(frozen=True)
class YearMatch:
    """A calendar year found in text."""

    year: int
    span: tuple[int, int]


def _today(today: date | None) -> date:
    return today or datetime.now(UTC).date()


def parse_day_fragment(fragment: str) -> date | None:
    """Parse one explicit day (`15/03/2024`, `2024-03-15`)."""

    value = (fragment or "").strip()
    if re.fullmatch(r"\d{4}-\d{1,2}-\d{1,2}", value):
        try:
            year, month, day = (int(part) for part in value.split("-"))
            return date(year, month, day)
        except ValueError:
            return None

    dt = dateparser.parse(value, languages=["he", "en"], settings=_DATEPARSER_SETTINGS)
    if not dt:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt.date()


def _month_bounds(year: int, month: int) -> tuple[date, date]:
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


def extract_date_range(text: str, *, today: date | None = None) -> DateMatch | None:
    """Find an explicit day, day range, or month in normalized text.

    Returns:
        A `DateMatch` with inclusive bounds, or `None` when the text names no date.
    """

    value = text or ""

    days: list[tuple[date, re.Match[str]]] = []
    for m in _DAY_RE.finditer(value):
        parsed = parse_day_fragment(m.group(0))
        if parsed is not None:
            days.append((parsed, m))

    if len(days) >= 2:
        (first, m1), (second, m2) = days[0], days[1]
        start, end = (first, second) if first <= second else (second, first)
        return DateMatch(start_date=start, end_date=end, span=(m1.start(), m2.end()))

    if len(days) == 1:
        day, m = days[0]
        before = value[: m.start()]
        if _FROM_WORDS_RE.search(before):
            return DateMatch(start_date=day, end_date=None, span=m.span())
        if _TO_WORDS_RE.search(before):
            return DateMatch(start_date=None, end_date=day, span=m.span())
        return DateMatch(start_date=day, end_date=day, span=m.span())

    for pattern in (_EN_MONTH_RE, _HE_MONTH_RE):
        m = pattern.search(value)
        if m:
            year = int(m.group("y")) if m.group("y") else _today(today).year
            start, end = _month_bounds(year, _MONTHS[m.group("m")])
            return DateMatch(start_date=start, end_date=end, span=m.span())

    return None


def extract_relative_year(text: str, *, today: date | None = None) -> YearMatch | None:
    """Resolve "השנה"/"this year" and "שנה שעברה"/"last year" against `today`."""

    current = _today(today).year
    m = _LAST_YEAR_RE.search(text or "")
    if m:
        return YearMatch(year=current - 1, span=m.span())
    m = _THIS_YEAR_RE.search(text or "")
    if m:
        return YearMatch(year=current, span=m.span())
    return None


def extract_years(text: str) -> list[YearMatch]:
    """All explicit 19xx/20xx years in normalized text (including `ב-2024`)."""

    return [
        YearMatch(year=int(m.group("y")), span=m.span()) for m in _YEAR_RE.finditer(text or "")
    ]


def year_bounds(year: int) -> tuple[date, date]:
    """Inclusive first and last day of a calendar year."""

    return date(year, 1, 1), date(year, 12, 31)
