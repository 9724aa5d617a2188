"""Hebrew/English dictionaries for actions, comparatives and enum values.

These mappings are used by the rules-based extractor and should remain small and deterministic.
All phrases are written in normalized form (see `normalize_text`): gershayim as `"`, lower-case.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from src.intent.schema import Action

# Hebrew one-letter prefixes (ו, ה, ב, ל, מ, ש, כ) that may glue onto a keyword.
HEBREW_PREFIX = r"(?:[והבלמשכ]{1,2})?"

# Scanned in this order; the first action with a hit wins (group > average > sum > count).
ACTION_SYNONYMS: dict[Action, tuple[str, ...]] = {
    Action.group: ("לפי", "פילוח", "מפולח", "קבץ", "קיבוץ", "group by", "grouped by", "per", "by"),
    Action.average: ("ממוצע", "ממוצעת", "בממוצע", "average", "avg", "mean"),
    Action.sum: (
        'סה"כ',
        "סך הכל",
        "סך",
        "סכום",
        "סיכום",
        "כמה כסף",
        "total",
        "sum",
        "how much",
    ),
    Action.count: ("כמה", "ספירה", "ספור", "כמות", "how many", "count", "number of"),
}

ACTION_LABELS_HE: dict[Action, str] = {
    Action.list: "הצגת",
    Action.count: "ספירת",
    Action.sum: "סיכום",
    Action.average: "ממוצע",
    Action.group: "קיבוץ",
}

# Comparatives. `between` binds two values, the others one.
GT_PHRASES: tuple[str, ...] = (
    "יותר מ",
    "גבוה מ",
    "גדול מ",
    "מעל",
    "מעל ל",
    "למעלה מ",
    "above",
    "over",
    "more than",
    "greater than",
)
LT_PHRASES: tuple[str, ...] = (
    "פחות מ",
    "נמוך מ",
    "קטן מ",
    "מתחת",
    "מתחת ל",
    "עד",
    "below",
    "under",
    "less than",
)

AMOUNT_MULTIPLIERS: dict[str, int] = {
    "אלף": 1_000,
    "אלפים": 1_000,
    "מיליון": 1_000_000,
    "מליון": 1_000_000,
    "מיליארד": 1_000_000_000,
    "k": 1_000,
    "thousand": 1_000,
    "m": 1_000_000,
    "million": 1_000_000,
}

CURRENCY_WORDS: tuple[str, ...] = ("שקל", "שקלים", 'ש"ח', "ש''ח", "nis", "ils")

# Enum values in the catalog map to inflection patterns; values missing here match literally.
# "לא שולם" must be tried before "שולם".
ENUM_VALUE_PATTERNS: dict[str, str] = {
    "לא שולם": r"ש?(?:לא|טרם)\s+שול(?:ם|מה|מו)|unpaid|not paid",
    "שולם": r"שול(?:ם|מה|מו)|paid",
    "בתהליך": r"בתהליך|in progress|pending",
    "פעיל": r"פעיל(?:ים|ה|ות)?|active",
    "סגור": r"סגור(?:ים|ה|ות)?|נסגר(?:ו|ה)?|closed",
    "בתכנון": r"בתכנון|planned|planning",
    "מושהה": r"מושה(?:ה|ים|ות)|מוקפא(?:ים)?|suspended|on hold",
    "בוטל": r"בוטל(?:ו|ה)?|מבוטל(?:ים|ת|ות)?|cancel(?:l)?ed",
    "חשבונית": r"חשבוני(?:ת|ות)|invoices?",
    "תשלום": r"תשלו(?:ם|מים)|payments?",
    "זיכוי": r"זיכוי(?:ים)?|credits?",
    "חיוב": r"חיוב(?:ים)?|debits?|charges?",
    "כניסה": r"כניס(?:ה|ות)|incoming",
    "הכנסה": r"הכנס(?:ה|ות)|income|revenue",
    "הוצאה": r"הוצא(?:ה|ות)|expenses?|expenditures?",
}

# English spellings of department names stored in Hebrew.
DEPARTMENT_SYNONYMS: dict[str, tuple[str, ...]] = {
    "חינוך": ("education",),
    "תחבורה": ("transport", "transportation"),
    "בריאות": ("health",),
    "רווחה": ("welfare",),
    "תרבות": ("culture",),
    "ספורט": ("sport", "sports"),
}


@dataclass(frozen=True)
class PhraseMatch:
    """A phrase found in text, with its character span."""

    phrase: str
    start: int
    end: int


def _build_regex_alternation(phrases: tuple[str, ...] | list[str]) -> str:
    # Sort by length desc to prefer longer phrases (e.g. "מעל ל" over "מעל").
    parts = sorted(phrases, key=lambda p: (-len(p), p))
    return "|".join(re.escape(p) for p in parts)


def phrase_regex(phrases: tuple[str, ...] | list[str], *, prefixed: bool = True) -> re.Pattern[str]:
    """Compile a whole-word alternation, optionally allowing Hebrew one-letter prefixes."""

    prefix = HEBREW_PREFIX if prefixed else ""
    return re.compile(rf"(?<!\w){prefix}(?:{_build_regex_alternation(phrases)})(?!\w)")


_ACTION_RES: list[tuple[Action, re.Pattern[str]]] = [
    (action, phrase_regex(phrases)) for action, phrases in ACTION_SYNONYMS.items()
]


def detect_action(text: str) -> tuple[Action, PhraseMatch | None]:
    """Detect the requested action from normalized text.

    Returns:
        `(action, match)`; `match` is `None` (and the action `list`) when no action word is present.
    """

    for action, pattern in _ACTION_RES:
        m = pattern.search(text)
        if m:
            return action, PhraseMatch(phrase=m.group(0), start=m.start(), end=m.end())
    return Action.list, None


def enum_value_regex(value: str) -> re.Pattern[str]:
    """Whole-word regex for an enum value and its common inflections."""

    pattern = ENUM_VALUE_PATTERNS.get(value)
    if pattern is None:
        synonyms = DEPARTMENT_SYNONYMS.get(value, ())
        pattern = "|".join(re.escape(v) for v in (value, *synonyms))
    return re.compile(rf"(?<!\w){HEBREW_PREFIX}(?:{pattern})(?!\w)")


def parse_amount(raw: str, multiplier: str | None = None) -> float | None:
    """Parse `10,000` / `1.5` (+ optional `מיליון`/`k`) into a number."""

    value = (raw or "").replace(",", "").replace("_", "").strip()
    if not value:
        return None
    try:
        amount = float(value)
    except ValueError:
        return None
    if multiplier:
        amount *= AMOUNT_MULTIPLIERS.get(multiplier, 1)
    return amount
