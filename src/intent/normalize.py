"""Text normalization for deterministic intent parsing."""

from __future__ import annotations

import re

# Hebrew points and cantillation marks (niqqud).
_NIQQUD_RE = re.compile(r"[\u0591-\u05bd\u05bf-\u05c7]")
_NON_WORD_RE = re.compile(r"[^0-9a-zא-ת_%\"'./,\-\s]+", flags=re.IGNORECASE)
_EDGE_QUOTES_RE = re.compile(r"(?<![\w])[\"']+|[\"']+(?![\w])")
# Separators survive only between digits (10,000 / 1.5 / 31/01/2024).
_LOOSE_SEPARATOR_RE = re.compile(r"(?<!\d)[./,]|[./,](?!\d)")
_MULTISPACE_RE = re.compile(r"\s+")


def normalize_text(text: str) -> str:
    """Normalize user text for rules-based parsing.

    Normalization is intentionally conservative:
        - Lowercase.
        - Strip niqqud.
        - Unify gershayim/geresh (״ -> ", ׳ -> ') and unicode dashes/maqaf (-> -).
        - Replace punctuation with spaces, keeping in-word quotes (תב"ר) and numeric separators.
        - Collapse whitespace.

    The goal is deterministic tokenization, not linguistic lemmatization.
    """

    value = (text or "").strip().lower()
    value = _NIQQUD_RE.sub("", value)

    value = value.replace("״", '"').replace("“", '"').replace("”", '"')
    value = value.replace("׳", "'").replace("‘", "'").replace("’", "'")
    value = value.replace("־", "-").replace("—", "-").replace("–", "-")
    value = value.replace("`", " ")

    value = _NON_WORD_RE.sub(" ", value)
    value = _EDGE_QUOTES_RE.sub(" ", value)
    value = _LOOSE_SEPARATOR_RE.sub(" ", value)
    value = _MULTISPACE_RE.sub(" ", value).strip()
    return value
