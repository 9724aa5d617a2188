"""Plain-text rendering of controller responses for Telegram replies."""

from __future__ import annotations

import json
import re
from typing import Any

from src.query.compiler import format_currency
from src.query.result import QueryResult
from src.service.responses import (
    CompleteResponse,
    ConfirmationRequired,
    ConfirmedResponse,
    DomainInfo,
    ErrorResponse,
)

# Telegram rejects messages longer than 4096 characters.
MAX_MESSAGE_CHARS = 4000
MAX_ROWS_SHOWN = 20

INTENT_MARKER = "#intent"
_ENVELOPE_RE = re.compile(rf"{INTENT_MARKER}\s+(\{{.*\}})\s*$", re.DOTALL)

CONFIRM_HINT = "כדי להריץ בדיוק את הפרשנות הזו, השב /confirm להודעה זו. אחרת נסח את השאלה מחדש."
EMPTY_RESULT = "לא נמצאו רשומות."


def _truncate(text: str) -> str:
    if len(text) <= MAX_MESSAGE_CHARS:
        return text
    return text[: MAX_MESSAGE_CHARS - 1] + "…"


def _cell(value: Any, column_type: str, key: str) -> str:
    if value is None:
        return "-"
    if column_type == "number" and key in ("total_sum", "average_amount"):
        return format_currency(value)
    if column_type == "number" and isinstance(value, (int, float)):
        return f"{value:,}"
    return str(value)


def render_result(result: QueryResult) -> str:
    lines = [result.summary.message]
    if not result.rows:
        lines.append(EMPTY_RESULT)
        return "\n".join(lines)

    for index, row in enumerate(result.rows[:MAX_ROWS_SHOWN], start=1):
        cells = [
            f"{column.label}: {_cell(row.get(column.key), column.type, column.key)}"
            for column in result.columns
        ]
        lines.append(f"{index}. " + " | ".join(cells))

    hidden = len(result.rows) - MAX_ROWS_SHOWN
    if hidden > 0:
        lines.append(f"ועוד {hidden} רשומות")
    return "\n".join(lines)


def intent_envelope(response: ConfirmationRequired, original_query: str) -> str:
    payload = {"originalQuery": original_query, "parsedIntent": response.parsed_intent.to_json_obj()}
    return f"{INTENT_MARKER} {json.dumps(payload, ensure_ascii=False)}"


def parse_intent_envelope(text: str | None) -> tuple[dict[str, Any], str] | None:
    """Extract `(parsedIntent, originalQuery)` from a confirmation reply, if present."""

    match = _ENVELOPE_RE.search(text or "")
    if match is None:
        return None
    try:
        payload = json.loads(match.group(1))
    except json.JSONDecodeError:
        return None
    if not isinstance(payload, dict) or not isinstance(payload.get("parsedIntent"), dict):
        return None
    return payload["parsedIntent"], str(payload.get("originalQuery") or "")


def render_response(
        response: CompleteResponse | ConfirmationRequired | ConfirmedResponse | ErrorResponse,
        *,
        original_query: str = "",
) -> str:
    if isinstance(response, ConfirmationRequired):
        parts = [response.message]
        if response.parsed_intent.suggestions:
            parts.append("\n".join(f"• {s}" for s in response.parsed_intent.suggestions))
        if response.parsed_intent.domain is not None:
            parts.append(CONFIRM_HINT)
            parts.append(intent_envelope(response, original_query))
        return "\n\n".join(parts)
    if isinstance(response, ErrorResponse):
        return response.error
    return _truncate(render_result(response.query_result))


def render_domains(domains: list[DomainInfo]) -> str:
    lines = ["תחומים זמינים:"]
    for d in domains:
        lines.append(f"• {d.label} ({d.key}): {d.description}")
    return "\n".join(lines)


def render_examples(grouped: dict[str, list[dict[str, str]]]) -> str:
    lines = ["דוגמאות לשאלות:"]
    for domain, examples in grouped.items():
        lines.append(f"\n{domain}:")
        lines.extend(f"• {ex['query']}" for ex in examples)
    return _truncate("\n".join(lines))
