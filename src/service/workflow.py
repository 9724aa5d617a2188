"""Confidence gate.

A parsed intent either proceeds straight to Stage 2 or is returned to the caller for confirmation.
The gate holds no state: the caller echoes the intent back to `confirm`.
"""

from __future__ import annotations

from src.intent.schema import ParsedIntent

DEFAULT_MIN_CONFIDENCE = 0.3


def needs_confirmation(intent: ParsedIntent, min_confidence: float) -> bool:
    """Whether the intent must be confirmed before it is executed.

    Intents without a domain are never executable, whatever the threshold.
    """

    return intent.domain is None or intent.confidence < min_confidence


def confirmation_message(intent: ParsedIntent) -> str:
    percent = round(intent.confidence * 100)
    restated = intent.explanation or intent.intent
    return f"זוהה בביטחון נמוך ({percent}%). האם התכוונת ל: {restated}?"
