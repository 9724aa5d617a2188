"""Parsed intent schema (Pydantic models).

This schema is the contract between the NL extractors (rules/model) and the query compiler.
An intent is created once per user query and is never mutated afterwards; the confirm step
receives it back verbatim from the caller.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

FilterValue = str | int | float


class Action(StrEnum):
    """Result shape requested by the user."""

    list = "list"
    count = "count"
    sum = "sum"
    average = "average"
    group = "group"


class IntentSource(StrEnum):
    """Which extractor produced the intent."""

    model = "model"
    rules = "rules"


class ParsedIntent(BaseModel):
    """A structured, confidence-scored interpretation of a free-text query.

    `domain` is `None` when no domain could be identified; such intents are inspectable and
    confirmable but never executable.
    """

    model_config = ConfigDict(
        extra="forbid",
        frozen=True,
        str_strip_whitespace=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    intent: str
    domain: str | None = None
    action: Action = Action.list
    filters: dict[str, FilterValue] = Field(default_factory=dict)
    fields: list[str] | None = None
    confidence: float = Field(ge=0.0, le=1.0)
    explanation: str = ""
    source: IntentSource = IntentSource.rules
    suggestions: list[str] = Field(default_factory=list)

    @field_validator("domain")
    @classmethod
    def blank_domain_is_none(cls, value: str | None) -> str | None:
        return value or None

    @field_validator("filters")
    @classmethod
    def drop_empty_filter_values(cls, value: dict[str, FilterValue]) -> dict[str, FilterValue]:
        """Empty-string filter values carry no constraint."""

        return {k: v for k, v in value.items() if not (isinstance(v, str) and not v.strip())}

    def to_json_obj(self) -> dict[str, Any]:
        """JSON-compatible dict with camelCase keys (the wire shape echoed back on confirm)."""

        return self.model_dump(mode="json", by_alias=True)


def intent_from_obj(obj: Any) -> ParsedIntent:
    """Validate and parse a ParsedIntent from an arbitrary decoded JSON object."""

    return ParsedIntent.model_validate(obj)
