"""Controller request/response models.

Every model serializes with camelCase keys (`parsedIntent`, `queryResult`, ...) so transports can
dump them with `model_dump(mode="json", by_alias=True)` and echo intents back verbatim.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from src.intent.schema import ParsedIntent
from src.query.result import QueryResult


class _Response(BaseModel):
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    def to_json_obj(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class ProcessOptions(BaseModel):
    """Per-request options of `process`.

    `timeout` is in milliseconds and bounds the language-model call only.
    """

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    min_confidence: float | None = Field(default=None, ge=0.0, le=1.0)
    timeout: int | None = Field(default=None, gt=0)


class CompleteResponse(_Response):
    success: bool = True
    stage: Literal["complete"] = "complete"
    parsed_intent: ParsedIntent
    query_result: QueryResult
    processing_time: str


class ConfirmationRequired(_Response):
    success: bool = True
    stage: Literal["parsing"] = "parsing"
    low_confidence: bool = True
    parsed_intent: ParsedIntent
    message: str
    suggested_action: Literal["confirm_or_refine"] = "confirm_or_refine"


class ConfirmedResponse(_Response):
    success: bool = True
    stage: Literal["confirmed_execution"] = "confirmed_execution"
    parsed_intent: ParsedIntent
    query_result: QueryResult
    original_query: str


class ErrorResponse(_Response):
    success: bool = False
    error: str
    stage: str
    original_query: str


class ValidationResponse(_Response):
    valid: bool
    length: int
    has_local_script_characters: bool
    has_numbers: bool
    estimated_domain: str | None
    suggestions: list[str] = Field(default_factory=list)


class FieldInfo(_Response):
    name: str
    label: str
    type: str
    filterable: bool
    options: list[str] = Field(default_factory=list)
    reference: str | None = None


class DomainInfo(_Response):
    key: str
    label: str
    description: str
    field_count: int
    default_fields: list[str]
    keywords: dict[str, list[str]]
    examples: list[dict[str, str]]


class StatusResponse(_Response):
    status: str = "operational"
    architecture: str = "two-stage"
    parsing_mode: Literal["llm-enabled", "rules-only"]
    supported_actions: list[str]
    max_rows: int
    schema_info: dict[str, Any]
    timestamp: str


ProcessResponse = CompleteResponse | ConfirmationRequired | ErrorResponse
