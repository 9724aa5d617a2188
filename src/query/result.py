"""Query result models (Pydantic).

Results serialize with camelCase keys (`totalRows`, `executedAt`, ...), which is the shape the
transports return to callers.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


class ResultColumn(_CamelModel):
    """Output column: key in each row, display label, value type."""

    key: str
    label: str
    type: str


class ResultSummary(_CamelModel):
    total_rows: int
    message: str
    intent: str
    domain: str
    action: str
    filters: dict[str, Any] = Field(default_factory=dict)


class ResultMetadata(_CamelModel):
    executed_at: datetime
    query_source: str
    confidence: float


class QueryResult(_CamelModel):
    """Typed tabular result of one Stage 2 execution."""

    columns: list[ResultColumn]
    rows: list[dict[str, Any]]
    summary: ResultSummary
    metadata: ResultMetadata
