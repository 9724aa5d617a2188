"""Allowlisted SQL identifiers.

All column expressions referenced in generated SQL must come from a `DomainShape`; no
user-provided identifier should ever be interpolated into SQL. Only filter *values* become bound
parameters.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

ColumnKind = Literal["text", "number", "date"]
MatchMode = Literal["exact", "contains"]


@dataclass(frozen=True)
class ColumnRef:
    """A fully-qualified column expression for one domain field.

    `exists` names a correlated source (`"<table> <alias> WHERE <correlation>"`); filters on such
    a column are wrapped in `EXISTS (SELECT 1 FROM <exists> AND ...)` instead of joining rows in.
    """

    expr: str
    kind: ColumnKind
    match: MatchMode = "exact"
    selectable: bool = True
    exists: str | None = None


@dataclass(frozen=True)
class DomainShape:
    """The static join shape and column map of one domain."""

    key: str
    from_sql: str
    columns: dict[str, ColumnRef]
    default_fields: tuple[str, ...]
    order_by: str
    tenant_column: str
    measure: str
    group_default: str
    search_fields: tuple[str, ...] = ()
    date_field: str | None = None
