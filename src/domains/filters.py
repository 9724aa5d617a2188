"""Filter key vocabulary.

A filter key is either a plain field name (equality / contains), a field name with a comparison
suffix, or one of the synthetic keys shared by every domain:

    amount_gt / amount_lt            number and date fields
    open_date_from / open_date_to    number and date fields (inclusive)
    transaction_year                 date fields ("<base>_year" or "<base>_date" + "_year")
    search                           multi-field contains match
    limit                            requested row count (capped)
    date_from / date_to              the domain's `date_field`
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from src.domains.models import DomainSchema, FieldDefinition, FieldType

FilterOp = Literal["eq", "gt", "lt", "from", "to", "year"]

RESERVED_FILTERS: tuple[str, ...] = ("search", "limit")
DATE_RANGE_FILTERS: tuple[str, ...] = ("date_from", "date_to")

_SUFFIX_OPS: tuple[tuple[str, FilterOp], ...] = (
    ("_from", "from"),
    ("_year", "year"),
    ("_gt", "gt"),
    ("_lt", "lt"),
    ("_to", "to"),
)

_RANGE_TYPES = (FieldType.number, FieldType.date)


@dataclass(frozen=True)
class ResolvedFilter:
    """A filter key resolved against a domain field."""

    key: str
    field: FieldDefinition
    op: FilterOp


def split_filter_key(key: str) -> tuple[str, FilterOp]:
    """Split `amount_gt` into `("amount", "gt")`; plain keys map to `(key, "eq")`."""

    for suffix, op in _SUFFIX_OPS:
        if key.endswith(suffix) and len(key) > len(suffix):
            return key[: -len(suffix)], op
    return key, "eq"


def resolve_filter_field(domain: DomainSchema, key: str) -> ResolvedFilter | None:
    """Resolve a filter key to the filterable field it constrains, if any.

    Synthetic keys (`search`, `limit`, `date_from`, `date_to`) are not field filters and resolve
    to `None`; callers handle them separately.
    """

    direct = domain.field(key)
    if direct is not None:
        return ResolvedFilter(key=key, field=direct, op="eq") if direct.filterable else None

    if key in RESERVED_FILTERS or key in DATE_RANGE_FILTERS:
        return None

    base, op = split_filter_key(key)
    if op == "eq":
        return None

    candidates = [base]
    if op == "year":
        candidates.append(f"{base}_date")

    for name in candidates:
        field = domain.field(name)
        if field is None or not field.filterable:
            continue
        if op == "year" and field.type != FieldType.date:
            continue
        if op != "year" and field.type not in _RANGE_TYPES:
            continue
        return ResolvedFilter(key=key, field=field, op=op)
    return None


def filter_vocabulary(domain: DomainSchema) -> list[str]:
    """Every filter key the domain accepts, in field declaration order."""

    keys: list[str] = []
    for f in domain.filterable_fields:
        keys.append(f.name)
        if f.type in _RANGE_TYPES:
            keys.extend(f"{f.name}{suffix}" for suffix in ("_gt", "_lt", "_from", "_to"))
        if f.type == FieldType.date:
            keys.append(f"{f.name}_year")
            if f.name.endswith("_date"):
                keys.append(f"{f.name.removesuffix('_date')}_year")

    keys.extend(RESERVED_FILTERS)
    if domain.date_field is not None:
        keys.extend(DATE_RANGE_FILTERS)
    return keys


def accepts_filter(domain: DomainSchema, key: str) -> bool:
    """Whether the filter key belongs to the domain's documented filter language."""

    if key in RESERVED_FILTERS:
        return True
    if key in DATE_RANGE_FILTERS:
        return domain.date_field is not None
    return resolve_filter_field(domain, key) is not None
