"""Schema catalog models (Pydantic).

These models describe what users may ask about: domains, their fields, and the keyword lists used
for lightweight domain estimation. Instances are frozen; the catalog never changes at runtime.
"""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, model_validator


class FieldType(StrEnum):
    """Value types a domain field can have."""

    string = "string"
    number = "number"
    date = "date"
    enum = "enum"
    relation = "relation"


class FieldDefinition(BaseModel):
    """A single field of a domain."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str
    label: str
    type: FieldType
    filterable: bool = True
    selectable: bool = True
    options: tuple[str, ...] = ()
    reference: str | None = None

    @model_validator(mode="after")
    def validate_type_extras(self) -> FieldDefinition:
        """Enums must declare options; relations must declare the referenced domain."""

        if self.type == FieldType.enum and not self.options:
            raise ValueError(f"enum field {self.name!r} must declare options")
        if self.type == FieldType.relation and not self.reference:
            raise ValueError(f"relation field {self.name!r} must declare a reference")
        return self


class KeywordSet(BaseModel):
    """Keywords used for domain estimation (primary) and confidence scoring (secondary)."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    primary: tuple[str, ...]
    secondary: tuple[str, ...] = ()


class ExampleQuery(BaseModel):
    """A sample question shown to users for guidance."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    query: str
    domain: str
    description: str


class DomainSchema(BaseModel):
    """A queryable domain: fields, default output fields, and estimation keywords."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    key: str
    label: str
    description: str
    fields: tuple[FieldDefinition, ...]
    default_fields: tuple[str, ...]
    keywords: KeywordSet
    amount_field: str | None = None
    date_field: str | None = None
    year_filter: str | None = None
    examples: tuple[ExampleQuery, ...] = ()

    @model_validator(mode="after")
    def validate_field_references(self) -> DomainSchema:
        """Default fields and measure/date fields must exist in the domain."""

        names = {f.name for f in self.fields}
        if len(names) != len(self.fields):
            raise ValueError(f"domain {self.key!r} declares duplicate field names")

        missing = [name for name in self.default_fields if name not in names]
        if missing:
            raise ValueError(f"domain {self.key!r} default fields are not declared: {missing}")

        for attr in ("amount_field", "date_field"):
            value = getattr(self, attr)
            if value is not None and value not in names:
                raise ValueError(f"domain {self.key!r} {attr}={value!r} is not a declared field")

        foreign = [ex.query for ex in self.examples if ex.domain != self.key]
        if foreign:
            raise ValueError(f"domain {self.key!r} lists examples of other domains: {foreign}")
        return self

    def field(self, name: str) -> FieldDefinition | None:
        """Return the field definition with the given name, if any."""

        for f in self.fields:
            if f.name == name:
                return f
        return None

    @property
    def filterable_fields(self) -> tuple[FieldDefinition, ...]:
        return tuple(f for f in self.fields if f.filterable)


class BudgetSchema(BaseModel):
    """The versioned catalog of every domain available to the query pipeline."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    version: str
    name: str
    description: str
    last_updated: str
    max_results: int = Field(default=100, gt=0)
    supported_actions: tuple[str, ...]
    domains: tuple[DomainSchema, ...]
    suggestions: tuple[str, ...] = ()

    @model_validator(mode="after")
    def validate_catalog(self) -> BudgetSchema:
        """Domain keys are unique and relations point at known domains."""

        keys = [d.key for d in self.domains]
        if len(set(keys)) != len(keys):
            raise ValueError("domain keys must be unique")

        for domain in self.domains:
            for f in domain.fields:
                if f.reference is not None and f.reference not in keys:
                    raise ValueError(
                        f"field {domain.key}.{f.name} references unknown domain {f.reference!r}"
                    )
        return self

    @property
    def examples(self) -> tuple[ExampleQuery, ...]:
        return tuple(ex for d in self.domains for ex in d.examples)
