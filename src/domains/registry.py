"""Read-only schema registry.

The registry wraps the versioned catalog and answers the questions the parser, the compiler and the
introspection endpoints ask about it. It is built once at startup and passed explicitly to every
component that needs it.
"""

from __future__ import annotations

from typing import Any

from src.domains.catalog import CITY_BUDGET_SCHEMA
from src.domains.filters import accepts_filter, filter_vocabulary
from src.domains.models import BudgetSchema, DomainSchema, ExampleQuery
from src.intent.normalize import normalize_text


class DomainNotFoundError(LookupError):
    """Raised when an intent references a domain that is not in the registry."""

    def __init__(self, domain: str | None) -> None:
        super().__init__(f"unknown domain: {domain!r}")
        self.domain = domain


class SchemaRegistry:
    """Lookup and estimation over a `BudgetSchema`."""

    def __init__(self, schema: BudgetSchema) -> None:
        self._schema = schema
        self._domains: dict[str, DomainSchema] = {d.key: d for d in schema.domains}
        # Keywords are compared in normalized form (gershayim unified, lower-cased).
        self._primary: list[tuple[str, tuple[str, ...]]] = [
            (d.key, tuple(normalize_text(k) for k in d.keywords.primary)) for d in schema.domains
        ]

    @property
    def schema(self) -> BudgetSchema:
        return self._schema

    @property
    def version(self) -> str:
        return self._schema.version

    @property
    def max_results(self) -> int:
        return self._schema.max_results

    @property
    def supported_actions(self) -> tuple[str, ...]:
        return self._schema.supported_actions

    @property
    def suggestions(self) -> list[str]:
        return list(self._schema.suggestions)

    def get_domain(self, key: str | None) -> DomainSchema:
        """Return the domain for `key`.

        Raises:
            DomainNotFoundError: If `key` is empty or not a registered domain.
        """

        domain = self._domains.get(key) if key else None
        if domain is None:
            raise DomainNotFoundError(key)
        return domain

    def has_domain(self, key: str | None) -> bool:
        return key is not None and key in self._domains

    def list_domains(self) -> list[DomainSchema]:
        return list(self._schema.domains)

    def estimate_domain(self, text: str) -> str | None:
        """Return the first domain whose primary keywords occur in the text.

        Domains are scanned in catalog order, so that order encodes priority.
        """

        normalized = normalize_text(text)
        if not normalized:
            return None

        for key, keywords in self._primary:
            if any(keyword and keyword in normalized for keyword in keywords):
                return key
        return None

    def secondary_hits(self, key: str, text: str) -> list[str]:
        """Secondary keywords of a domain present in the (normalized) text."""

        normalized = normalize_text(text)
        domain = self.get_domain(key)
        return [kw for kw in domain.keywords.secondary if normalize_text(kw) in normalized]

    def filter_vocabulary(self, key: str) -> list[str]:
        return filter_vocabulary(self.get_domain(key))

    def accepts_filter(self, key: str, filter_key: str) -> bool:
        return accepts_filter(self.get_domain(key), filter_key)

    def examples(self, domain: str | None = None) -> list[ExampleQuery]:
        """Example queries, optionally restricted to one domain."""

        if domain is None:
            return list(self._schema.examples)
        return list(self.get_domain(domain).examples)

    def schema_summary(self) -> dict[str, Any]:
        """JSON-serializable catalog view used to constrain the language-model extractor."""

        return {
            "version": self._schema.version,
            "actions": list(self._schema.supported_actions),
            "domains": [
                {
                    "key": d.key,
                    "label": d.label,
                    "description": d.description,
                    "fields": [
                        {
                            "name": f.name,
                            "label": f.label,
                            "type": f.type.value,
                            **({"options": list(f.options)} if f.options else {}),
                        }
                        for f in d.fields
                    ],
                    "default_fields": list(d.default_fields),
                    "filters": filter_vocabulary(d),
                    "examples": [ex.query for ex in d.examples],
                }
                for d in self._schema.domains
            ],
        }

    def schema_info(self) -> dict[str, Any]:
        return {
            "version": self._schema.version,
            "name": self._schema.name,
            "lastUpdated": self._schema.last_updated,
            "domainCount": len(self._schema.domains),
            "totalFields": sum(len(d.fields) for d in self._schema.domains),
        }


def default_registry() -> SchemaRegistry:
    """Registry over the built-in municipal budget catalog."""

    return SchemaRegistry(CITY_BUDGET_SCHEMA)
