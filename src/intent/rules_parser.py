"""Rules-based Hebrew/English intent extractor (always available).

This extractor is deterministic and never raises for unparseable input:
    - the domain comes from the registry's keyword estimation,
    - the action from a small quantifier vocabulary,
    - filters from known comparative/prepositional patterns,
    - confidence from which of those signals were found.

Filters are read from the normalized text left to right by pattern family. Each family claims
the character span it matched, so the same digits are never read twice (e.g. "תב"ר 2024" is a
tabar number, not a year).
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import date

from src.domains.models import DomainSchema, FieldDefinition, FieldType
from src.domains.registry import SchemaRegistry
from src.intent import dates
from src.intent.dictionaries import (
    ACTION_LABELS_HE,
    AMOUNT_MULTIPLIERS,
    DEPARTMENT_SYNONYMS,
    GT_PHRASES,
    LT_PHRASES,
    PhraseMatch,
    _build_regex_alternation,
    detect_action,
    enum_value_regex,
    parse_amount,
)
from src.intent.normalize import normalize_text
from src.intent.schema import Action, FilterValue, IntentSource, ParsedIntent

logger = logging.getLogger(__name__)

# Confidence weights (see DESIGN.md).
DOMAIN_WEIGHT = 0.40
ACTION_WEIGHT = 0.20
FIRST_FILTER_WEIGHT = 0.15
EXTRA_FILTER_WEIGHT = 0.05
FILTER_WEIGHT_CAP = 0.25
SECONDARY_WEIGHT = 0.05
NO_DOMAIN_BASELINE = 0.10
NO_DOMAIN_ACTION_BONUS = 0.05
CONFIDENCE_CAP = 0.95

_NUM = r"\d[\d,]*(?:\.\d+)?"
_MULT = _build_regex_alternation(list(AMOUNT_MULTIPLIERS))
_PERCENT = r"%|אחוז|אחוזים|percent"

_TABAR_NUMBER_RE = re.compile(
    r"(?<!\w)[הבלמש]?(?:תב\"ר|תבר|tabar|project|פרויקט)\s*(?:מספר|מס|number|no|#)?\s*-?\s*"
    r"(?P<num>\d{2,8})(?![\d.,/])"
)

_BETWEEN_RE = re.compile(
    rf"(?<!\w)(?:בין|between)\s+(?P<a>{_NUM})\s*(?P<ma>{_MULT})?\s*"
    rf"(?:לבין|ל|ו|and|to|-)\s*-?\s*(?P<b>{_NUM})\s*(?P<mb>{_MULT})?(?!\w)"
    rf"(?:\s*(?P<pct>{_PERCENT}))?"
)


def _comparative_re(phrases: tuple[str, ...]) -> re.Pattern[str]:
    return re.compile(
        rf"(?<!\w)(?:{_build_regex_alternation(phrases)})\s*-?\s*(?P<v>{_NUM})\s*(?P<m>{_MULT})?(?!\w)"
        rf"(?:\s*(?P<pct>{_PERCENT}))?"
    )


_GT_RE = _comparative_re(GT_PHRASES)
_LT_RE = _comparative_re(LT_PHRASES)

_LIMIT_RES: tuple[re.Pattern[str], ...] = (
    re.compile(
        r"(?<!\w)(?P<n>\d{1,4})\s+(?:ה)?(?:ראשונים|ראשונות|אחרונים|אחרונות|גבוהים|גבוהות|גדולים|גדולות)(?!\w)"
    ),
    re.compile(r"(?<!\w)(?:top|first|last|limit)\s+(?P<n>\d{1,4})(?!\w)"),
    re.compile(r"(?<!\w)(?:הצג|הראה|show)\s+(?P<n>\d{1,4})(?!\w)"),
)

_MINISTRY_HE_RE = re.compile(
    r"(?<!\w)[ובלמש]?משרד\s+(?P<name>ה?[א-ת\"']{2,}(?:\s+וה[א-ת\"']{2,})?)"
)
_MINISTRY_EN_RE = re.compile(r"(?<!\w)ministry\s+of\s+(?:the\s+)?(?P<name>[a-z]{3,})(?!\w)")

_SUPPLIER_RE = re.compile(
    r"(?<!\w)(?:[הבלמש]{1,2})?(?:חברת|חברה|ספק|ספקית|company|supplier|vendor)\s+"
    r"(?P<name>[א-תa-z0-9\"'\-]{2,})"
)

_ENTITY_RE = re.compile(r"(?<!\w)(?:של|עבור|for|of)\s+(?P<rest>.+)$")

_STOP_TOKENS = frozenset({"יש", "כל", "הכל", "את", "the", "all", "with", "עם", "ב", "in"})


@dataclass
class _Scan:
    """Normalized text plus the spans already claimed by an extracted filter."""

    text: str
    claimed: list[tuple[int, int]] = field(default_factory=list)

    def is_free(self, span: tuple[int, int]) -> bool:
        start, end = span
        return all(end <= s or start >= e for s, e in self.claimed)

    def claim(self, span: tuple[int, int]) -> None:
        self.claimed.append(span)


def _number_value(value: float) -> int | float:
    return int(value) if float(value).is_integer() else value


def _looks_like_year(raw: str, multiplier: str | None) -> bool:
    return multiplier is None and re.fullmatch(r"(?:19|20)\d{2}", raw) is not None


def _filterable(domain: DomainSchema, name: str | None) -> FieldDefinition | None:
    if name is None:
        return None
    f = domain.field(name)
    return f if f is not None and f.filterable else None


def _percentage_field(domain: DomainSchema) -> FieldDefinition | None:
    for f in domain.filterable_fields:
        if f.type == FieldType.number and "percentage" in f.name:
            return f
    return None


class RuleBasedExtractor:
    """Deterministic keyword/pattern extractor over the schema registry.

    `today` pins relative expressions ("השנה", "last year", month without a year) for tests.
    """

    def __init__(self, *, today: date | None = None) -> None:
        self._today = today

    def extract_intent(
            self,
            query: str,
            registry: SchemaRegistry,
            *,
            timeout_s: float | None = None,
    ) -> ParsedIntent:
        """Extract a best-effort intent; never raises for unparseable input."""

        text = normalize_text(query)
        if not text:
            return ParsedIntent(
                intent="empty_query",
                domain=None,
                confidence=0.0,
                explanation="השאלה ריקה",
                source=IntentSource.rules,
                suggestions=registry.suggestions,
            )

        domain_key = registry.estimate_domain(text)
        action, action_match = detect_action(text)

        if domain_key is None:
            confidence = NO_DOMAIN_BASELINE + (NO_DOMAIN_ACTION_BONUS if action_match else 0.0)
            logger.info("rules: no domain matched action=%s confidence=%.2f", action, confidence)
            return ParsedIntent(
                intent="unknown",
                domain=None,
                action=action,
                confidence=round(confidence, 2),
                explanation="לא זוהה תחום מתאים לשאלה",
                source=IntentSource.rules,
                suggestions=registry.suggestions,
            )

        domain = registry.get_domain(domain_key)
        scan = _Scan(text=text)
        filters = self._extract_filters(scan, domain)

        fields: list[str] | None = None
        if action == Action.group and action_match is not None:
            group_field = _group_field(domain, text, action_match)
            if group_field is not None:
                fields = [group_field]

        secondary = registry.secondary_hits(domain_key, text)
        confidence = _score(
            has_action=action_match is not None,
            filter_count=len(filters),
            has_secondary=bool(secondary),
        )

        intent_name = f"{action.value}_{domain.key}" + ("_filtered" if filters else "")
        logger.info(
            "rules: domain=%s action=%s filters=%s confidence=%.2f",
            domain.key,
            action,
            sorted(filters),
            confidence,
        )
        return ParsedIntent(
            intent=intent_name,
            domain=domain.key,
            action=action,
            filters=filters,
            fields=fields,
            confidence=confidence,
            explanation=_explain(domain, action, filters, fields),
            source=IntentSource.rules,
        )

    def _extract_filters(self, scan: _Scan, domain: DomainSchema) -> dict[str, FilterValue]:
        filters: dict[str, FilterValue] = {}

        self._tabar_number(scan, domain, filters)
        self._date_range(scan, domain, filters)
        self._amounts(scan, domain, filters)
        self._years(scan, domain, filters)
        self._limit(scan, filters)
        self._ministry(scan, domain, filters)
        self._supplier(scan, domain, filters)
        self._enum_values(scan, domain, filters)
        if not filters:
            self._entity_search(scan, domain, filters)
        return filters

    def _tabar_number(self, scan: _Scan, domain: DomainSchema, filters: dict[str, FilterValue]) -> None:
        if _filterable(domain, "tabar_number") is None:
            return
        m = _TABAR_NUMBER_RE.search(scan.text)
        if m and scan.is_free(m.span()):
            filters["tabar_number"] = m.group("num")
            scan.claim(m.span())

    def _date_range(self, scan: _Scan, domain: DomainSchema, filters: dict[str, FilterValue]) -> None:
        if domain.date_field is None:
            return
        match = dates.extract_date_range(scan.text, today=self._today)
        if match is None or not scan.is_free(match.span):
            return
        if match.start_date is not None:
            filters["date_from"] = match.start_date.isoformat()
        if match.end_date is not None:
            filters["date_to"] = match.end_date.isoformat()
        scan.claim(match.span)

    def _amounts(self, scan: _Scan, domain: DomainSchema, filters: dict[str, FilterValue]) -> None:
        m = _BETWEEN_RE.search(scan.text)
        if m and scan.is_free(m.span()):
            if _looks_like_year(m.group("a"), m.group("ma")) and _looks_like_year(
                    m.group("b"), m.group("mb")
            ):
                if self._year_range(domain, int(m.group("a")), int(m.group("b")), filters):
                    scan.claim(m.span())
                return

            target = _amount_target(domain, bool(m.group("pct")))
            low = parse_amount(m.group("a"), m.group("ma"))
            high = parse_amount(m.group("b"), m.group("mb"))
            if target is not None and low is not None and high is not None:
                low, high = min(low, high), max(low, high)
                filters[f"{target.name}_from"] = _number_value(low)
                filters[f"{target.name}_to"] = _number_value(high)
                scan.claim(m.span())
            return

        for pattern, suffix in ((_GT_RE, "gt"), (_LT_RE, "lt")):
            for m in pattern.finditer(scan.text):
                if not scan.is_free(m.span()):
                    continue
                target = _amount_target(domain, bool(m.group("pct")))
                value = parse_amount(m.group("v"), m.group("m"))
                if target is None or value is None:
                    break
                filters[f"{target.name}_{suffix}"] = _number_value(value)
                scan.claim(m.span())
                break

    def _year_range(
            self, domain: DomainSchema, start: int, end: int, filters: dict[str, FilterValue]
    ) -> bool:
        start, end = min(start, end), max(start, end)
        year_field = _year_field(domain)
        if year_field is None:
            return False
        if year_field.type == FieldType.date:
            filters[f"{year_field.name}_from"] = dates.year_bounds(start)[0].isoformat()
            filters[f"{year_field.name}_to"] = dates.year_bounds(end)[1].isoformat()
        else:
            filters[f"{year_field.name}_from"] = start
            filters[f"{year_field.name}_to"] = end
        return True

    def _years(self, scan: _Scan, domain: DomainSchema, filters: dict[str, FilterValue]) -> None:
        if domain.year_filter is None or domain.year_filter in filters:
            return

        relative = dates.extract_relative_year(scan.text, today=self._today)
        if relative is not None and scan.is_free(relative.span):
            filters[domain.year_filter] = relative.year
            scan.claim(relative.span)
            return

        for match in dates.extract_years(scan.text):
            if scan.is_free(match.span):
                filters[domain.year_filter] = match.year
                scan.claim(match.span)
                return

    def _limit(self, scan: _Scan, filters: dict[str, FilterValue]) -> None:
        for pattern in _LIMIT_RES:
            m = pattern.search(scan.text)
            if m and scan.is_free(m.span()):
                value = int(m.group("n"))
                if value > 0:
                    filters["limit"] = value
                    scan.claim(m.span())
                return

    def _ministry(self, scan: _Scan, domain: DomainSchema, filters: dict[str, FilterValue]) -> None:
        if _filterable(domain, "ministry") is None:
            return

        m = _MINISTRY_HE_RE.search(scan.text)
        if m and scan.is_free(m.span()):
            filters["ministry"] = m.group("name").removeprefix("ה")
            scan.claim(m.span())
            return

        m = _MINISTRY_EN_RE.search(scan.text)
        if m and scan.is_free(m.span()):
            name = m.group("name")
            for hebrew, synonyms in DEPARTMENT_SYNONYMS.items():
                if name in synonyms:
                    name = hebrew
                    break
            filters["ministry"] = name
            scan.claim(m.span())

    def _supplier(self, scan: _Scan, domain: DomainSchema, filters: dict[str, FilterValue]) -> None:
        if _filterable(domain, "supplier_name") is None:
            return
        m = _SUPPLIER_RE.search(scan.text)
        if m and scan.is_free(m.span()) and not _follows_group_word(scan.text, m.start()):
            filters["supplier_name"] = m.group("name")
            scan.claim(m.span())

    def _enum_values(self, scan: _Scan, domain: DomainSchema, filters: dict[str, FilterValue]) -> None:
        keyword_spans = _keyword_spans(scan.text, domain)

        for f in domain.filterable_fields:
            if f.type != FieldType.enum or f.name in filters:
                continue
            # Longer options first so "לא שולם" wins over "שולם".
            for option in sorted(f.options, key=lambda o: (-len(o), o)):
                found = False
                for m in enum_value_regex(option).finditer(scan.text):
                    span = m.span()
                    if not scan.is_free(span):
                        continue
                    if any(not (span[1] <= s or span[0] >= e) for s, e in keyword_spans):
                        continue
                    filters[f.name] = option
                    scan.claim(span)
                    found = True
                    break
                if found:
                    break

    def _entity_search(self, scan: _Scan, domain: DomainSchema, filters: dict[str, FilterValue]) -> None:
        m = _ENTITY_RE.search(scan.text)
        if not m:
            return

        keywords = [normalize_text(k) for k in (*domain.keywords.primary, *domain.keywords.secondary)]
        tokens: list[str] = []
        for token in m.group("rest").split()[:3]:
            if token.isdigit() or token in _STOP_TOKENS:
                break
            if any(k and k in token for k in keywords):
                continue
            tokens.append(token)

        if tokens:
            filters["search"] = " ".join(tokens)
            scan.claim(m.span())


def _follows_group_word(text: str, pos: int) -> bool:
    return text[:pos].rstrip().endswith(("לפי", "by"))


def _amount_target(domain: DomainSchema, is_percent: bool) -> FieldDefinition | None:
    if is_percent:
        pct = _percentage_field(domain)
        if pct is not None:
            return pct
    return _filterable(domain, domain.amount_field)


def _year_field(domain: DomainSchema) -> FieldDefinition | None:
    if domain.year_filter is None:
        return None
    direct = _filterable(domain, domain.year_filter)
    if direct is not None:
        return direct
    return _filterable(domain, domain.date_field)


def _keyword_spans(text: str, domain: DomainSchema) -> list[tuple[int, int]]:
    spans: list[tuple[int, int]] = []
    for keyword in domain.keywords.primary:
        needle = normalize_text(keyword)
        if not needle:
            continue
        for m in re.finditer(re.escape(needle), text):
            spans.append(m.span())
    return spans


def _group_field(domain: DomainSchema, text: str, match: PhraseMatch) -> str | None:
    """Resolve the field named right after the grouping word ("לפי משרד", "by status")."""

    tail = text[match.end:].split()
    if not tail:
        return None

    candidates = [tail[0], tail[0].removeprefix("ה")]
    if len(tail) > 1:
        candidates.insert(0, f"{tail[0]} {tail[1]}")

    selectable = [f for f in domain.fields if f.selectable]
    for candidate in candidates:
        for f in selectable:
            label = normalize_text(f.label)
            if candidate in (f.name, label) or label.split()[0] == candidate:
                return f.name
        for f in selectable:
            if f.name.startswith(candidate) and len(candidate) >= 3:
                return f.name
    return None


def _score(*, has_action: bool, filter_count: int, has_secondary: bool) -> float:
    confidence = DOMAIN_WEIGHT
    if has_action:
        confidence += ACTION_WEIGHT
    if filter_count:
        confidence += min(
            FIRST_FILTER_WEIGHT + EXTRA_FILTER_WEIGHT * (filter_count - 1), FILTER_WEIGHT_CAP
        )
    if has_secondary:
        confidence += SECONDARY_WEIGHT
    return round(min(confidence, CONFIDENCE_CAP), 2)


def _explain(
        domain: DomainSchema,
        action: Action,
        filters: dict[str, FilterValue],
        fields: list[str] | None,
) -> str:
    parts = [f"{ACTION_LABELS_HE[action]} {domain.label}"]
    if fields:
        labels = [(domain.field(name).label if domain.field(name) else name) for name in fields]
        parts.append(f"לפי {', '.join(labels)}")
    if filters:
        parts.append("עם סינון: " + ", ".join(f"{k}={v}" for k, v in filters.items()))
    return " ".join(parts)
