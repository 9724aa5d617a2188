"""Tests for extractor selection and rules fallback in the intent parser."""

from __future__ import annotations

import threading
import time

import pytest

from src.domains.registry import SchemaRegistry
from src.intent.llm_parser import ExtractorUnavailableError
from src.intent.parser import IntentParser
from src.intent.schema import Action, IntentSource, ParsedIntent


class _StubExtractor:
    def __init__(self, result: ParsedIntent | Exception) -> None:
        self._result = result
        self.calls: list[tuple[str, float | None]] = []

    def extract_intent(
            self,
            query: str,
            registry: SchemaRegistry,
            *,
            timeout_s: float | None = None,
    ) -> ParsedIntent:
        self.calls.append((query, timeout_s))
        if isinstance(self._result, Exception):
            raise self._result
        return self._result


def _model_intent(**overrides: object) -> ParsedIntent:
    data: dict[str, object] = {
        "intent": "count_tabarim",
        "domain": "tabarim",
        "action": "count",
        "confidence": 0.92,
        "explanation": "ספירת תב״רים",
        "source": "model",
    }
    data.update(overrides)
    return ParsedIntent.model_validate(data)


def test_rules_only_when_no_model(registry: SchemaRegistry) -> None:
    parser = IntentParser(registry)

    intent = parser.parse("כמה פרויקטים פעילים יש")

    assert parser.model_enabled is False
    assert intent.source == IntentSource.rules
    assert intent.action == Action.count


def test_model_result_is_used_and_tagged(registry: SchemaRegistry) -> None:
    model = _StubExtractor(_model_intent(source="rules"))
    parser = IntentParser(registry, model_extractor=model)

    intent = parser.parse("כמה פרויקטים יש", timeout_s=2.5)

    assert intent.source == IntentSource.model
    assert intent.confidence == pytest.approx(0.92)
    assert model.calls == [("כמה פרויקטים יש", 2.5)]


@pytest.mark.parametrize(
    "failure",
    [
        ExtractorUnavailableError("timeout"),
        ValueError("malformed"),
        ConnectionResetError("reset"),
        KeyError("choices"),
    ],
)
def test_model_failure_falls_back_to_rules(registry: SchemaRegistry, failure: Exception) -> None:
    parser = IntentParser(registry, model_extractor=_StubExtractor(failure))

    intent = parser.parse("תב״רים של משרד החינוך")

    assert intent.source == IntentSource.rules
    assert intent.domain == "tabarim"
    assert intent.filters == {"ministry": "חינוך"}


def test_fabricated_model_domain_falls_back_to_rules(registry: SchemaRegistry) -> None:
    parser = IntentParser(
        registry, model_extractor=_StubExtractor(_model_intent(domain="projects"))
    )

    intent = parser.parse("כמה פרויקטים פעילים יש")

    assert intent.source == IntentSource.rules
    assert intent.domain == "tabarim"


def test_rules_extractor_is_injectable(registry: SchemaRegistry) -> None:
    rules = _StubExtractor(_model_intent(source="model", confidence=0.4))
    parser = IntentParser(registry, rules_extractor=rules)

    intent = parser.parse("anything")

    assert intent.source == IntentSource.rules
    assert rules.calls == [("anything", None)]


class _BlockingExtractor:
    """Model extractor that ignores `timeout_s` and blocks until released."""

    def __init__(self) -> None:
        self.release = threading.Event()

    def extract_intent(
            self,
            query: str,
            registry: SchemaRegistry,
            *,
            timeout_s: float | None = None,
    ) -> ParsedIntent:
        self.release.wait(5)
        return _model_intent()


def test_slow_model_is_abandoned_at_deadline(registry: SchemaRegistry) -> None:
    model = _BlockingExtractor()
    parser = IntentParser(registry, model_extractor=model)

    started = time.perf_counter()
    try:
        intent = parser.parse("תב״רים של משרד החינוך", timeout_s=0.1)
    finally:
        model.release.set()
    elapsed = time.perf_counter() - started

    assert intent.source == IntentSource.rules
    assert intent.filters == {"ministry": "חינוך"}
    assert elapsed < 1.0


def test_parser_default_deadline_applies(registry: SchemaRegistry) -> None:
    model = _BlockingExtractor()
    parser = IntentParser(registry, model_extractor=model, model_timeout_s=0.1)

    try:
        intent = parser.parse("כמה פרויקטים פעילים יש")
    finally:
        model.release.set()

    assert intent.source == IntentSource.rules
    assert intent.action == Action.count
