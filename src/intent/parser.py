"""Intent parser orchestration (LLM optional; rules-based fallback).

Both extractors implement the same one-method capability (`IntentExtractor`). The parser prefers
the model extractor when one is configured and falls back to the rules extractor on any failure,
so `parse` always returns an inspectable `ParsedIntent`.
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Protocol

from src.domains.registry import SchemaRegistry
from src.intent.llm_parser import ExtractorUnavailableError
from src.intent.rules_parser import RuleBasedExtractor
from src.intent.schema import IntentSource, ParsedIntent

logger = logging.getLogger(__name__)


class IntentExtractor(Protocol):
    """Capability: turn free text into a `ParsedIntent` constrained by the registry."""

    def extract_intent(
            self,
            query: str,
            registry: SchemaRegistry,
            *,
            timeout_s: float | None = None,
    ) -> ParsedIntent:
        ...


class IntentParser:
    """Stage 1: select an extractor, validate its output, and stamp the source tag."""

    def __init__(
            self,
            registry: SchemaRegistry,
            *,
            model_extractor: IntentExtractor | None = None,
            rules_extractor: IntentExtractor | None = None,
            model_timeout_s: float | None = None,
    ) -> None:
        self._registry = registry
        self._model = model_extractor
        self._rules = rules_extractor or RuleBasedExtractor()
        self._model_timeout_s = model_timeout_s
        # Model calls run here so a hung request can be abandoned at the deadline.
        self._model_pool = ThreadPoolExecutor(max_workers=4, thread_name_prefix="intent-model")

    @property
    def model_enabled(self) -> bool:
        return self._model is not None

    def parse(self, query: str, *, timeout_s: float | None = None) -> ParsedIntent:
        """Parse text into a ParsedIntent.

        Strategy:
            1) If a model extractor is configured, ask it for registry-constrained intent JSON.
            2) On absence, timeout, error or malformed output, fall back to the rules extractor.

        `timeout_s` (or the parser default) bounds the whole model call, not just socket reads.
        """

        started = time.perf_counter()

        if self._model is not None:
            try:
                intent = self._checked(
                    self._call_model(self._model, query, timeout_s), IntentSource.model
                )
                logger.info(
                    "parse: source=model domain=%s action=%s confidence=%.2f latency_ms=%d",
                    intent.domain,
                    intent.action,
                    intent.confidence,
                    (time.perf_counter() - started) * 1000,
                )
                return intent
            except (ExtractorUnavailableError, ValueError) as exc:
                logger.warning("parse: model extractor unavailable, falling back to rules: %s", exc)
            except Exception:  # noqa: BLE001
                # Invalid model output or a broken extractor must never crash the pipeline.
                logger.exception("parse: model extractor failed, falling back to rules")

        intent = self._checked(
            self._rules.extract_intent(query, self._registry, timeout_s=timeout_s),
            IntentSource.rules,
        )
        logger.info(
            "parse: source=rules domain=%s action=%s confidence=%.2f latency_ms=%d",
            intent.domain,
            intent.action,
            intent.confidence,
            (time.perf_counter() - started) * 1000,
        )
        return intent

    def _checked(self, intent: ParsedIntent, source: IntentSource) -> ParsedIntent:
        """Stamp the source and reject fabricated domains."""

        if intent.domain is not None and not self._registry.has_domain(intent.domain):
            raise ValueError(f"extractor returned unknown domain {intent.domain!r}")
        if intent.source != source:
            intent = intent.model_copy(update={"source": source})
        return intent

    def _call_model(
            self, model: IntentExtractor, query: str, timeout_s: float | None
    ) -> ParsedIntent:
        deadline = timeout_s or self._model_timeout_s
        future = self._model_pool.submit(
            model.extract_intent, query, self._registry, timeout_s=deadline
        )
        try:
            return future.result(timeout=deadline)
        except TimeoutError as exc:
            # The worker may still be blocked; its result is discarded.
            future.cancel()
            raise ExtractorUnavailableError(f"model extractor timed out (deadline={deadline}s)") from exc
