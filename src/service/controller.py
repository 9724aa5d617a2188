"""Orchestration controller.

Sequences Stage 1 (intent parsing), the confidence gate and Stage 2 (query compilation) behind the
operation set transports call: `process`, `confirm`, `validate` and read-only introspection.
"""

from __future__ import annotations

import asyncio
import logging
import re
import time
from datetime import UTC, datetime
from typing import Any

from pydantic import ValidationError

from src.domains.registry import DomainNotFoundError, SchemaRegistry
from src.intent.parser import IntentParser
from src.intent.schema import ParsedIntent, intent_from_obj
from src.query.compiler import QueryCompiler, QueryExecutionError
from src.service.responses import (
    CompleteResponse,
    ConfirmationRequired,
    ConfirmedResponse,
    DomainInfo,
    ErrorResponse,
    FieldInfo,
    ProcessOptions,
    ProcessResponse,
    StatusResponse,
    ValidationResponse,
)
from src.service.workflow import DEFAULT_MIN_CONFIDENCE, confirmation_message, needs_confirmation

logger = logging.getLogger(__name__)

_LOCAL_SCRIPT_RE = re.compile(r"[א-ת]")
_DIGIT_RE = re.compile(r"\d")


class InvalidInputError(ValueError):
    """Raised for empty queries and for confirm requests carrying an unusable intent."""


def _require_query(query: str | None) -> str:
    if query is None or not query.strip():
        raise InvalidInputError("query cannot be empty")
    return query


class SmartQueryController:
    """Two-stage query pipeline with confidence-gated confirmation.

    All collaborators are injected; the controller itself keeps no per-request state, so one
    instance serves concurrent requests.
    """

    def __init__(
            self,
            registry: SchemaRegistry,
            parser: IntentParser,
            compiler: QueryCompiler,
            *,
            min_confidence: float = DEFAULT_MIN_CONFIDENCE,
    ) -> None:
        self._registry = registry
        self._parser = parser
        self._compiler = compiler
        self._min_confidence = min_confidence

    async def process(
            self,
            query: str,
            options: ProcessOptions | None = None,
            *,
            tenant_id: Any | None = None,
    ) -> ProcessResponse:
        """Parse a free-text query and execute it unless it needs confirmation.

        Raises:
            InvalidInputError: If the query is empty or whitespace-only.
        """

        query = _require_query(query)
        options = options or ProcessOptions()
        started = time.perf_counter()

        min_confidence = (
            options.min_confidence if options.min_confidence is not None else self._min_confidence
        )
        timeout_s = options.timeout / 1000 if options.timeout else None

        # The model call blocks on network I/O; keep it off the event loop.
        intent = await asyncio.to_thread(self._parser.parse, query, timeout_s=timeout_s)

        if needs_confirmation(intent, min_confidence):
            logger.info(
                "process: stage=parsing domain=%s confidence=%.2f min_confidence=%.2f",
                intent.domain,
                intent.confidence,
                min_confidence,
            )
            return ConfirmationRequired(
                parsed_intent=intent,
                message=confirmation_message(intent),
            )

        try:
            result = await self._compiler.execute(intent, tenant_id=tenant_id)
        except QueryExecutionError as exc:
            return ErrorResponse(error=exc.public_message, stage="execution", original_query=query)

        elapsed_ms = int((time.perf_counter() - started) * 1000)
        logger.info(
            "process: stage=complete domain=%s action=%s rows=%d latency_ms=%d",
            intent.domain,
            intent.action,
            result.summary.total_rows,
            elapsed_ms,
        )
        return CompleteResponse(
            parsed_intent=intent,
            query_result=result,
            processing_time=f"{elapsed_ms}ms",
        )

    async def confirm(
            self,
            parsed_intent: ParsedIntent | dict[str, Any],
            original_query: str,
            *,
            tenant_id: Any | None = None,
    ) -> ConfirmedResponse | ErrorResponse:
        """Execute a previously returned intent exactly as given, without re-parsing.

        Raises:
            InvalidInputError: If the intent is malformed, has no domain, or names an unknown one.
        """

        if isinstance(parsed_intent, ParsedIntent):
            intent = parsed_intent
        else:
            try:
                intent = intent_from_obj(parsed_intent)
            except ValidationError as exc:
                raise InvalidInputError("confirmed intent is not a valid parsed intent") from exc

        if intent.domain is None:
            raise InvalidInputError("confirmed intent has no domain")

        try:
            result = await self._compiler.execute(intent, tenant_id=tenant_id)
        except DomainNotFoundError as exc:
            raise InvalidInputError(f"confirmed intent references unknown domain {exc.domain!r}") from exc
        except QueryExecutionError as exc:
            return ErrorResponse(
                error=exc.public_message,
                stage="confirmed_execution",
                original_query=original_query,
            )

        logger.info(
            "confirm: domain=%s action=%s rows=%d",
            intent.domain,
            intent.action,
            result.summary.total_rows,
        )
        return ConfirmedResponse(
            parsed_intent=intent,
            query_result=result,
            original_query=original_query,
        )

    def validate(self, query: str) -> ValidationResponse:
        """Surface-level checks and domain estimation; never parses or executes.

        Raises:
            InvalidInputError: If the query is empty or whitespace-only.
        """

        query = _require_query(query)
        estimated = self._registry.estimate_domain(query)
        return ValidationResponse(
            valid=True,
            length=len(query),
            has_local_script_characters=bool(_LOCAL_SCRIPT_RE.search(query)),
            has_numbers=bool(_DIGIT_RE.search(query)),
            estimated_domain=estimated,
            suggestions=[] if estimated else self._registry.suggestions,
        )

    def list_domains(self) -> list[DomainInfo]:
        return [
            DomainInfo(
                key=d.key,
                label=d.label,
                description=d.description,
                field_count=len(d.fields),
                default_fields=list(d.default_fields),
                keywords={
                    "primary": list(d.keywords.primary),
                    "secondary": list(d.keywords.secondary),
                },
                examples=[ex.model_dump() for ex in d.examples],
            )
            for d in self._registry.list_domains()
        ]

    def domain_fields(self, domain: str) -> list[FieldInfo]:
        """Field definitions of one domain.

        Raises:
            DomainNotFoundError: If the domain is not registered.
        """

        return [
            FieldInfo(
                name=f.name,
                label=f.label,
                type=f.type.value,
                filterable=f.filterable,
                options=list(f.options),
                reference=f.reference,
            )
            for f in self._registry.get_domain(domain).fields
        ]

    def examples(self, domain: str | None = None) -> dict[str, list[dict[str, str]]]:
        """Example queries grouped by domain key."""

        grouped: dict[str, list[dict[str, str]]] = {}
        for example in self._registry.examples(domain):
            grouped.setdefault(example.domain, []).append(example.model_dump())
        return grouped

    def status(self) -> StatusResponse:
        return StatusResponse(
            parsing_mode="llm-enabled" if self._parser.model_enabled else "rules-only",
            supported_actions=list(self._registry.supported_actions),
            max_rows=self._compiler.max_rows,
            schema_info=self._registry.schema_info(),
            timestamp=datetime.now(UTC).isoformat(),
        )
