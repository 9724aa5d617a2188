"""Optional LLM-based intent extractor (feature-flagged).

The LLM is only allowed to produce **intent JSON** constrained to the registry's vocabulary. The
output is validated against `ParsedIntent` and must never contain executable SQL. Any failure is
reported as `ExtractorUnavailableError`, which the parser treats as "fall back to rules".
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from http.client import HTTPException
from pathlib import Path
from typing import Any
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from pydantic import ValidationError

from src.domains.registry import SchemaRegistry
from src.intent.schema import IntentSource, ParsedIntent

logger = logging.getLogger(__name__)


class ExtractorUnavailableError(RuntimeError):
    """Raised when the LLM call fails, times out, or returns unusable output."""


@dataclass(frozen=True)
class LLMConfig:
    """Configuration for the OpenAI-style Chat Completions API call."""

    api_key: str
    model: str = "gpt-4o-mini"
    api_base: str = "https://api.openai.com/v1"
    timeout_s: float = 30.0


def _load_prompt() -> str:
    prompt_path = Path(__file__).resolve().parent / "prompt_intent_v1.md"
    return prompt_path.read_text(encoding="utf-8")


def _strip_code_fences(text: str) -> str:
    value = (text or "").strip()
    if value.startswith("```"):
        value = value.strip("`")
        # After stripping backticks, try to remove leading "json" marker.
        value = value.removeprefix("json").strip()
    return value


def _chat_completions_url(api_base: str) -> str:
    return api_base.rstrip("/") + "/chat/completions"


def build_system_prompt(registry: SchemaRegistry) -> str:
    """Fill the prompt template with the serialized registry view."""

    summary = json.dumps(registry.schema_summary(), ensure_ascii=False, indent=2)
    return _load_prompt().replace("{{SCHEMA}}", summary)


def request_intent_json(
        user_text: str,
        *,
        system_prompt: str,
        config: LLMConfig,
        timeout_s: float | None = None,
) -> dict[str, Any]:
    """Call an LLM and return the parsed JSON object.

    The call is compatible with OpenAI-style `/v1/chat/completions` APIs.
    """

    payload = {
        "model": config.model,
        "temperature": 0,
        "messages": [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_text},
        ],
    }

    req = Request(
        _chat_completions_url(config.api_base),
        method="POST",
        headers={
            "Authorization": f"Bearer {config.api_key}",
            "Content-Type": "application/json",
        },
        data=json.dumps(payload).encode(),
    )

    try:
        with urlopen(req, timeout=timeout_s or config.timeout_s) as resp:  # noqa: S310 (explicit, feature-flagged network call)
            body = resp.read()
    except HTTPError as exc:
        raise ExtractorUnavailableError(f"LLM HTTP error: {exc.code}") from exc
    except (URLError, HTTPException, OSError) as exc:
        # Covers timeouts, resets and truncated or malformed HTTP responses.
        raise ExtractorUnavailableError(f"LLM connection error: {type(exc).__name__}") from exc

    try:
        decoded = json.loads(body)
        content = decoded["choices"][0]["message"]["content"]
    except (ValueError, KeyError, IndexError, TypeError) as exc:
        raise ExtractorUnavailableError("Unexpected LLM response format") from exc

    try:
        obj = json.loads(_strip_code_fences(content))
    except json.JSONDecodeError as exc:
        raise ExtractorUnavailableError("LLM did not return valid JSON") from exc

    if not isinstance(obj, dict):
        raise ExtractorUnavailableError("LLM did not return a JSON object")
    return obj


def coerce_intent(obj: dict[str, Any], *, query: str, registry: SchemaRegistry) -> ParsedIntent:
    """Validate a raw LLM object into a registry-consistent `ParsedIntent`.

    Unknown domains, invalid actions and out-of-range confidence are rejected. Filter keys outside
    the domain's vocabulary and unknown output fields are dropped.
    """

    domain_key = obj.get("domain")
    if not registry.has_domain(domain_key):
        raise ExtractorUnavailableError(f"LLM returned unknown domain: {domain_key!r}")
    domain = registry.get_domain(domain_key)

    raw_filters = obj.get("filters") or {}
    if not isinstance(raw_filters, dict):
        raise ExtractorUnavailableError("LLM filters must be an object")
    filters: dict[str, Any] = {}
    for key, value in raw_filters.items():
        if value is None or isinstance(value, (dict, list, bool)):
            logger.info("llm: dropped filter with unsupported value key=%s", key)
            continue
        if not registry.accepts_filter(domain.key, key):
            logger.info("llm: dropped unknown filter domain=%s key=%s", domain.key, key)
            continue
        filters[key] = value

    raw_fields = obj.get("fields")
    fields: list[str] | None = None
    if isinstance(raw_fields, list):
        known = {f.name for f in domain.fields if f.selectable}
        fields = [name for name in raw_fields if isinstance(name, str) and name in known] or None

    try:
        return ParsedIntent(
            intent=str(obj.get("intent") or query),
            domain=domain.key,
            action=obj.get("action") or "list",
            filters=filters,
            fields=fields,
            confidence=obj.get("confidence", 0.0),
            explanation=str(obj.get("explanation") or ""),
            source=IntentSource.model,
        )
    except ValidationError as exc:
        raise ExtractorUnavailableError(f"LLM intent failed validation: {exc.error_count()} errors") from exc


class LanguageModelExtractor:
    """`IntentExtractor` backed by an OpenAI-compatible Chat Completions endpoint."""

    def __init__(self, config: LLMConfig) -> None:
        self._config = config

    def extract_intent(
            self,
            query: str,
            registry: SchemaRegistry,
            *,
            timeout_s: float | None = None,
    ) -> ParsedIntent:
        obj = request_intent_json(
            query,
            system_prompt=build_system_prompt(registry),
            config=self._config,
            timeout_s=timeout_s,
        )
        return coerce_intent(obj, query=query, registry=registry)


def llm_config_from_env(*, api_key: str | None = None) -> LLMConfig:
    """Build LLM config from environment variables.

    Environment variables (optional):
        - LLM_MODEL
        - LLM_API_BASE
        - LLM_TIMEOUT_S
    """

    key = api_key or os.getenv("LLM_API_KEY") or ""
    if not key:
        raise ExtractorUnavailableError("LLM_API_KEY is required")

    timeout_s = float(os.getenv("LLM_TIMEOUT_S") or "30")
    return LLMConfig(
        api_key=key,
        model=os.getenv("LLM_MODEL") or "gpt-4o-mini",
        api_base=os.getenv("LLM_API_BASE") or "https://api.openai.com/v1",
        timeout_s=timeout_s,
    )
