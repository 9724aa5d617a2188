"""Application composition root.

This module wires together configuration, the DB pool, the schema registry and both pipeline
stages into a single controller shared by the bot and CLI runtimes.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from psycopg_pool import AsyncConnectionPool

from src.config.settings import Settings
from src.db.pool import create_pool
from src.db.query import PoolQueryExecutor
from src.domains.registry import SchemaRegistry, default_registry
from src.intent.llm_parser import LanguageModelExtractor, llm_config_from_env
from src.intent.parser import IntentParser
from src.query.compiler import QueryCompiler
from src.service.controller import SmartQueryController

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class App:
    """Shared application dependencies for handlers."""

    settings: Settings
    pool: AsyncConnectionPool
    registry: SchemaRegistry
    controller: SmartQueryController


def build_parser(settings: Settings, registry: SchemaRegistry) -> IntentParser:
    """Intent parser with the model extractor only when LLM extraction is enabled."""

    model_extractor = None
    model_timeout_s = None
    if settings.llm_enabled:
        config = llm_config_from_env(api_key=settings.llm_api_key)
        model_extractor = LanguageModelExtractor(config)
        model_timeout_s = config.timeout_s
    logger.info("intent parser mode=%s", "llm-enabled" if model_extractor else "rules-only")
    return IntentParser(
        registry, model_extractor=model_extractor, model_timeout_s=model_timeout_s
    )


def create_app(settings: Settings, *, registry: SchemaRegistry | None = None) -> App:
    """Create the application container.

    Note:
        The returned DB pool is not opened. Call `await app.pool.open()` at startup.
    """

    registry = registry or default_registry()
    pool = create_pool(settings.database_url, timezone=settings.db_timezone, max_size=10)
    compiler = QueryCompiler(registry, PoolQueryExecutor(pool), max_rows=settings.max_rows)
    controller = SmartQueryController(
        registry,
        build_parser(settings, registry),
        compiler,
        min_confidence=settings.min_confidence,
    )
    return App(settings=settings, pool=pool, registry=registry, controller=controller)
