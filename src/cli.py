"""Command-line access to the query pipeline.

Usage:
    python -m src.cli ask "כמה תב״רים פעילים יש"
    python -m src.cli confirm --intent intent.json --query "..."
    python -m src.cli validate "..."
    python -m src.cli domains | fields tabarim | examples [--domain tabarim]

`ask` and `confirm` need `DATABASE_URL`; the other commands only read the schema catalog.
Every command prints one JSON document.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from src.app import create_app
from src.config.logging import configure_logging
from src.config.settings import load_settings
from src.domains.registry import DomainNotFoundError, default_registry
from src.intent.parser import IntentParser
from src.query.compiler import QueryCompiler
from src.service.controller import InvalidInputError, SmartQueryController
from src.service.responses import ProcessOptions

logger = logging.getLogger(__name__)


class _NoDatabase:
    """Executor for catalog-only commands; never expected to run."""

    async def execute(self, sql: str, params: Sequence[Any]) -> list[dict[str, Any]]:
        raise RuntimeError("this command does not use the database")


def _catalog_controller() -> SmartQueryController:
    registry = default_registry()
    return SmartQueryController(registry, IntentParser(registry), QueryCompiler(registry, _NoDatabase()))


def _print_json(obj: Any) -> None:
    print(json.dumps(obj, ensure_ascii=False, indent=2, default=str))


def _read_intent(value: str) -> Any:
    """`--intent` is either a path to a JSON file or inline JSON."""

    path = Path(value)
    text = path.read_text(encoding="utf-8") if path.is_file() else value
    return json.loads(text)


async def _run_pipeline(args: argparse.Namespace) -> Any:
    settings = load_settings()
    app = create_app(settings)
    await app.pool.open(wait=True)
    try:
        if args.command == "ask":
            options = ProcessOptions(min_confidence=args.min_confidence, timeout=args.timeout)
            response = await app.controller.process(args.query, options, tenant_id=args.tenant_id)
        else:
            response = await app.controller.confirm(
                _read_intent(args.intent), args.query, tenant_id=args.tenant_id
            )
        return response.to_json_obj()
    finally:
        await app.pool.close()


def _build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Ask budget questions in natural language.")
    sub = parser.add_subparsers(dest="command", required=True)

    ask = sub.add_parser("ask", help="Parse and execute a question.")
    ask.add_argument("query")
    ask.add_argument("--min-confidence", type=float, default=None)
    ask.add_argument("--timeout", type=int, default=None, help="LLM timeout in milliseconds.")
    ask.add_argument("--tenant-id", type=int, default=None)

    confirm = sub.add_parser("confirm", help="Execute a previously returned parsed intent.")
    confirm.add_argument("--intent", required=True, help="Parsed intent JSON (inline or file path).")
    confirm.add_argument("--query", default="", help="The original question.")
    confirm.add_argument("--tenant-id", type=int, default=None)

    validate = sub.add_parser("validate", help="Cheap pre-check without parsing.")
    validate.add_argument("query")

    sub.add_parser("domains", help="List queryable domains.")

    fields = sub.add_parser("fields", help="List the fields of one domain.")
    fields.add_argument("domain")

    examples = sub.add_parser("examples", help="List example questions.")
    examples.add_argument("--domain", default=None)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """CLI entry point. Returns the process exit code."""

    args = _build_arg_parser().parse_args(argv)
    load_dotenv(".env")
    configure_logging()

    try:
        if args.command in ("ask", "confirm"):
            _print_json(asyncio.run(_run_pipeline(args)))
            return 0

        controller = _catalog_controller()
        if args.command == "validate":
            _print_json(controller.validate(args.query).to_json_obj())
        elif args.command == "domains":
            _print_json([d.to_json_obj() for d in controller.list_domains()])
        elif args.command == "fields":
            _print_json([f.to_json_obj() for f in controller.domain_fields(args.domain)])
        else:
            _print_json(controller.examples(args.domain))
    except (InvalidInputError, DomainNotFoundError, json.JSONDecodeError) as exc:
        _print_json({"success": False, "error": str(exc)})
        return 2
    return 0


if __name__ == "__main__":
    sys.exit(main())
