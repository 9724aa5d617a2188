"""Apply the budget schema migrations to PostgreSQL.

Migrations are plain `.sql` files under `src/db/migrations/`, applied in filename order, each in its
own transaction. Applied filenames are recorded in `schema_migrations`, so re-running is a no-op.

    python -m src.db.migrate            # apply pending files
    python -m src.db.migrate --status   # list applied / pending files
    python -m src.db.migrate --recreate # drop the budget tables first (destructive)
"""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import LiteralString, cast

import psycopg
from dotenv import load_dotenv
from psycopg import sql

from src.config.logging import configure_logging
from src.db.connection import connect, require_database_url

logger = logging.getLogger(__name__)

MIGRATIONS_DIR = Path(__file__).resolve().parent / "migrations"

# Children first: items and transactions reference tabarim.
_BUDGET_TABLES = ("tabar_transactions", "tabar_items", "tabarim", "schema_migrations")

_LEDGER_DDL = """
    CREATE TABLE IF NOT EXISTS schema_migrations (
        filename   TEXT PRIMARY KEY,
        applied_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    )
"""


def migration_files(directory: Path = MIGRATIONS_DIR) -> list[Path]:
    files = sorted(directory.glob("*.sql"))
    if not files:
        raise RuntimeError(f"No .sql migration files found in {directory}")
    return files


def applied_migrations(conn: psycopg.Connection) -> set[str]:
    conn.execute(_LEDGER_DDL, prepare=False)
    rows = conn.execute("SELECT filename FROM schema_migrations", prepare=False).fetchall()
    conn.commit()
    return {row[0] for row in rows}


def apply_pending(conn: psycopg.Connection, directory: Path = MIGRATIONS_DIR) -> list[str]:
    """Apply every migration in `directory` not yet recorded; return the filenames applied."""

    done = applied_migrations(conn)
    applied: list[str] = []
    for path in migration_files(directory):
        if path.name in done:
            continue
        with conn.transaction():
            conn.execute(cast(LiteralString, path.read_text(encoding="utf-8")), prepare=False)
            conn.execute(
                "INSERT INTO schema_migrations (filename) VALUES (%s)", (path.name,), prepare=False
            )
        logger.info("migration applied file=%s", path.name)
        applied.append(path.name)
    return applied


def drop_budget_tables(conn: psycopg.Connection) -> None:
    with conn.transaction():
        for table in _BUDGET_TABLES:
            conn.execute(
                sql.SQL("DROP TABLE IF EXISTS {}").format(sql.Identifier(table)),
                prepare=False,
            )
    logger.warning("budget tables dropped tables=%s", ",".join(_BUDGET_TABLES))


def migrate(*, recreate: bool, database_url: str | None = None) -> list[str]:
    """Run pending migrations against `database_url` (default: `DATABASE_URL`)."""

    database_url = database_url or require_database_url()
    with connect(database_url) as conn:
        if recreate:
            drop_budget_tables(conn)
        return apply_pending(conn)


def main() -> None:
    """CLI entry point for applying migrations."""

    parser = argparse.ArgumentParser(description="Apply the budget schema migrations to Postgres.")
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument(
        "--recreate",
        action="store_true",
        help="Drop the budget tables and re-apply all migrations (destructive).",
    )
    mode.add_argument("--status", action="store_true", help="List applied and pending migrations.")
    args = parser.parse_args()

    load_dotenv(".env")
    configure_logging()

    if args.status:
        with connect(require_database_url()) as conn:
            done = applied_migrations(conn)
        for path in migration_files():
            print(f"{'applied' if path.name in done else 'pending'}  {path.name}")
        return

    applied = migrate(recreate=args.recreate)
    print(f"applied {len(applied)} migration(s)")


if __name__ == "__main__":
    main()
