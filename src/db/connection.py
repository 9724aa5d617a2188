"""Shared Postgres connection helpers (sync; used by the CLI tools)."""

from __future__ import annotations

import os

import psycopg


def require_database_url() -> str:
    """Read `DATABASE_URL` from the environment or raise a clear error."""

    database_url = os.getenv("DATABASE_URL")
    if not database_url:
        raise RuntimeError("DATABASE_URL is required (set it in .env or environment)")
    return database_url


def connect(database_url: str, *, timezone: str | None = None) -> psycopg.Connection:
    """Connect to Postgres with the session timezone set (`DB_TIMEZONE`, default UTC)."""

    conn = psycopg.connect(database_url)
    conn.execute(
        "SELECT set_config('TimeZone', %s, false)",
        (timezone or os.getenv("DB_TIMEZONE") or "UTC",),
    )
    conn.commit()
    return conn
