"""Load a budget dataset JSON file into Postgres.

The dataset is expected to be a JSON object with a single top-level key `"tabarim"` containing a
list of tabar objects. Each tabar may embed `"items"` (budget lines) and `"transactions"`.
"""

from __future__ import annotations

import argparse
import json
from collections.abc import Iterable
from pathlib import Path
from typing import Any
from urllib.request import urlopen

import psycopg
from dotenv import load_dotenv

from src.db.connection import connect, require_database_url
from src.db.dataset_rows import iter_item_rows, iter_tabar_rows, iter_transaction_rows

TABAR_INSERT_SQL = """
    INSERT INTO tabarim (id, tenant_id, tabar_number, name, ministry, department, year,
                         total_authorized, municipal_participation, status, permission_number,
                         open_date, close_date, updated_at)
    VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s) ON CONFLICT (id) DO
    UPDATE SET
        tenant_id = EXCLUDED.tenant_id,
        tabar_number = EXCLUDED.tabar_number,
        name = EXCLUDED.name,
        ministry = EXCLUDED.ministry,
        department = EXCLUDED.department,
        year = EXCLUDED.year,
        total_authorized = EXCLUDED.total_authorized,
        municipal_participation = EXCLUDED.municipal_participation,
        status = EXCLUDED.status,
        permission_number = EXCLUDED.permission_number,
        open_date = EXCLUDED.open_date,
        close_date = EXCLUDED.close_date,
        updated_at = EXCLUDED.updated_at
"""

ITEM_INSERT_SQL = """
    INSERT INTO tabar_items (id, tabar_id, tenant_id, item_type, budget_item_code,
                             budget_item_name, amount, notes)
    VALUES (%s, %s, %s, %s, %s, %s, %s, %s) ON CONFLICT (id) DO
    UPDATE SET
        tabar_id = EXCLUDED.tabar_id,
        tenant_id = EXCLUDED.tenant_id,
        item_type = EXCLUDED.item_type,
        budget_item_code = EXCLUDED.budget_item_code,
        budget_item_name = EXCLUDED.budget_item_name,
        amount = EXCLUDED.amount,
        notes = EXCLUDED.notes
"""

TRANSACTION_INSERT_SQL = """
    INSERT INTO tabar_transactions (id, tabar_id, item_id, tenant_id, transaction_type, direction,
                                    supplier_name, order_number, description, amount, status,
                                    transaction_date, document_url, reported)
    VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s) ON CONFLICT (id) DO
    UPDATE SET
        tabar_id = EXCLUDED.tabar_id,
        item_id = EXCLUDED.item_id,
        tenant_id = EXCLUDED.tenant_id,
        transaction_type = EXCLUDED.transaction_type,
        direction = EXCLUDED.direction,
        supplier_name = EXCLUDED.supplier_name,
        order_number = EXCLUDED.order_number,
        description = EXCLUDED.description,
        amount = EXCLUDED.amount,
        status = EXCLUDED.status,
        transaction_date = EXCLUDED.transaction_date,
        document_url = EXCLUDED.document_url,
        reported = EXCLUDED.reported
"""


def _load_json_bytes(*, path: str | None, url: str | None) -> bytes:
    if bool(path) == bool(url):
        raise ValueError("Exactly one of --path or --url must be provided")

    if path:
        return Path(path).read_bytes()

    assert url is not None
    with urlopen(url) as resp:  # noqa: S310 (controlled URL from CLI)
        return resp.read()


def _chunks(iterable: Iterable[tuple], size: int) -> Iterable[list[tuple]]:
    chunk: list[tuple] = []
    for item in iterable:
        chunk.append(item)
        if len(chunk) >= size:
            yield chunk
            chunk = []
    if chunk:
        yield chunk


def parse_payload(payload: Any) -> list[dict[str, Any]]:
    """Validate the top-level dataset shape and return the tabar list."""

    if (
            not isinstance(payload, dict)
            or "tabarim" not in payload
            or not isinstance(payload["tabarim"], list)
    ):
        raise ValueError(
            "Unexpected dataset format: expected object with key 'tabarim' containing a list"
        )
    return payload["tabarim"]


def insert_dataset(
        conn: psycopg.Connection,
        tabarim: list[dict[str, Any]],
        *,
        truncate: bool,
        batch_size: int = 1_000,
) -> None:
    """Insert (upsert) tabarim, items and transactions in one transaction."""

    with conn.transaction():
        with conn.cursor() as cur:
            if truncate:
                cur.execute("TRUNCATE tabar_transactions, tabar_items, tabarim", prepare=False)

            cur.executemany(TABAR_INSERT_SQL, list(iter_tabar_rows(tabarim)))
            for batch in _chunks(iter_item_rows(tabarim), batch_size):
                cur.executemany(ITEM_INSERT_SQL, batch)
            for batch in _chunks(iter_transaction_rows(tabarim), batch_size):
                cur.executemany(TRANSACTION_INSERT_SQL, batch)


def load_dataset(*, path: str | None, url: str | None, truncate: bool, batch_size: int) -> None:
    """Load the dataset into the `tabarim`, `tabar_items` and `tabar_transactions` tables."""

    if batch_size <= 0:
        raise ValueError("--batch-size must be a positive integer")

    load_dotenv(".env")
    database_url = require_database_url()

    payload_bytes = _load_json_bytes(path=path, url=url)
    tabarim = parse_payload(json.loads(payload_bytes))

    with connect(database_url) as conn:
        insert_dataset(conn, tabarim, truncate=truncate, batch_size=batch_size)


def main() -> None:
    """CLI entry point for loading a budget dataset into Postgres."""

    parser = argparse.ArgumentParser(description="Load a budget dataset into Postgres.")
    src = parser.add_mutually_exclusive_group(required=True)
    src.add_argument("--path", help="Path to the dataset JSON file (e.g. budget.json).")
    src.add_argument("--url", help="URL to download the dataset JSON.")
    parser.add_argument(
        "--truncate",
        action="store_true",
        help="TRUNCATE target tables before loading (destructive).",
    )
    parser.add_argument(
        "--batch-size",
        type=int,
        default=1_000,
        help="Number of item/transaction rows per insert batch.",
    )
    args = parser.parse_args()

    load_dataset(
        path=args.path,
        url=args.url,
        truncate=args.truncate,
        batch_size=args.batch_size,
    )


if __name__ == "__main__":
    main()
