"""Dataset-to-row conversion helpers.

Both the production JSON loader and integration tests need to convert a parsed budget payload
(`tabarim` with embedded `items` and `transactions`) into row tuples matching the `tabarim`,
`tabar_items` and `tabar_transactions` tables.

Keeping this conversion in one place prevents drift between loader behavior and test fixtures.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Any


def iter_tabar_rows(tabarim: Sequence[dict[str, Any]]) -> Iterable[tuple[Any, ...]]:
    """Yield row tuples for inserting into the `tabarim` table."""

    for tabar in tabarim:
        yield (
            int(tabar["id"]),
            tabar.get("tenant_id"),
            str(tabar["tabar_number"]),
            tabar["name"],
            tabar.get("ministry"),
            tabar.get("department"),
            tabar.get("year"),
            tabar.get("total_authorized", 0),
            tabar.get("municipal_participation", 0),
            tabar.get("status"),
            tabar.get("permission_number"),
            tabar.get("open_date"),
            tabar.get("close_date"),
            tabar.get("updated_at"),
        )


def iter_item_rows(tabarim: Sequence[dict[str, Any]]) -> Iterable[tuple[Any, ...]]:
    """Yield row tuples for inserting into the `tabar_items` table."""

    for tabar in tabarim:
        for item in tabar.get("items", []):
            yield (
                int(item["id"]),
                int(tabar["id"]),
                item.get("tenant_id", tabar.get("tenant_id")),
                item.get("item_type"),
                item.get("budget_item_code"),
                item.get("budget_item_name"),
                item.get("amount", 0),
                item.get("notes"),
            )


def iter_transaction_rows(tabarim: Sequence[dict[str, Any]]) -> Iterable[tuple[Any, ...]]:
    """Yield row tuples for inserting into the `tabar_transactions` table."""

    for tabar in tabarim:
        for tx in tabar.get("transactions", []):
            yield (
                int(tx["id"]),
                int(tabar["id"]),
                tx.get("item_id"),
                tx.get("tenant_id", tabar.get("tenant_id")),
                tx.get("transaction_type"),
                tx.get("direction"),
                tx.get("supplier_name"),
                tx.get("order_number"),
                tx.get("description"),
                tx.get("amount", 0),
                tx.get("status"),
                tx.get("transaction_date"),
                tx.get("document_url"),
                bool(tx.get("reported", False)),
            )
