"""Comprehensive domain: one row per tabar with transaction and budget-item aggregates.

Filters on transaction or item attributes ask "does the tabar have such a transaction/item" and
are compiled to `EXISTS` sub-queries, so they never multiply the per-tabar rows.
"""

from __future__ import annotations

from src.sql.columns import ColumnRef, DomainShape

_TX_SOURCE = "tabar_transactions x WHERE x.tabar_id = t.id"
_ITEM_SOURCE = "tabar_items i WHERE i.tabar_id = t.id"

_UTILIZED = "COALESCE(tx.utilized_amount, 0)"

SHAPE = DomainShape(
    key="comprehensive",
    from_sql=(
        "FROM tabarim t"
        " LEFT JOIN ("
        "   SELECT s.tabar_id,"
        "          COUNT(*) AS transaction_count,"
        "          SUM(s.amount) AS total_transactions,"
        "          SUM(s.amount) FILTER (WHERE s.status = 'שולם') AS paid_amount,"
        "          SUM(s.amount) FILTER (WHERE s.status IS DISTINCT FROM 'שולם') AS unpaid_amount,"
        "          SUM(s.amount) FILTER (WHERE s.direction = 'חיוב') AS utilized_amount,"
        "          MAX(s.transaction_date) AS last_transaction_date"
        "     FROM tabar_transactions s"
        "    GROUP BY s.tabar_id"
        " ) tx ON tx.tabar_id = t.id"
        " LEFT JOIN ("
        "   SELECT b.tabar_id, COUNT(*) AS item_count"
        "     FROM tabar_items b"
        "    GROUP BY b.tabar_id"
        " ) it ON it.tabar_id = t.id"
    ),
    columns={
        "tabar_id": ColumnRef("t.id", "number"),
        "tabar_number": ColumnRef("t.tabar_number", "text"),
        "name": ColumnRef("t.name", "text", match="contains"),
        "ministry": ColumnRef("t.ministry", "text", match="contains"),
        "department": ColumnRef("t.department", "text", match="contains"),
        "status": ColumnRef("t.status", "text"),
        "year": ColumnRef("t.year", "number"),
        "total_authorized": ColumnRef("t.total_authorized", "number"),
        "open_date": ColumnRef("t.open_date", "date"),
        "transaction_count": ColumnRef("COALESCE(tx.transaction_count, 0)", "number"),
        "total_transactions": ColumnRef("COALESCE(tx.total_transactions, 0)", "number"),
        "paid_amount": ColumnRef("COALESCE(tx.paid_amount, 0)", "number"),
        "unpaid_amount": ColumnRef("COALESCE(tx.unpaid_amount, 0)", "number"),
        "utilization_percentage": ColumnRef(
            f"CASE WHEN t.total_authorized > 0"
            f" THEN ROUND({_UTILIZED} / t.total_authorized * 100, 1) ELSE 0 END",
            "number",
        ),
        "item_count": ColumnRef("COALESCE(it.item_count, 0)", "number"),
        "last_activity_date": ColumnRef("GREATEST(tx.last_transaction_date, t.open_date)", "date"),
        # Filter-only: evaluated against the tabar's transactions / items.
        "transaction_type": ColumnRef(
            "x.transaction_type", "text", selectable=False, exists=_TX_SOURCE
        ),
        "transaction_status": ColumnRef("x.status", "text", selectable=False, exists=_TX_SOURCE),
        "supplier_name": ColumnRef(
            "x.supplier_name", "text", match="contains", selectable=False, exists=_TX_SOURCE
        ),
        "order_number": ColumnRef("x.order_number", "text", selectable=False, exists=_TX_SOURCE),
        "transaction_amount": ColumnRef("x.amount", "number", selectable=False, exists=_TX_SOURCE),
        "transaction_date": ColumnRef(
            "x.transaction_date", "date", selectable=False, exists=_TX_SOURCE
        ),
        "item_name": ColumnRef(
            "i.budget_item_name", "text", match="contains", selectable=False, exists=_ITEM_SOURCE
        ),
    },
    default_fields=(
        "tabar_number",
        "name",
        "ministry",
        "total_authorized",
        "transaction_count",
        "total_transactions",
    ),
    order_by="GREATEST(tx.last_transaction_date, t.open_date) DESC NULLS LAST, t.id DESC",
    tenant_column="t.tenant_id",
    measure="total_authorized",
    group_default="ministry",
    search_fields=("name", "tabar_number", "ministry"),
    date_field="open_date",
)
