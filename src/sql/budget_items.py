"""Budget items domain: tabar budget lines with their executed (charged) amounts."""

from __future__ import annotations

from src.sql.columns import ColumnRef, DomainShape

_EXECUTED = "COALESCE(ex.executed_amount, 0)"

SHAPE = DomainShape(
    key="budget_items",
    from_sql=(
        "FROM tabar_items ti"
        " JOIN tabarim t ON t.id = ti.tabar_id"
        " LEFT JOIN ("
        "   SELECT x.item_id,"
        "          SUM(x.amount) FILTER (WHERE x.direction = 'חיוב') AS executed_amount,"
        "          MAX(x.transaction_date) AS last_transaction_date"
        "     FROM tabar_transactions x"
        "    WHERE x.item_id IS NOT NULL"
        "    GROUP BY x.item_id"
        " ) ex ON ex.item_id = ti.id"
    ),
    columns={
        "item_id": ColumnRef("ti.id", "number"),
        "item_name": ColumnRef("ti.budget_item_name", "text", match="contains"),
        "item_code": ColumnRef("ti.budget_item_code", "text"),
        "item_type": ColumnRef("ti.item_type", "text"),
        "authorized_amount": ColumnRef("ti.amount", "number"),
        "executed_amount": ColumnRef(_EXECUTED, "number"),
        "execution_percentage": ColumnRef(
            f"CASE WHEN ti.amount > 0 THEN ROUND({_EXECUTED} / ti.amount * 100, 1) ELSE 0 END",
            "number",
        ),
        "tabar_id": ColumnRef("ti.tabar_id", "number"),
        "tabar_number": ColumnRef("t.tabar_number", "text"),
        "tabar_name": ColumnRef("t.name", "text", match="contains"),
        "ministry": ColumnRef("t.ministry", "text", match="contains"),
        "year": ColumnRef("t.year", "number"),
    },
    default_fields=(
        "item_name",
        "tabar_number",
        "authorized_amount",
        "executed_amount",
        "execution_percentage",
    ),
    order_by="ex.last_transaction_date DESC NULLS LAST, ti.id DESC",
    tenant_column="ti.tenant_id",
    measure="authorized_amount",
    group_default="item_type",
    search_fields=("item_name", "item_code", "tabar_name"),
)
