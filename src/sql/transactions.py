"""Transactions domain: invoices and payments, joined to their tabar."""

from __future__ import annotations

from src.sql.columns import ColumnRef, DomainShape

SHAPE = DomainShape(
    key="transactions",
    from_sql="FROM tabar_transactions tt LEFT JOIN tabarim t ON t.id = tt.tabar_id",
    columns={
        "transaction_id": ColumnRef("tt.id", "number"),
        "tabar_id": ColumnRef("tt.tabar_id", "number"),
        "tabar_number": ColumnRef("t.tabar_number", "text"),
        "tabar_name": ColumnRef("t.name", "text", match="contains"),
        "ministry": ColumnRef("t.ministry", "text", match="contains"),
        "direction": ColumnRef("tt.direction", "text"),
        "transaction_type": ColumnRef("tt.transaction_type", "text"),
        "supplier_name": ColumnRef("tt.supplier_name", "text", match="contains"),
        "order_number": ColumnRef("tt.order_number", "text"),
        "description": ColumnRef("tt.description", "text", match="contains"),
        "amount": ColumnRef("tt.amount", "number"),
        "status": ColumnRef("tt.status", "text"),
        "transaction_date": ColumnRef("tt.transaction_date", "date"),
        "document_url": ColumnRef("tt.document_url", "text"),
    },
    default_fields=(
        "transaction_type",
        "order_number",
        "supplier_name",
        "amount",
        "status",
        "transaction_date",
    ),
    order_by="tt.transaction_date DESC NULLS LAST, tt.id DESC",
    tenant_column="tt.tenant_id",
    measure="amount",
    group_default="supplier_name",
    search_fields=("supplier_name", "description", "order_number", "tabar_name"),
    date_field="transaction_date",
)
