"""Tabarim domain: one row per tabar (special-purpose project budget)."""

from __future__ import annotations

from src.sql.columns import ColumnRef, DomainShape

SHAPE = DomainShape(
    key="tabarim",
    from_sql="FROM tabarim t",
    columns={
        "tabar_id": ColumnRef("t.id", "number"),
        "tabar_number": ColumnRef("t.tabar_number", "text"),
        "name": ColumnRef("t.name", "text", match="contains"),
        "ministry": ColumnRef("t.ministry", "text", match="contains"),
        "department": ColumnRef("t.department", "text", match="contains"),
        "total_authorized": ColumnRef("t.total_authorized", "number"),
        "municipal_participation": ColumnRef("t.municipal_participation", "number"),
        "status": ColumnRef("t.status", "text"),
        "year": ColumnRef("t.year", "number"),
        "permission_number": ColumnRef("t.permission_number", "text"),
        "open_date": ColumnRef("t.open_date", "date"),
        "close_date": ColumnRef("t.close_date", "date"),
    },
    default_fields=("tabar_number", "name", "ministry", "total_authorized", "status", "year"),
    order_by="t.updated_at DESC NULLS LAST, t.id DESC",
    tenant_column="t.tenant_id",
    measure="total_authorized",
    group_default="ministry",
    search_fields=("name", "tabar_number", "ministry", "permission_number"),
    date_field="open_date",
)
