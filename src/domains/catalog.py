"""The municipal budget catalog.

Domain order matters: `SchemaRegistry.estimate_domain` returns the first domain whose primary
keywords appear in the query, so more specific domains come first:

    1. comprehensive  - only on explicit "comprehensive/overview" wording
    2. transactions   - invoices, payments, financial movements
    3. tabarim        - projects (tabar = special budget)
    4. budget_items   - budget lines and their utilization
"""

from __future__ import annotations

from src.domains.models import (
    BudgetSchema,
    DomainSchema,
    ExampleQuery,
    FieldDefinition,
    FieldType,
    KeywordSet,
)

TRANSACTION_TYPES = ("חשבונית", "תשלום", "זיכוי", "חיוב")
TRANSACTION_DIRECTIONS = ("חיוב", "זיכוי", "כניסה")
TRANSACTION_STATUSES = ("שולם", "לא שולם", "בתהליך", "בוטל")
TABAR_STATUSES = ("פעיל", "סגור", "בתכנון", "מושהה", "בוטל")
DEPARTMENTS = ("חינוך", "תחבורה", "בריאות", "רווחה", "תרבות", "ספורט")
ITEM_TYPES = ("הכנסה", "הוצאה")

_COMPREHENSIVE = DomainSchema(
    key="comprehensive",
    label="דוח מקיף",
    description="תמונת מצב מלאה לכל תב״ר: תקציב, עסקאות, תשלומים וסעיפים",
    fields=(
        FieldDefinition(name="tabar_id", label="מזהה תב״ר", type=FieldType.number, filterable=False),
        FieldDefinition(name="tabar_number", label="מספר תב״ר", type=FieldType.string),
        FieldDefinition(name="name", label="שם הפרויקט", type=FieldType.string),
        FieldDefinition(name="ministry", label="משרד", type=FieldType.string),
        FieldDefinition(
            name="department", label="מחלקה", type=FieldType.enum, options=DEPARTMENTS
        ),
        FieldDefinition(name="status", label="סטטוס", type=FieldType.enum, options=TABAR_STATUSES),
        FieldDefinition(name="year", label="שנה", type=FieldType.number),
        FieldDefinition(name="total_authorized", label="תקציב מאושר", type=FieldType.number),
        FieldDefinition(name="open_date", label="תאריך פתיחה", type=FieldType.date),
        FieldDefinition(
            name="transaction_count", label="מספר עסקאות", type=FieldType.number, filterable=False
        ),
        FieldDefinition(name="total_transactions", label="סכום עסקאות", type=FieldType.number),
        FieldDefinition(name="paid_amount", label="סכום ששולם", type=FieldType.number),
        FieldDefinition(name="unpaid_amount", label="סכום שלא שולם", type=FieldType.number),
        FieldDefinition(
            name="utilization_percentage", label="אחוז ניצול", type=FieldType.number
        ),
        FieldDefinition(
            name="item_count", label="מספר סעיפים", type=FieldType.number, filterable=False
        ),
        FieldDefinition(
            name="last_activity_date", label="פעילות אחרונה", type=FieldType.date, filterable=False
        ),
        # Filter-only fields evaluated against the tabar's transactions and items.
        FieldDefinition(
            name="transaction_type",
            label="סוג עסקה",
            type=FieldType.enum,
            options=TRANSACTION_TYPES,
            selectable=False,
        ),
        FieldDefinition(
            name="transaction_status",
            label="סטטוס תשלום",
            type=FieldType.enum,
            options=TRANSACTION_STATUSES,
            selectable=False,
        ),
        FieldDefinition(name="supplier_name", label="ספק", type=FieldType.string, selectable=False),
        FieldDefinition(
            name="order_number", label="מספר הזמנה", type=FieldType.string, selectable=False
        ),
        FieldDefinition(
            name="transaction_amount", label="סכום עסקה", type=FieldType.number, selectable=False
        ),
        FieldDefinition(
            name="transaction_date", label="תאריך עסקה", type=FieldType.date, selectable=False
        ),
        FieldDefinition(name="item_name", label="שם הסעיף", type=FieldType.string, selectable=False),
    ),
    default_fields=(
        "tabar_number",
        "name",
        "ministry",
        "total_authorized",
        "transaction_count",
        "total_transactions",
    ),
    keywords=KeywordSet(
        primary=("מקיף", "מקיפה", "תמונת מצב", "comprehensive", "overview"),
        secondary=("דוח", "דוחות", "כל", "הכל", "רשימה", "הצג", "נרחב", "כללי", "מלא"),
    ),
    amount_field="total_authorized",
    date_field="open_date",
    year_filter="year",
    examples=(
        ExampleQuery(
            query="דוח מקיף של תב״ר 2211",
            domain="comprehensive",
            description="מידע מקיף על פרויקט ספציפי",
        ),
        ExampleQuery(
            query="comprehensive overview of active projects",
            domain="comprehensive",
            description="תמונת מצב לכל הפרויקטים הפעילים",
        ),
    ),
)

_TRANSACTIONS = DomainSchema(
    key="transactions",
    label="תנועות כספיות",
    description="חשבוניות ותשלומים",
    fields=(
        FieldDefinition(
            name="transaction_id", label="מספר עסקה", type=FieldType.number, filterable=False
        ),
        FieldDefinition(name="tabar_id", label="מזהה תב״ר", type=FieldType.relation, reference="tabarim"),
        FieldDefinition(name="tabar_number", label="מספר תב״ר", type=FieldType.string),
        FieldDefinition(name="tabar_name", label="שם התב״ר", type=FieldType.string),
        FieldDefinition(name="ministry", label="משרד", type=FieldType.string),
        FieldDefinition(
            name="direction", label="כיוון", type=FieldType.enum, options=TRANSACTION_DIRECTIONS
        ),
        FieldDefinition(
            name="transaction_type", label="סוג עסקה", type=FieldType.enum, options=TRANSACTION_TYPES
        ),
        FieldDefinition(name="supplier_name", label="ספק", type=FieldType.string),
        FieldDefinition(name="order_number", label="מספר הזמנה", type=FieldType.string),
        FieldDefinition(name="description", label="תיאור", type=FieldType.string),
        FieldDefinition(name="amount", label="סכום", type=FieldType.number),
        FieldDefinition(
            name="status", label="סטטוס תשלום", type=FieldType.enum, options=TRANSACTION_STATUSES
        ),
        FieldDefinition(name="transaction_date", label="תאריך עסקה", type=FieldType.date),
        FieldDefinition(name="document_url", label="מסמך", type=FieldType.string, filterable=False),
    ),
    default_fields=(
        "transaction_type",
        "order_number",
        "supplier_name",
        "amount",
        "status",
        "transaction_date",
    ),
    keywords=KeywordSet(
        primary=(
            "חשבונית",
            "חשבוניות",
            "תשלום",
            "תשלומים",
            "תנועה",
            "תנועות",
            "עסקה",
            "עסקאות",
            "invoice",
            "payment",
            "transaction",
        ),
        secondary=("ספק", "ספקים", "שולם", "דווח", "זיכוי", "חיוב", "כסף", "הזמנה", "supplier"),
    ),
    amount_field="amount",
    date_field="transaction_date",
    year_filter="transaction_year",
    examples=(
        ExampleQuery(
            query="חשבוניות של חברת אלקטרה",
            domain="transactions",
            description="מציאת חשבוניות לפי שם ספק",
        ),
        ExampleQuery(
            query="סכום חשבוניות מעל 10,000 שקל",
            domain="transactions",
            description="סיכום סכומים לפי תנאי",
        ),
        ExampleQuery(
            query="תשלומים שלא שולמו ב-2024",
            domain="transactions",
            description="חשבונות פתוחים לפי שנה",
        ),
    ),
)

_TABARIM = DomainSchema(
    key="tabarim",
    label="תב״רים",
    description="פרויקטים ותכניות",
    fields=(
        FieldDefinition(name="tabar_id", label="מזהה תב״ר", type=FieldType.number),
        FieldDefinition(name="tabar_number", label="מספר תב״ר", type=FieldType.string),
        FieldDefinition(name="name", label="שם הפרויקט", type=FieldType.string),
        FieldDefinition(name="ministry", label="משרד", type=FieldType.string),
        FieldDefinition(
            name="department", label="מחלקה", type=FieldType.enum, options=DEPARTMENTS
        ),
        FieldDefinition(name="total_authorized", label="תקציב מאושר", type=FieldType.number),
        FieldDefinition(
            name="municipal_participation", label="השתתפות עירונית", type=FieldType.number
        ),
        FieldDefinition(
            name="status", label="סטטוס פרויקט", type=FieldType.enum, options=TABAR_STATUSES
        ),
        FieldDefinition(name="year", label="שנה", type=FieldType.number),
        FieldDefinition(name="permission_number", label="מספר הרשאה", type=FieldType.string),
        FieldDefinition(name="open_date", label="תאריך פתיחה", type=FieldType.date),
        FieldDefinition(name="close_date", label="תאריך סגירה", type=FieldType.date),
    ),
    default_fields=("tabar_number", "name", "ministry", "total_authorized", "status", "year"),
    keywords=KeywordSet(
        primary=("תבר", 'תב"ר', "פרויקט", "פרויקטים", "תכנית", "תוכנית", "project"),
        secondary=("משרד", "מחלקה", "סטטוס", "פעיל", "סגור", "תקציב", "ministry"),
    ),
    amount_field="total_authorized",
    date_field="open_date",
    year_filter="year",
    examples=(
        ExampleQuery(
            query="תב״רים של משרד החינוך",
            domain="tabarim",
            description="רשימת פרויקטים לפי משרד",
        ),
        ExampleQuery(
            query="כמה פרויקטים פעילים יש",
            domain="tabarim",
            description="ספירת פרויקטים לפי סטטוס",
        ),
        ExampleQuery(
            query="תקציב תב״רים לפי משרד",
            domain="tabarim",
            description="קיבוץ תקציבים לפי משרד",
        ),
    ),
)

_BUDGET_ITEMS = DomainSchema(
    key="budget_items",
    label="סעיפי תקציב",
    description="פירוט סעיפי תקציב לפרויקטים",
    fields=(
        FieldDefinition(name="item_id", label="מזהה סעיף", type=FieldType.number, filterable=False),
        FieldDefinition(name="item_name", label="שם הסעיף", type=FieldType.string),
        FieldDefinition(name="item_code", label="קוד סעיף", type=FieldType.string),
        FieldDefinition(name="item_type", label="סוג סעיף", type=FieldType.enum, options=ITEM_TYPES),
        FieldDefinition(name="authorized_amount", label="סכום מאושר", type=FieldType.number),
        FieldDefinition(name="executed_amount", label="סכום מבוצע", type=FieldType.number),
        FieldDefinition(name="execution_percentage", label="אחוז ביצוע", type=FieldType.number),
        FieldDefinition(name="tabar_id", label="מזהה תב״ר", type=FieldType.relation, reference="tabarim"),
        FieldDefinition(name="tabar_number", label="מספר תב״ר", type=FieldType.string),
        FieldDefinition(name="tabar_name", label="שם התב״ר", type=FieldType.string),
        FieldDefinition(name="ministry", label="משרד", type=FieldType.string),
        FieldDefinition(name="year", label="שנה", type=FieldType.number),
    ),
    default_fields=(
        "item_name",
        "tabar_number",
        "authorized_amount",
        "executed_amount",
        "execution_percentage",
    ),
    keywords=KeywordSet(
        primary=("תקציב", "סעיף", "סעיפי", "ניצול", "הוצאה", "הוצאות", "budget"),
        secondary=("מאושר", "מבוצע", "%", "אחוז", "ביצוע"),
    ),
    amount_field="authorized_amount",
    year_filter="year",
    examples=(
        ExampleQuery(
            query="סעיפי תקציב עם ניצול מעל 80 אחוז",
            domain="budget_items",
            description="סעיפים לפי אחוז ביצוע",
        ),
    ),
)

CITY_BUDGET_SCHEMA = BudgetSchema(
    version="2.0",
    name="City Budget Management System",
    description="Schema for municipal budget and transaction reporting",
    last_updated="2024-01-15",
    max_results=100,
    supported_actions=("list", "count", "sum", "average", "group"),
    domains=(_COMPREHENSIVE, _TRANSACTIONS, _TABARIM, _BUDGET_ITEMS),
    suggestions=(
        'נסה להשתמש במילות מפתח כמו "חשבוניות", "תב״רים", או "תקציב"',
        "ציין מספר תב״ר או שם ספק לחיפוש מדויק יותר",
        'השתמש בביטויים כמו "דוח מקיף" לחיפוש בכל הטבלאות',
    ),
)
