from __future__ import annotations

import logging
from datetime import date
from typing import Any

from ..db.batch_insert import batch_insert
from ..models.config_models import TableNames
from ..models.processing_result import ImportResult
from ..models.validation_result import ValidationResult

"""Import step: writes a validated upload to PostgreSQL.

Only a fully valid ValidationResult is accepted. The caller owns the
transaction (see bulk_upload.db.connection.db_cursor); every statement here
runs on the given cursor so a failure anywhere rolls back the whole file.

Transactions reference origins, banks and categories by name. Missing ones are
created first (ON CONFLICT DO NOTHING), then the foreign keys are resolved
inside the INSERT through sub-selects in the execute_values row template.
"""

logger = logging.getLogger(__name__)

# Portuguese month names stored in transactions.month
MONTHS = (
    "JANEIRO", "FEVEREIRO", "MARCO", "ABRIL", "MAIO", "JUNHO",
    "JULHO", "AGOSTO", "SETEMBRO", "OUTUBRO", "NOVEMBRO", "DEZEMBRO",
)

CATEGORY_COLUMNS = ("flow", "major_category", "category", "sub_category")
TRANSACTION_COLUMNS = (
    "date", "origin_id", "bank_id", "flow", "category_id", "description",
    "incomes", "outgoings", "notes", "month", "year", "is_ai_generated", "is_validated",
)


class ImportRefusedError(Exception):
    """Raised when asked to import a result that still has validation errors."""

    def __init__(self, error_count: int) -> None:
        self.error_count = error_count
        super().__init__(f"refusing to import: {error_count} validation error(s)")


def month_name(iso_date: str) -> tuple[str, int]:
    """Portuguese month name and year of an ISO date string."""
    d = date.fromisoformat(iso_date)
    return MONTHS[d.month - 1], d.year


def _positive(amount: Any) -> float | None:
    return amount if isinstance(amount, (int, float)) and amount > 0 else None


def _insert_names(cursor: Any, table: str, names: list[str]) -> int:
    unique = dict.fromkeys(names)
    return batch_insert(cursor, table, ["name"], [(n,) for n in unique]).sent_rows


def _category_key(record: dict[str, Any]) -> tuple[Any, ...]:
    return (record["Flow"], record["Major Category"], record["Category"], record["Sub Category"])


def _import_categories(cursor: Any, table: str, records: list[dict[str, Any]]) -> int:
    keys = list(dict.fromkeys(_category_key(r) for r in records))
    return batch_insert(cursor, table, CATEGORY_COLUMNS, keys).sent_rows


def _transaction_template(tables: TableNames) -> str:
    return (
        "(%s,"
        f" (SELECT id FROM {tables.origins} WHERE name = %s),"
        f" (SELECT id FROM {tables.banks} WHERE name = %s),"
        " %s,"
        f" (SELECT id FROM {tables.categories}"
        " WHERE flow = %s AND major_category = %s AND category = %s AND sub_category = %s),"
        " %s, %s, %s, %s, %s, %s, %s, %s)"
    )


def _import_transactions(
    cursor: Any,
    tables: TableNames,
    result: ValidationResult,
    default_origin: str,
) -> dict[str, int]:
    records = result.records()
    for r in records:
        r["Origin"] = r.get("Origin") or default_origin

    per_table: dict[str, int] = {}
    per_table[tables.origins] = _insert_names(cursor, tables.origins, [r["Origin"] for r in records])
    per_table[tables.banks] = _insert_names(cursor, tables.banks, [r["Bank"] for r in records])
    complete = [r for r in records if all(r.get(c) for c in ("Major Category", "Category", "Sub Category"))]
    per_table[tables.categories] = _import_categories(cursor, tables.categories, complete)

    rows = []
    for row, r in zip(result.rows, records):
        month, year = month_name(r["Date"])
        rows.append(
            (
                r["Date"],
                r["Origin"],
                r["Bank"],
                r["Flow"],
                *_category_key(r),
                r.get("Description") or "",
                _positive(r.get("Income Amount")) if r["Flow"] == "ENTRADA" else None,
                _positive(r.get("Outgoing Amount")) if r["Flow"] == "SAIDA" else None,
                r.get("Notes"),
                month,
                year,
                bool(row.suggestions),
                True,
            )
        )
    per_table[tables.transactions] = batch_insert(
        cursor,
        tables.transactions,
        TRANSACTION_COLUMNS,
        rows,
        template=_transaction_template(tables),
        on_conflict=None,
    ).sent_rows
    return per_table


def import_records(
    cursor: Any,
    result: ValidationResult,
    tables: TableNames,
    default_origin: str = "Comum",
) -> ImportResult:
    """Write the records of a valid ValidationResult.

    Raises:
        ImportRefusedError: if the result has validation errors
        BatchInsertError: if the database rejects a statement
    """
    if not result.is_valid:
        raise ImportRefusedError(len(result.errors))

    records = result.records()
    kind = result.template_type
    if kind == "origins":
        per_table = {tables.origins: _insert_names(cursor, tables.origins, [r["Name"] for r in records])}
    elif kind == "banks":
        per_table = {tables.banks: _insert_names(cursor, tables.banks, [r["Name"] for r in records])}
    elif kind == "categories":
        per_table = {tables.categories: _import_categories(cursor, tables.categories, records)}
    else:
        per_table = _import_transactions(cursor, tables, result, default_origin)

    inserted = result.total_records
    logger.info("imported type=%s records=%d tables=%s", kind, inserted, per_table)
    return ImportResult(template_type=kind, inserted_rows=inserted, per_table=per_table)
