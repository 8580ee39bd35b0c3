from __future__ import annotations

import io
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import date
from pathlib import PurePath
from typing import Any

import pandas as pd
from openpyxl.utils import get_column_letter

from ..config.loader import load_config
from ..models.processing_result import FileStatus, RunResult
from ..models.templates import TemplateDefinition, get_template
from ..models.validation_result import ValidationError, ValidationResult
from .normalizers import FLOW_VALUES

"""Report generation: error workbooks, downloadable templates and summaries.

Workbooks are written with pandas' ExcelWriter (openpyxl engine); column
widths are applied on the openpyxl worksheet afterwards.
"""

__all__ = [
    "ERROR_REPORT_COLUMNS",
    "ValidationSummary",
    "generate_error_report",
    "generate_template",
    "template_filename",
    "error_report_filename",
    "summarize",
    "render_summary_line",
]

ERROR_REPORT_SHEET = "Errors"
ERROR_REPORT_COLUMNS = ("Row", "Column", "Current Value", "Error", "Suggestion")
_ERROR_REPORT_WIDTHS = (8, 20, 25, 50, 50)

RULES_SHEET = "Validation Rules"
_RULES_WIDTHS = (20, 60)


@dataclass(frozen=True)
class ValidationSummary:
    """Client-facing digest of a ValidationResult."""
    total_records: int
    error_count: int
    errors: list[ValidationError] = field(default_factory=list)  # first N errors
    has_more_errors: bool = False
    preview: list[dict[str, Any]] = field(default_factory=list)  # first M rows

    @property
    def is_valid(self) -> bool:
        return self.error_count == 0


def _set_widths(worksheet: Any, widths: Iterable[int]) -> None:
    for i, width in enumerate(widths, start=1):
        worksheet.column_dimensions[get_column_letter(i)].width = width


def _display(value: Any) -> Any:
    """Cell value for the report; None stays empty."""
    if value is None:
        return ""
    if isinstance(value, (str, int, float)):
        return value
    return str(value)


def generate_error_report(errors: Sequence[ValidationError], original_filename: str | None = None) -> bytes:
    """Build an .xlsx workbook listing every error, one row each, in order."""
    records = [
        {
            "Row": e.row,
            "Column": e.column,
            "Current Value": _display(e.value),
            "Error": e.error,
            "Suggestion": e.suggestion or "",
        }
        for e in errors
    ]
    df = pd.DataFrame(records, columns=list(ERROR_REPORT_COLUMNS))
    buf = io.BytesIO()
    with pd.ExcelWriter(buf, engine="openpyxl") as writer:
        df.to_excel(writer, sheet_name=ERROR_REPORT_SHEET, index=False)
        _set_widths(writer.sheets[ERROR_REPORT_SHEET], _ERROR_REPORT_WIDTHS)
    return buf.getvalue()


def _validation_rules(major_categories: Sequence[str]) -> pd.DataFrame:
    rules = [
        ("Date", "YYYY-MM-DD, DD/MM/YYYY or DD-MM-YYYY (day first)"),
        ("Flow", " or ".join(FLOW_VALUES) + "; left blank it is taken from the filled amount column"),
        ("Major Category", ", ".join(major_categories)),
        ("Income Amount", "Positive number, e.g. 1234.56 or 1.234,56; only for ENTRADA"),
        ("Outgoing Amount", "Positive number, e.g. 1234.56 or 1.234,56; only for SAIDA"),
        ("Required", "Date, Bank, Flow and one of Income Amount / Outgoing Amount"),
    ]
    return pd.DataFrame(rules, columns=["Field", "Rule"])


def generate_template(template_type: str, major_categories: Sequence[str] | None = None) -> bytes:
    """Build the downloadable .xlsx template for an import type.

    Raises:
        UnknownTemplateType: if template_type is not a known import type
    """
    template: TemplateDefinition = get_template(template_type)
    df = pd.DataFrame(list(template.sample_rows), columns=template.column_names)
    buf = io.BytesIO()
    with pd.ExcelWriter(buf, engine="openpyxl") as writer:
        df.to_excel(writer, sheet_name=template.sheet_name, index=False)
        _set_widths(writer.sheets[template.sheet_name], (c.width for c in template.columns))
        if template.template_type == "transactions":
            rules = _validation_rules(major_categories or load_config().major_categories)
            rules.to_excel(writer, sheet_name=RULES_SHEET, index=False)
            _set_widths(writer.sheets[RULES_SHEET], _RULES_WIDTHS)
    return buf.getvalue()


def template_filename(template_type: str, today: date | None = None) -> str:
    today = today or date.today()
    return f"{template_type}_template_{today.isoformat()}.xlsx"


def error_report_filename(original_filename: str | None, today: date | None = None) -> str:
    today = today or date.today()
    stem = PurePath(original_filename).stem if original_filename else "upload"
    return f"{stem}_errors_{today.isoformat()}.xlsx"


def summarize(result: ValidationResult, error_limit: int = 10, preview_limit: int = 5) -> ValidationSummary:
    return ValidationSummary(
        total_records=result.total_records,
        error_count=len(result.errors),
        errors=list(result.errors[:error_limit]),
        has_more_errors=len(result.errors) > error_limit,
        preview=result.records()[:preview_limit],
    )


def _format_seconds(seconds: float) -> str:
    if seconds == int(seconds):
        return str(int(seconds))
    if seconds < 0.01:
        # avoid scientific notation
        return f"{seconds:.6f}".rstrip("0").rstrip(".")
    return f"{seconds:.3f}".rstrip("0").rstrip(".")


def render_summary_line(run: RunResult) -> str:
    """Render the SUMMARY line printed at the end of `bulk-upload validate`.

    Format:
    SUMMARY files={n} valid={v} invalid={i} failed={f} rows={rows} errors={e} elapsed_sec={s}
    """
    return (
        f"SUMMARY files={len(run.files)} "
        f"valid={run.count(FileStatus.VALID)} "
        f"invalid={run.count(FileStatus.INVALID)} "
        f"failed={run.count(FileStatus.FAILED)} "
        f"rows={run.total_records} "
        f"errors={run.total_errors} "
        f"elapsed_sec={_format_seconds(run.elapsed_seconds)}"
    )
