from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .row_data import AISuggestion, TransformationLogEntry, TransformedRow

"""Validation models produced by the row transformer and the pipeline.

ValidationError is a plain record (not an exception): one offending cell,
1-based spreadsheet row number, human readable message and an optional fix.
ValidationResult owns the transformed rows and the ordered error sequence of
one pipeline invocation.
"""

__all__ = [
    "ValidationError",
    "RowOutcome",
    "ValidationResult",
]


@dataclass(frozen=True)
class ValidationError:
    """Structured per-cell validation error.

    Attributes:
        row: Spreadsheet row number (header is row 1, first data row is 2)
        column: Template column name
        value: Offending raw value as read from the sheet
        error: Human readable message
        suggestion: Optional fix hint shown to the user
    """
    row: int
    column: str
    value: Any
    error: str
    suggestion: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "row": self.row,
            "column": self.column,
            "value": self.value,
            "error": self.error,
            "suggestion": self.suggestion,
        }


@dataclass(frozen=True)
class RowOutcome:
    """Result of transforming a single raw row."""
    row: TransformedRow
    errors: tuple[ValidationError, ...] = ()


@dataclass(frozen=True)
class ValidationResult:
    template_type: str
    rows: list[TransformedRow] = field(default_factory=list)
    errors: list[ValidationError] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    @property
    def total_records(self) -> int:
        return len(self.rows)

    @property
    def transformation_log(self) -> list[TransformationLogEntry]:
        return [entry for row in self.rows for entry in row.transformations]

    @property
    def ai_suggestions(self) -> list[AISuggestion]:
        return [s for row in self.rows for s in row.suggestions]

    def records(self) -> list[dict[str, Any]]:
        """Transformed values as plain dicts, in spreadsheet order."""
        return [dict(row.values) for row in self.rows]
