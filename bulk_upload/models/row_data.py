from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

"""Row models for the bulk upload pipeline.

RawRow is what the spreadsheet reader hands over: column name -> untyped cell
value, exactly as decoded. TransformedRow is the normalized counterpart built
from exactly one RawRow, together with the log of transformations applied and
any keyword-derived category suggestions.
"""

__all__ = [
    "RawRow",
    "TransformationLogEntry",
    "AISuggestion",
    "TransformedRow",
]


@dataclass(frozen=True)
class RawRow:
    """A single decoded spreadsheet row.

    The row_number is the spreadsheet row (header = row 1, first data row = 2).
    """
    row_number: int
    values: dict[str, Any]

    def get(self, column: str) -> Any:
        return self.values.get(column)

    def copy_values(self) -> dict[str, Any]:
        return dict(self.values)


@dataclass(frozen=True)
class TransformationLogEntry:
    row: int
    field: str
    transformation: str  # e.g. "Date Normalization"
    before: Any
    after: Any


@dataclass(frozen=True)
class AISuggestion:
    """Non-binding category guess attached to a transformed row.

    Carries no confidence value; reasoning names the keyword that matched.
    """
    row: int
    field: str
    suggested_category: str
    reasoning: str
    alternatives: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "row": self.row,
            "field": self.field,
            "suggestedCategory": self.suggested_category,
            "reasoning": self.reasoning,
            "alternatives": list(self.alternatives),
        }


@dataclass(frozen=True)
class TransformedRow:
    row_number: int
    values: dict[str, Any]  # column -> normalized value (None when blank)
    transformations: tuple[TransformationLogEntry, ...] = field(default_factory=tuple)
    suggestions: tuple[AISuggestion, ...] = field(default_factory=tuple)
