from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

"""Template registry for the four bulk import types.

Each template is an ordered, immutable set of column specifications. Header
names must match the spreadsheet exactly (surrounding whitespace aside); there
is no fuzzy header matching.
"""

__all__ = [
    "ValueKind",
    "ColumnSpec",
    "TemplateDefinition",
    "UnknownTemplateType",
    "TEMPLATE_TYPES",
    "get_template",
    "AMOUNT_COLUMNS",
]


class UnknownTemplateType(ValueError):
    """Raised when an import type is not one of TEMPLATE_TYPES."""

    def __init__(self, template_type: object) -> None:
        self.template_type = template_type
        super().__init__(f"Unknown template type: {template_type}")


class ValueKind(Enum):
    DATE = "date"
    AMOUNT = "amount"
    FLOW = "flow"
    MAJOR_CATEGORY = "major_category"
    TEXT = "text"


@dataclass(frozen=True)
class ColumnSpec:
    name: str
    kind: ValueKind = ValueKind.TEXT
    required: bool = False
    width: int = 20  # column width (characters) in the downloadable template
    canonical: str | None = None  # closed vocabulary key, e.g. "origins"


@dataclass(frozen=True)
class TemplateDefinition:
    template_type: str
    sheet_name: str
    columns: tuple[ColumnSpec, ...]
    sample_rows: tuple[dict[str, Any], ...] = ()

    @property
    def column_names(self) -> list[str]:
        return [c.name for c in self.columns]

    def column(self, name: str) -> ColumnSpec | None:
        for c in self.columns:
            if c.name == name:
                return c
        return None

    def column_index(self, name: str) -> int:
        """Position of a column; unknown names sort last."""
        for i, c in enumerate(self.columns):
            if c.name == name:
                return i
        return len(self.columns)


INCOME_AMOUNT = "Income Amount"
OUTGOING_AMOUNT = "Outgoing Amount"
AMOUNT_COLUMNS = (INCOME_AMOUNT, OUTGOING_AMOUNT)


_TRANSACTIONS = TemplateDefinition(
    template_type="transactions",
    sheet_name="Transactions",
    columns=(
        ColumnSpec("Date", ValueKind.DATE, required=True, width=12),
        ColumnSpec("Origin", ValueKind.TEXT, width=15, canonical="origins"),
        ColumnSpec("Bank", ValueKind.TEXT, required=True, width=20),
        ColumnSpec("Flow", ValueKind.FLOW, required=True, width=12),
        ColumnSpec("Major Category", ValueKind.MAJOR_CATEGORY, width=25),
        ColumnSpec("Category", ValueKind.TEXT, width=20),
        ColumnSpec("Sub Category", ValueKind.TEXT, width=20),
        ColumnSpec("Description", ValueKind.TEXT, width=30),
        ColumnSpec(INCOME_AMOUNT, ValueKind.AMOUNT, width=15),
        ColumnSpec(OUTGOING_AMOUNT, ValueKind.AMOUNT, width=15),
        ColumnSpec("Notes", ValueKind.TEXT, width=25),
    ),
    sample_rows=(
        {
            "Date": "2024-01-15",
            "Origin": "Comum",
            "Bank": "Millennium BCP",
            "Flow": "ENTRADA",
            "Major Category": "RENDIMENTO",
            "Category": "Salary",
            "Sub Category": "Monthly Salary",
            "Description": "January salary payment",
            INCOME_AMOUNT: 3500.00,
            OUTGOING_AMOUNT: None,
            "Notes": "Direct deposit",
        },
        {
            "Date": "2024-01-16",
            "Origin": "Comum",
            "Bank": "Caixa Geral",
            "Flow": "SAIDA",
            "Major Category": "CUSTOS_VARIAVEIS",
            "Category": "Groceries",
            "Sub Category": "Supermarket",
            "Description": "Continente weekly shopping",
            INCOME_AMOUNT: None,
            OUTGOING_AMOUNT: 85.50,
            "Notes": "Receipt #12345",
        },
    ),
)

_CATEGORIES = TemplateDefinition(
    template_type="categories",
    sheet_name="Categories",
    columns=(
        ColumnSpec("Flow", ValueKind.FLOW, required=True, width=12),
        ColumnSpec("Major Category", ValueKind.MAJOR_CATEGORY, required=True, width=25),
        ColumnSpec("Category", ValueKind.TEXT, required=True, width=20),
        ColumnSpec("Sub Category", ValueKind.TEXT, required=True, width=20),
    ),
    sample_rows=(
        {"Flow": "ENTRADA", "Major Category": "RENDIMENTO", "Category": "Salary", "Sub Category": "Monthly Salary"},
        {"Flow": "ENTRADA", "Major Category": "RENDIMENTO_EXTRA", "Category": "Freelance", "Sub Category": "Consulting Work"},
        {"Flow": "SAIDA", "Major Category": "CUSTOS_FIXOS", "Category": "Housing", "Sub Category": "Rent"},
        {"Flow": "SAIDA", "Major Category": "CUSTOS_VARIAVEIS", "Category": "Groceries", "Sub Category": "Supermarket"},
    ),
)

_ORIGINS = TemplateDefinition(
    template_type="origins",
    sheet_name="Origins",
    columns=(ColumnSpec("Name", ValueKind.TEXT, required=True, width=20, canonical="origins"),),
    sample_rows=({"Name": "Comum"}, {"Name": "Diogo"}, {"Name": "Joana"}),
)

_BANKS = TemplateDefinition(
    template_type="banks",
    sheet_name="Banks",
    columns=(ColumnSpec("Name", ValueKind.TEXT, required=True, width=25),),
    sample_rows=({"Name": "Millennium BCP"}, {"Name": "Caixa Geral"}, {"Name": "Revolut"}),
)

_REGISTRY: dict[str, TemplateDefinition] = {
    t.template_type: t for t in (_TRANSACTIONS, _CATEGORIES, _ORIGINS, _BANKS)
}

TEMPLATE_TYPES: tuple[str, ...] = tuple(_REGISTRY)


def get_template(template_type: str) -> TemplateDefinition:
    """Return the column specification of an import type.

    Raises:
        UnknownTemplateType: if template_type is not a recognized identifier
    """
    try:
        return _REGISTRY[template_type]
    except (KeyError, TypeError):
        raise UnknownTemplateType(template_type) from None
