# Shared pytest fixtures
from __future__ import annotations

import io
from pathlib import Path

import pandas as pd
import pytest

from bulk_upload.config.loader import load_config
from bulk_upload.logging.init import reset_logging
from bulk_upload.models.row_data import RawRow
from bulk_upload.models.templates import get_template
from bulk_upload.services.transformer import RowTransformer

XLSX_MIME = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def build_xlsx(rows: list[dict], columns: list[str] | None = None, sheet_name: str = "Sheet1") -> bytes:
    """Workbook bytes with one header row followed by rows."""
    df = pd.DataFrame(rows, columns=columns)
    buf = io.BytesIO()
    with pd.ExcelWriter(buf, engine="openpyxl") as writer:
        df.to_excel(writer, sheet_name=sheet_name, index=False)
    return buf.getvalue()


def build_csv(rows: list[dict], columns: list[str] | None = None) -> bytes:
    df = pd.DataFrame(rows, columns=columns)
    return df.to_csv(index=False).encode("utf-8")


def transaction_row(**overrides) -> dict:
    """A valid transactions row; keyword names use underscores for spaces."""
    row = {
        "Date": "2024-01-15",
        "Origin": "Comum",
        "Bank": "Millennium BCP",
        "Flow": "SAIDA",
        "Major Category": "CUSTOS_VARIAVEIS",
        "Category": "Groceries",
        "Sub Category": "Supermarket",
        "Description": "Weekly shopping",
        "Income Amount": None,
        "Outgoing Amount": 42.3,
        "Notes": None,
    }
    for key, value in overrides.items():
        row[key.replace("_", " ")] = value
    return row


@pytest.fixture(scope="session")
def upload_config():
    return load_config()


@pytest.fixture(scope="session")
def transformer(upload_config) -> RowTransformer:
    return RowTransformer(upload_config)


@pytest.fixture()
def transactions_template():
    return get_template("transactions")


@pytest.fixture()
def transactions_columns(transactions_template) -> list[str]:
    return transactions_template.column_names


@pytest.fixture()
def transform(transformer):
    """transform(values, template_type="transactions", row=2) -> RowOutcome"""
    def _transform(values: dict, template_type: str = "transactions", row: int = 2):
        return transformer.transform(RawRow(row_number=row, values=values), get_template(template_type))
    return _transform


@pytest.fixture()
def temp_workdir(monkeypatch, tmp_path: Path) -> Path:
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture(autouse=True)
def _reset_logging():
    reset_logging()
    yield
    reset_logging()


@pytest.fixture()
def make_xlsx():
    return build_xlsx


@pytest.fixture()
def make_csv():
    return build_csv


@pytest.fixture()
def make_row():
    return transaction_row
