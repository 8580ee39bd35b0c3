from __future__ import annotations

import io
import math
from dataclasses import dataclass
from pathlib import PurePath
from typing import Any

import numpy as np
import pandas as pd

from ..models.row_data import RawRow

"""Spreadsheet reader for uploaded files.

The first sheet is read; row 1 is the header and every following row becomes a
RawRow keyed by header text. Supports .xlsx (openpyxl), .xls (xlrd) and .csv.
Any codec failure is raised as SpreadsheetReadError.
"""

XLSX_MAGIC = b"PK\x03\x04"
XLS_MAGIC = b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1"

# header = spreadsheet row 1, first data row = row 2
FIRST_DATA_ROW = 2


class SpreadsheetReadError(Exception):
    """Raised when an uploaded binary cannot be decoded as a spreadsheet."""


@dataclass
class SheetData:
    sheet_name: str
    columns: list[str]
    rows: list[RawRow]


def detect_format(data: bytes, filename: str | None = None) -> str:
    """Return "xlsx", "xls" or "csv" from the file signature, then the extension."""
    if data.startswith(XLSX_MAGIC):
        return "xlsx"
    if data.startswith(XLS_MAGIC):
        return "xls"
    if filename:
        suffix = PurePath(filename).suffix.lower().lstrip(".")
        if suffix in ("xlsx", "xls"):
            return suffix
    return "csv"


def _to_python(value: Any) -> Any:
    """Empty/NaN -> None, numpy scalars -> plain Python scalars."""
    if value is None or value is pd.NaT or value is pd.NA:
        return None
    if isinstance(value, np.datetime64):
        return pd.Timestamp(value).to_pydatetime()
    if isinstance(value, np.generic):
        value = value.item()
    if isinstance(value, float) and math.isnan(value):
        return None
    if isinstance(value, str) and value.strip() == "":
        return None
    return value


def _read_frame(data: bytes, fmt: str) -> tuple[str, pd.DataFrame]:
    buf = io.BytesIO(data)
    if fmt == "csv":
        # keep cells as text ("NA" stays a string); blank lines keep their row number
        df = pd.read_csv(buf, dtype=str, keep_default_na=False, skip_blank_lines=False)
        return "Sheet1", df
    engine = "openpyxl" if fmt == "xlsx" else "xlrd"
    xls = pd.ExcelFile(buf, engine=engine)
    if not xls.sheet_names:
        raise SpreadsheetReadError("workbook has no sheets")
    name = xls.sheet_names[0]
    df = xls.parse(name, header=0, dtype=object)
    return str(name), df


def read_upload(data: bytes, filename: str | None = None) -> SheetData:
    """Decode an uploaded binary into header + raw rows.

    Rows whose cells are all empty are skipped, but row numbers keep the
    spreadsheet position so error reports point at the right line.
    """
    if not data:
        raise SpreadsheetReadError("file is empty")
    fmt = detect_format(data, filename)
    try:
        sheet_name, df = _read_frame(data, fmt)
    except SpreadsheetReadError:
        raise
    except Exception as e:
        raise SpreadsheetReadError(f"could not read {fmt} file: {e}") from e

    columns = [str(c).strip() for c in df.columns]
    rows: list[RawRow] = []
    for position, raw in enumerate(df.itertuples(index=False, name=None)):
        values = {col: _to_python(val) for col, val in zip(columns, raw, strict=False)}
        if all(v is None for v in values.values()):
            continue
        rows.append(RawRow(row_number=position + FIRST_DATA_ROW, values=values))
    return SheetData(sheet_name=sheet_name, columns=columns, rows=rows)
