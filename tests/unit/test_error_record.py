from __future__ import annotations

import json

from bulk_upload.models.error_record import FILE_LEVEL_ROW, ErrorRecord


def test_error_record_defaults_to_file_level_row():
    rec = ErrorRecord.create(
        file="statement.xlsx",
        template_type="transactions",
        error_type="READ_ERROR",
        message="could not read xlsx file: File is not a zip file",
    )
    assert rec.row == FILE_LEVEL_ROW == -1

    data = json.loads(rec.to_json_line())
    assert data["row"] == -1
    assert data["timestamp"].endswith("Z")
    assert set(data.keys()) == {"timestamp", "file", "template_type", "row", "error_type", "message"}


def test_error_record_keeps_non_ascii():
    rec = ErrorRecord.create(
        file="março.xlsx",
        template_type="banks",
        error_type="READ_ERROR",
        message="ficheiro inválido",
        row=7,
    )
    line = rec.to_json_line()
    assert "março.xlsx" in line
    assert json.loads(line)["row"] == 7
