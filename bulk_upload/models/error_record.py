from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime

"""ErrorRecord: one line of the JSON Lines upload error log.

Records file-level failures of a command line validation run (a file that
could not be decoded, a template that could not be resolved). Per-cell
validation errors are not logged here; they go to the error report workbook.
"""

__all__ = [
    "ErrorRecord",
    "FILE_LEVEL_ROW",
]

# row value for failures that are not tied to a spreadsheet row
FILE_LEVEL_ROW = -1


@dataclass(frozen=True)
class ErrorRecord:
    """Structured error record for JSON Lines logging.

    Attributes:
        timestamp: ISO8601 UTC timestamp with 'Z' suffix
        file: Uploaded filename
        template_type: Import type the file was validated against
        row: Spreadsheet row number, or -1 for file-level failures
        error_type: Error classification in UPPER_SNAKE_CASE, e.g. READ_ERROR
        message: Error description
    """
    timestamp: str
    file: str
    template_type: str
    row: int
    error_type: str
    message: str

    @staticmethod
    def create(
        file: str,
        template_type: str,
        error_type: str,
        message: str,
        row: int = FILE_LEVEL_ROW,
    ) -> ErrorRecord:
        ts = datetime.now(UTC).isoformat().replace("+00:00", "Z")
        return ErrorRecord(
            timestamp=ts,
            file=file,
            template_type=template_type,
            row=row,
            error_type=error_type,
            message=message,
        )

    def to_json_line(self) -> str:
        return json.dumps(asdict(self), ensure_ascii=False)
