from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

"""Aggregated results for command line validation runs and database imports.

FileOutcome tracks one validated file, RunResult aggregates a whole
`bulk-upload validate` invocation for the SUMMARY line, and ImportResult
reports what the import step wrote.
"""


class FileStatus(Enum):
    """Outcome of validating one file.

    - VALID: decoded and every row passed validation
    - INVALID: decoded, but at least one validation error was found
    - FAILED: could not be decoded (codec failure)
    """
    VALID = "valid"
    INVALID = "invalid"
    FAILED = "failed"


@dataclass(frozen=True)
class FileOutcome:
    file_name: str
    status: FileStatus
    total_records: int = 0
    error_count: int = 0
    report_path: str | None = None  # written error report (invalid files only)
    error: str | None = None  # failure reason (failed files only)


@dataclass(frozen=True)
class RunResult:
    """Aggregated results of a validation run over several files."""
    start_time: datetime
    end_time: datetime
    files: list[FileOutcome] = field(default_factory=list)

    @property
    def elapsed_seconds(self) -> float:
        return (self.end_time - self.start_time).total_seconds()

    def count(self, status: FileStatus) -> int:
        return sum(1 for f in self.files if f.status is status)

    @property
    def total_records(self) -> int:
        return sum(f.total_records for f in self.files)

    @property
    def total_errors(self) -> int:
        return sum(f.error_count for f in self.files)


@dataclass(frozen=True)
class ImportResult:
    template_type: str
    inserted_rows: int
    per_table: dict[str, int] = field(default_factory=dict)  # table -> rows sent
