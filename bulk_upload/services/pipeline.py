from __future__ import annotations

import logging
from datetime import UTC, datetime
from pathlib import Path

from ..excel.reader import SpreadsheetReadError, read_upload
from ..logging.error_log import ErrorLogBuffer, ErrorRecord
from ..models.processing_result import FileOutcome, FileStatus, RunResult
from ..models.templates import get_template
from ..models.validation_result import ValidationError, ValidationResult
from .progress import ProgressTracker
from .report import error_report_filename, generate_error_report
from .transformer import RowTransformer

"""Pipeline orchestration.

parse_and_validate handles one uploaded file:
decode -> look up template -> transform every row -> aggregate.
validate_files runs it over several files for the command line tool.

Codec failures propagate as SpreadsheetReadError and unknown import types as
UnknownTemplateType; content problems never raise, they come back as
ValidationError records on the result.
"""

logger = logging.getLogger(__name__)


def parse_and_validate(
    data: bytes,
    template_type: str,
    transformer: RowTransformer,
    filename: str | None = None,
) -> ValidationResult:
    """Parse an uploaded binary and validate it against a template.

    Args:
        data: Raw upload bytes (.xlsx, .xls or .csv)
        template_type: One of transactions, categories, origins, banks
        transformer: Shared row transformer (read-only, reusable)
        filename: Original filename, used to pick the codec when the file
            signature is inconclusive

    Returns:
        ValidationResult with one transformed row per non-empty spreadsheet row
        and every error in row order, then template column order.
    """
    sheet = read_upload(data, filename)
    template = get_template(template_type)

    rows = []
    errors: list[ValidationError] = []
    for raw in sheet.rows:
        outcome = transformer.transform(raw, template)
        rows.append(outcome.row)
        errors.extend(outcome.errors)

    result = ValidationResult(template_type=template_type, rows=rows, errors=errors)
    logger.info(
        "validated %s type=%s rows=%d errors=%d transformations=%d suggestions=%d",
        filename or "<upload>",
        template_type,
        result.total_records,
        len(errors),
        len(result.transformation_log),
        len(result.ai_suggestions),
    )
    return result


def _validate_file(
    path: Path,
    template_type: str,
    transformer: RowTransformer,
    report_dir: Path,
    error_log: ErrorLogBuffer,
) -> FileOutcome:
    """Validate one file; codec failures become a FAILED outcome."""
    try:
        result = parse_and_validate(path.read_bytes(), template_type, transformer, path.name)
    except (OSError, SpreadsheetReadError) as e:
        logger.error(f"{path.name}: {e}")
        error_log.append(
            ErrorRecord.create(
                file=path.name,
                template_type=template_type,
                error_type="READ_ERROR",
                message=str(e),
            )
        )
        return FileOutcome(file_name=path.name, status=FileStatus.FAILED, error=str(e))

    if result.is_valid:
        return FileOutcome(file_name=path.name, status=FileStatus.VALID, total_records=result.total_records)

    report_dir.mkdir(parents=True, exist_ok=True)
    report_path = report_dir / error_report_filename(path.name)
    report_path.write_bytes(generate_error_report(result.errors, path.name))
    logger.warning(f"{path.name}: {len(result.errors)} validation error(s), report written to {report_path}")
    return FileOutcome(
        file_name=path.name,
        status=FileStatus.INVALID,
        total_records=result.total_records,
        error_count=len(result.errors),
        report_path=str(report_path),
    )


def validate_files(
    paths: list[Path],
    template_type: str,
    transformer: RowTransformer,
    report_dir: Path,
    error_log: ErrorLogBuffer | None = None,
) -> RunResult:
    """Validate several files against one template.

    Every file is processed even when earlier ones fail. An error report
    workbook is written for each invalid file and file-level failures are
    flushed to the JSON Lines error log once at the end.

    Raises:
        UnknownTemplateType: before any file is read
    """
    get_template(template_type)
    error_log = error_log if error_log is not None else ErrorLogBuffer()
    start_time = datetime.now(UTC)
    outcomes: list[FileOutcome] = []

    with ProgressTracker(len(paths)) as progress:
        for path in paths:
            progress.start_file(path)
            outcomes.append(_validate_file(path, template_type, transformer, report_dir, error_log))
            progress.finish_file(
                valid=sum(1 for o in outcomes if o.status is FileStatus.VALID),
                invalid=sum(1 for o in outcomes if o.status is FileStatus.INVALID),
                failed=sum(1 for o in outcomes if o.status is FileStatus.FAILED),
            )

    log_path = error_log.flush()
    if log_path is not None:
        logger.info(f"error log written to {log_path}")
    return RunResult(start_time=start_time, end_time=datetime.now(UTC), files=outcomes)
