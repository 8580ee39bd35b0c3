"""Domain models for the bulk upload pipeline.

Templates, raw and transformed rows, validation results, configuration and
run/import results. Everything here is a plain (mostly frozen) dataclass.
"""

from .config_models import CategoryRule, DatabaseConfig, TableNames, UploadConfig, UploadLimits
from .error_record import ErrorRecord
from .processing_result import FileOutcome, FileStatus, ImportResult, RunResult
from .row_data import AISuggestion, RawRow, TransformationLogEntry, TransformedRow
from .templates import TEMPLATE_TYPES, ColumnSpec, TemplateDefinition, UnknownTemplateType, ValueKind, get_template
from .validation_result import RowOutcome, ValidationError, ValidationResult

__all__ = [
    # Configuration models
    "CategoryRule",
    "DatabaseConfig",
    "TableNames",
    "UploadConfig",
    "UploadLimits",
    # Templates
    "TEMPLATE_TYPES",
    "ColumnSpec",
    "TemplateDefinition",
    "UnknownTemplateType",
    "ValueKind",
    "get_template",
    # Rows and validation
    "RawRow",
    "TransformationLogEntry",
    "AISuggestion",
    "TransformedRow",
    "RowOutcome",
    "ValidationError",
    "ValidationResult",
    # Results
    "ErrorRecord",
    "FileOutcome",
    "FileStatus",
    "ImportResult",
    "RunResult",
]
