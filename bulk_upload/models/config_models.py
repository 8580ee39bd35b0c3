from __future__ import annotations

from dataclasses import dataclass, field

"""Config dataclasses for the bulk upload pipeline.

These are built once by bulk_upload.config.loader at process start and passed
by reference into the transformer, the HTTP layer and the importer. Nothing
mutates them afterwards.
"""


@dataclass(frozen=True)
class UploadLimits:
    """Request-shape limits applied before any parsing."""
    max_file_size_mb: int
    allowed_mime_types: tuple[str, ...]
    error_preview_limit: int = 10
    data_preview_limit: int = 5

    @property
    def max_file_size_bytes(self) -> int:
        return self.max_file_size_mb * 1024 * 1024


@dataclass(frozen=True)
class CategoryRule:
    """Keyword -> category mapping used by the category predictor.

    Keywords are matched against transaction descriptions on word boundaries.
    Priority is 1..10; higher wins.
    """
    keywords: tuple[str, ...]
    flow: str  # ENTRADA / SAIDA
    major_category: str
    category: str
    sub_category: str
    priority: int = 5


@dataclass(frozen=True)
class TableNames:
    origins: str = "origins"
    banks: str = "banks"
    categories: str = "categories"
    transactions: str = "transactions"


@dataclass(frozen=True)
class DatabaseConfig:
    """Database connection configuration.

    Used as fallback when environment variables are not set.
    Environment variables take precedence over these values.
    """
    host: str | None = None
    port: int | None = None
    user: str | None = None
    password: str | None = None
    database: str | None = None
    dsn: str | None = None
    tables: TableNames = field(default_factory=TableNames)


@dataclass(frozen=True)
class UploadConfig:
    """Root configuration object for the pipeline."""
    limits: UploadLimits
    origin_vocabulary: tuple[str, ...]  # canonical spellings, e.g. "Comum"
    default_origin: str  # used by the importer when Origin is blank
    major_categories: tuple[str, ...]
    major_category_aliases: dict[str, str]  # alias (already upper-cased) -> canonical
    flow_aliases: dict[str, str]  # alias (already upper-cased) -> ENTRADA/SAIDA
    category_rules: tuple[CategoryRule, ...]
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
