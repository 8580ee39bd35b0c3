from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from ..models.config_models import (
    CategoryRule,
    DatabaseConfig,
    TableNames,
    UploadConfig,
    UploadLimits,
)

"""Config loader.

Responsibilities:
- Load the YAML configuration (bundled default.yml unless a path is given)
- Validate it against config_schema.json
- Apply defaults and build the frozen UploadConfig
"""

_CONFIG_DIR = Path(__file__).parent
DEFAULT_CONFIG_PATH = _CONFIG_DIR / "default.yml"
SCHEMA_PATH = _CONFIG_DIR / "config_schema.json"


class ConfigError(Exception):
    pass


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against JSON schema.

    Raises:
        ConfigError: If the schema file is missing or not valid JSON, or the
            config data fails schema validation.
    """
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")

    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"config validation failed: {e.message}") from e


def _upper_keys(mapping: dict[str, str] | None) -> dict[str, str]:
    return {str(k).strip().upper(): str(v).strip().upper() for k, v in (mapping or {}).items()}


def _build_rules(raw_rules: list[dict[str, Any]], major_categories: tuple[str, ...]) -> tuple[CategoryRule, ...]:
    rules: list[CategoryRule] = []
    for i, r in enumerate(raw_rules):
        if r["major_category"] not in major_categories:
            raise ConfigError(
                f"config validation failed: category_rules[{i}] uses unknown major category "
                f"'{r['major_category']}'"
            )
        rules.append(
            CategoryRule(
                keywords=tuple(k.strip().lower() for k in r["keywords"]),
                flow=r["flow"],
                major_category=r["major_category"],
                category=r["category"],
                sub_category=r["sub_category"],
                priority=r.get("priority", 5),
            )
        )
    return tuple(rules)


def load_config(path: Path | None = None) -> UploadConfig:
    path = path or DEFAULT_CONFIG_PATH
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e

    _validate_config_schema(data)

    upload = data["upload"]
    limits = UploadLimits(
        max_file_size_mb=upload["max_file_size_mb"],
        allowed_mime_types=tuple(upload["allowed_mime_types"]),
        error_preview_limit=upload.get("error_preview_limit", 10),
        data_preview_limit=upload.get("data_preview_limit", 5),
    )

    vocabulary = tuple(data["origins"]["vocabulary"])
    major_categories = tuple(data["major_categories"])

    db_raw = data.get("database", {})
    db = DatabaseConfig(
        host=db_raw.get("host"),
        port=db_raw.get("port"),
        user=db_raw.get("user"),
        password=db_raw.get("password"),
        database=db_raw.get("database"),
        dsn=db_raw.get("dsn"),
        tables=TableNames(**db_raw.get("tables", {})),
    )
    return UploadConfig(
        limits=limits,
        origin_vocabulary=vocabulary,
        default_origin=data["origins"].get("default") or (vocabulary[0] if vocabulary else "Comum"),
        major_categories=major_categories,
        major_category_aliases=_upper_keys(data.get("major_category_aliases")),
        flow_aliases=_upper_keys(data.get("flow_aliases")),
        category_rules=_build_rules(data["category_rules"], major_categories),
        database=db,
    )
