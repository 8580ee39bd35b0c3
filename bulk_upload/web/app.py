from __future__ import annotations

import base64
import logging
from pathlib import Path

from dotenv import load_dotenv
from flask import Flask, Response, jsonify, request

from ..config.loader import load_config
from ..db.batch_insert import BatchInsertError
from ..db.connection import db_cursor, resolve_dsn
from ..models.templates import TEMPLATE_TYPES
from ..services.importer import import_records
from ..services.pipeline import parse_and_validate
from ..services.report import error_report_filename, generate_error_report, generate_template, summarize, template_filename
from ..services.transformer import RowTransformer

"""HTTP surface for the bulk upload pipeline.

create_app() loads the configuration once, builds the shared RowTransformer
and registers three routes under /api/bulk-upload:

    GET  /templates/<type>   downloadable template workbook
    POST /validate           multipart file + type -> validation summary
    POST /import             multipart file + type -> rows written to PostgreSQL
"""

XLSX_MIMETYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

INVALID_TEMPLATE_TYPE = "Invalid template type. Valid types: " + ", ".join(TEMPLATE_TYPES)
TEMPLATE_FAILED = "Failed to generate template"
NO_FILE = "No file provided"
NO_TYPE = "Template type is required"
INVALID_FILE_TYPE = "Invalid file type. Please upload Excel (.xlsx) or CSV files only."
VALIDATE_FAILED = "Failed to validate file. Please check the file format and try again."
IMPORT_MISSING = "File and type are required"
IMPORT_FAILED = "Failed to import data"

logger = logging.getLogger(__name__)


def _error(message, status, **extra):
    return jsonify({"success": False, "error": message, **extra}), status


def create_app(test_config=None):
    load_dotenv()
    app = Flask(__name__)
    app.config.from_mapping(
        UPLOAD_CONFIG_PATH=None,
        UPLOAD_CONFIG=None,
        DB_CURSOR=None,
    )
    if test_config is not None:
        app.config.update(test_config)

    if app.config["UPLOAD_CONFIG"] is None:
        path = app.config["UPLOAD_CONFIG_PATH"]
        app.config["UPLOAD_CONFIG"] = load_config(Path(path) if path else None)
    upload_config = app.config["UPLOAD_CONFIG"]
    app.config["ROW_TRANSFORMER"] = RowTransformer(upload_config)
    if app.config["DB_CURSOR"] is None:
        app.config["DB_CURSOR"] = lambda: db_cursor(resolve_dsn(upload_config.database))

    limits = upload_config.limits

    def transformer():
        return app.config["ROW_TRANSFORMER"]

    @app.get("/api/bulk-upload/templates/<template_type>")
    def download_template(template_type):
        if template_type not in TEMPLATE_TYPES:
            return _error(INVALID_TEMPLATE_TYPE, 400)
        try:
            content = generate_template(template_type, upload_config.major_categories)
        except Exception:
            logger.exception("template generation failed type=%s", template_type)
            return _error(TEMPLATE_FAILED, 500)
        filename = template_filename(template_type)
        return Response(
            content,
            mimetype=XLSX_MIMETYPE,
            headers={
                "Content-Disposition": f'attachment; filename="{filename}"',
                "Content-Length": str(len(content)),
            },
        )

    @app.post("/api/bulk-upload/validate")
    def validate_upload():
        file = request.files.get("file")
        template_type = request.form.get("type")
        if file is None or not file.filename:
            return _error(NO_FILE, 400)
        if not template_type:
            return _error(NO_TYPE, 400)
        if file.mimetype not in limits.allowed_mime_types:
            return _error(INVALID_FILE_TYPE, 400)
        data = file.read()
        if len(data) > limits.max_file_size_bytes:
            return _error(f"File size exceeds {limits.max_file_size_mb}MB limit", 400)

        try:
            result = parse_and_validate(data, template_type, transformer(), file.filename)
            summary = summarize(result, limits.error_preview_limit, limits.data_preview_limit)
            if result.is_valid:
                return jsonify(
                    {
                        "success": True,
                        "isValid": True,
                        "totalRecords": summary.total_records,
                        "errorCount": 0,
                        "preview": summary.preview,
                        "aiSuggestions": [s.to_dict() for s in result.ai_suggestions],
                        "message": (
                            f"File validation successful. {summary.total_records} records ready for import."
                        ),
                    }
                )
            report = generate_error_report(result.errors, file.filename)
        except Exception:
            logger.exception("validation failed file=%s type=%s", file.filename, template_type)
            return _error(VALIDATE_FAILED, 500)

        return jsonify(
            {
                "success": False,
                "isValid": False,
                "totalRecords": summary.total_records,
                "errorCount": summary.error_count,
                "errors": [e.to_dict() for e in summary.errors],
                "hasMoreErrors": summary.has_more_errors,
                "errorReport": {
                    "filename": error_report_filename(file.filename),
                    "encoding": "base64",
                    "content": base64.b64encode(report).decode("ascii"),
                },
            }
        )

    @app.post("/api/bulk-upload/import")
    def import_upload():
        file = request.files.get("file")
        template_type = request.form.get("type")
        if file is None or not file.filename or not template_type:
            return _error(IMPORT_MISSING, 400)

        try:
            result = parse_and_validate(file.read(), template_type, transformer(), file.filename)
        except Exception:
            logger.exception("import parse failed file=%s type=%s", file.filename, template_type)
            return _error(VALIDATE_FAILED, 500)

        if not result.is_valid:
            summary = summarize(result, limits.error_preview_limit, limits.data_preview_limit)
            return _error(
                "File contains validation errors",
                400,
                errorCount=summary.error_count,
                errors=[e.to_dict() for e in summary.errors],
                hasMoreErrors=summary.has_more_errors,
            )

        try:
            with app.config["DB_CURSOR"]() as cur:
                outcome = import_records(
                    cur, result, upload_config.database.tables, upload_config.default_origin
                )
        except BatchInsertError as e:
            logger.error("import failed file=%s type=%s: %s", file.filename, template_type, e)
            return _error(IMPORT_FAILED, 500, details=str(e))
        except Exception as e:
            logger.exception("import failed file=%s type=%s", file.filename, template_type)
            return _error(IMPORT_FAILED, 500, details=str(e))

        return jsonify(
            {
                "success": True,
                "message": f"Successfully imported {outcome.inserted_rows} {template_type} records",
                "processedRecords": outcome.inserted_rows,
            }
        )

    return app
