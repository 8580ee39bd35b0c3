from __future__ import annotations

import argparse
import sys
from pathlib import Path

from dotenv import load_dotenv

from ..config.loader import ConfigError, load_config
from ..logging.error_log import ErrorLogBuffer
from ..logging.init import log_summary, setup_logging
from ..models.processing_result import FileStatus
from ..models.templates import TEMPLATE_TYPES, UnknownTemplateType
from ..services.pipeline import validate_files
from ..services.report import generate_template, render_summary_line, template_filename
from ..services.transformer import RowTransformer

"""Command line entry point: `bulk-upload` (or `python -m bulk_upload.cli`).

Subcommands:
    template <type>            write the template workbook for an import type
    validate <type> <files..>  validate spreadsheets, write error reports, print SUMMARY
    serve                      run the HTTP API

Exit codes:
    0  every file valid (or command completed)
    2  at least one file invalid or unreadable
    1  fatal: configuration error, unknown template type
"""

EXIT_SUCCESS_ALL = 0
EXIT_PARTIAL_FAILURE = 2
EXIT_FATAL = 1


def _load_env_file(path: Path) -> None:
    """Load .env into the environment; existing variables are overridden."""
    if path.exists():
        load_dotenv(dotenv_path=path, override=True)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="bulk-upload", description="Spreadsheet bulk upload: templates, validation, web API")
    p.add_argument("--config", type=Path, default=None, help="YAML config file (default: bundled default.yml)")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    sub = p.add_subparsers(dest="command", required=True)

    t = sub.add_parser("template", help="Write a template workbook")
    t.add_argument("type", help=f"one of: {', '.join(TEMPLATE_TYPES)}")
    t.add_argument("--output-dir", type=Path, default=Path("."))

    v = sub.add_parser("validate", help="Validate spreadsheets against a template")
    v.add_argument("type", help=f"one of: {', '.join(TEMPLATE_TYPES)}")
    v.add_argument("files", nargs="+", type=Path)
    v.add_argument("--report-dir", type=Path, default=Path("reports"), help="Where error report workbooks go")
    v.add_argument("--logs-dir", type=Path, default=Path("logs"), help="Where the JSON Lines error log goes")

    s = sub.add_parser("serve", help="Run the HTTP API")
    s.add_argument("--host", default="127.0.0.1")
    s.add_argument("--port", type=int, default=5000)
    return p.parse_args(argv)


def _cmd_template(args: argparse.Namespace, cfg, logger) -> int:
    try:
        content = generate_template(args.type, cfg.major_categories)
    except UnknownTemplateType as e:
        logger.error(str(e))
        return EXIT_FATAL
    args.output_dir.mkdir(parents=True, exist_ok=True)
    out = args.output_dir / template_filename(args.type)
    out.write_bytes(content)
    logger.info(f"template written to {out}")
    return EXIT_SUCCESS_ALL


def _cmd_validate(args: argparse.Namespace, cfg, logger) -> int:
    logger.info(f"Validating {len(args.files)} file(s) as {args.type}")
    try:
        run = validate_files(
            args.files,
            args.type,
            RowTransformer(cfg),
            args.report_dir,
            ErrorLogBuffer(args.logs_dir),
        )
    except UnknownTemplateType as e:
        logger.error(str(e))
        return EXIT_FATAL

    # log_summary adds the "SUMMARY " label itself
    log_summary(render_summary_line(run).removeprefix("SUMMARY "))
    if run.count(FileStatus.VALID) == len(run.files):
        return EXIT_SUCCESS_ALL
    return EXIT_PARTIAL_FAILURE


def _cmd_serve(args: argparse.Namespace, cfg, logger) -> int:
    from ..web.app import create_app

    app = create_app({"UPLOAD_CONFIG": cfg})
    logger.info(f"serving on http://{args.host}:{args.port}")
    app.run(host=args.host, port=args.port, debug=args.debug)
    return EXIT_SUCCESS_ALL


COMMANDS = {
    "template": _cmd_template,
    "validate": _cmd_validate,
    "serve": _cmd_serve,
}


def main(argv: list[str] | None = None) -> int:
    # None only: an explicit [] must not fall back to sys.argv (pytest flags)
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    logger = setup_logging(debug=args.debug)
    if args.debug:
        logger.debug("debug mode enabled")

    _load_env_file(Path(".env"))
    try:
        cfg = load_config(args.config)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    return COMMANDS[args.command](args, cfg, logger)


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
