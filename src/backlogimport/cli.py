"""backlog-import CLI.

Subcommands:
  init      -> write an empty template for the configured project
  validate  -> read the template and validate every row (no mutation)
  run       -> validate, convert and create the issues, then write a result log
"""

from __future__ import annotations

import argparse
import os
import sys
from collections.abc import Callable
from pathlib import Path
from typing import Any

import requests

from .backlog_rest import BacklogAPIError
from .config import CONFIG_DEFAULT, ImportConfig, load_config
from .core import BulkImport
from .errors import BacklogImportError, InternalInconsistencyError, redact

_MAX_HELP_WIDTH = 100


class _HelpFormatter(argparse.HelpFormatter):
    def __init__(self, prog: str) -> None:
        super().__init__(prog, max_help_position=30, width=_MAX_HELP_WIDTH)


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="backlog-import",
        description="Bulk import issues from a spreadsheet template into Backlog",
        formatter_class=_HelpFormatter,
    )
    p.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress progress output (env: BACKLOG_IMPORT_QUIET=1)",
    )
    sub = p.add_subparsers(dest="cmd", required=True, metavar="<command>")

    pi = sub.add_parser("init", help="Write an empty template for the project")
    pi.add_argument("--config", default=CONFIG_DEFAULT)
    pi.add_argument("--project", help="Override project key")
    pi.add_argument("--output", help="Template path (default: template.file from config)")

    pv = sub.add_parser("validate", help="Validate the template without creating issues")
    pv.add_argument("--config", default=CONFIG_DEFAULT)
    pv.add_argument("--project", help="Override project key")
    pv.add_argument("--template", help="Template path override")

    pr = sub.add_parser("run", help="Import the template rows as Backlog issues")
    pr.add_argument("--config", default=CONFIG_DEFAULT)
    pr.add_argument("--project", help="Override project key")
    pr.add_argument("--template", help="Template path override")
    pr.add_argument("--result-log", help="Result log path (.xlsx or .csv)")
    return p


def prepare_config(
    args: argparse.Namespace, *, loader: Callable[[str], ImportConfig] = load_config
) -> ImportConfig:
    cfg = loader(args.config)
    if getattr(args, "project", None):
        cfg.project_key = args.project
    template = getattr(args, "template", None)
    if template:
        cfg.template_file = Path(template)
    return cfg


def _cmd_init(suite: BulkImport, args: argparse.Namespace) -> int:
    from .ux import print_success  # noqa: PLC0415

    out = suite.init_template(args.output)
    if not args.quiet:
        print_success(f"Template written to {out}")
    return 0


def _cmd_validate(suite: BulkImport, args: argparse.Namespace) -> int:
    from .ux import print_success  # noqa: PLC0415

    count = suite.validate()
    if not args.quiet:
        print_success(f"{count} row(s) passed validation")
    return 0


def _cmd_run(suite: BulkImport, args: argparse.Namespace) -> int:
    from .ux import print_import_report  # noqa: PLC0415

    report = suite.run(result_log=args.result_log)
    log_path = args.result_log or suite.cfg.result_log
    if not args.quiet or not report.ok:
        print_import_report(report, str(log_path) if log_path and report.created else None)
    return 0 if report.ok else 1


_HANDLERS: dict[str, Callable[[BulkImport, argparse.Namespace], int]] = {
    "init": _cmd_init,
    "validate": _cmd_validate,
    "run": _cmd_run,
}


def main(
    argv: list[str] | None = None,
    *,
    suite_factory: Callable[[ImportConfig], Any] = BulkImport,
) -> int:
    from .ux import print_error  # noqa: PLC0415

    parser = _build_parser()
    args = parser.parse_args(argv)
    if not args.quiet and os.environ.get("BACKLOG_IMPORT_QUIET") == "1":
        args.quiet = True
    handler = _HANDLERS.get(args.cmd)
    if handler is None:  # pragma: no cover - argparse enforces valid choices
        parser.print_help()
        return 1
    try:
        cfg = prepare_config(args)
        return handler(suite_factory(cfg), args)
    except InternalInconsistencyError as exc:
        print_error(f"internal error: {exc}")
        return 1
    except BacklogImportError as exc:
        print_error(str(exc))
        return 1
    except (BacklogAPIError, requests.RequestException) as exc:
        print_error(redact(str(exc)))
        return 1


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
