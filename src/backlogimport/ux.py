"""Console output for the backlog-import CLI - no external dependencies."""

from __future__ import annotations

import os
import sys
from collections.abc import Sequence
from typing import TextIO

from .importer import ImportReport


class Colors:
    """ANSI color codes for terminal output."""

    RESET = "\033[0m"
    BOLD = "\033[1m"
    DIM = "\033[2m"
    RED = "\033[31m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    BLUE = "\033[34m"
    CYAN = "\033[36m"


def _supports_color(stream: TextIO) -> bool:
    if os.environ.get("NO_COLOR"):
        return False
    if not hasattr(stream, "isatty") or not stream.isatty():
        return False
    return os.environ.get("TERM") != "dumb"


def colorize(text: str, color: str, bold: bool = False, stream: TextIO | None = None) -> str:
    if not _supports_color(stream or sys.stdout):
        return text
    prefix = (Colors.BOLD if bold else "") + color
    return f"{prefix}{text}{Colors.RESET}"


def _emit(icon: str, color: str, text: str, stream: TextIO) -> None:
    print(colorize(icon, color, bold=True, stream=stream) + " " + text, file=stream)


def print_success(message: str, stream: TextIO | None = None) -> None:
    _emit("✓", Colors.GREEN, message, stream or sys.stdout)


def print_error(message: str, stream: TextIO | None = None) -> None:
    _emit("✗", Colors.RED, message, stream or sys.stderr)


def print_warning(message: str, stream: TextIO | None = None) -> None:
    _emit("⚠", Colors.YELLOW, message, stream or sys.stdout)


def print_summary_box(
    title: str, items: Sequence[tuple[str, str | int]], stream: TextIO | None = None
) -> None:
    stream = stream or sys.stdout
    width = max((len(k) for k, _ in items), default=0)
    print(colorize(f"\n{title}", Colors.CYAN, bold=True, stream=stream), file=stream)
    print(colorize("─" * 60, Colors.DIM, stream=stream), file=stream)
    for key, value in items:
        print(f"  {key.ljust(width)}  {value}", file=stream)
    print(colorize("─" * 60, Colors.DIM, stream=stream), file=stream)


def print_import_report(
    report: ImportReport, result_log: str | None = None, stream: TextIO | None = None
) -> None:
    """Summarize an import run: created keys, warnings and the failure, if any."""
    stream = stream or sys.stdout
    for warning in report.warnings:
        print_warning(warning, stream=stream)
    for issue in report.created:
        print(f"  {issue.issue_key}  {issue.summary}", file=stream)
    items: list[tuple[str, str | int]] = [
        ("Created", len(report.created)),
        ("Warnings", len(report.warnings)),
        ("Finalized", "yes" if report.finalized else "no"),
    ]
    if report.failed_line is not None:
        items.append(("Failed line", report.failed_line))
    if result_log:
        items.append(("Result log", result_log))
    print_summary_box("Import Summary", items, stream=stream)
    if report.error_message:
        print_error(report.error_message)


__all__ = [
    "Colors",
    "colorize",
    "print_error",
    "print_import_report",
    "print_success",
    "print_summary_box",
    "print_warning",
]
