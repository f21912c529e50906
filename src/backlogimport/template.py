"""Template workbook I/O.

- ``read_template``: template rows from ``.xlsx`` (openpyxl) or ``.csv``
- ``write_template``: a fresh template for a project, with list validations
- ``write_result_log``: created issue keys (linked) and summaries

Layout: line 1 is the header, issues start on line 2. The first thirteen
columns are fixed (see ``FIXED_COLUMNS``); every further column is a custom
field. Custom field headers link to the field's settings page
(``...EditAttribute.action?attribute.id=<id>``), which is how a column is
tied back to its definition when the template is read.
"""

from __future__ import annotations

import csv
import re
import unicodedata
from collections.abc import Callable, Iterable, Sequence
from pathlib import Path
from typing import Any

import openpyxl
from openpyxl.styles import Font, PatternFill
from openpyxl.utils import get_column_letter, quote_sheetname
from openpyxl.worksheet.datavalidation import DataValidation
from openpyxl.worksheet.worksheet import Worksheet

from .errors import TemplateError
from .fields import header_label, supported_fields
from .messages import message
from .models import (
    FIRST_ROW_LINE,
    MAX_LIST_ITEM_COUNT,
    CreatedIssue,
    CustomFieldType,
    ProjectDefinition,
    RawCustomField,
    TemplateRow,
)

TEMPLATE_SHEET_NAME = "Template"
LISTS_SHEET_NAME = "Lists"
RESULT_SHEET_NAME = "Result"

FIXED_COLUMNS: tuple[tuple[str, str], ...] = (
    ("summary", "Summary"),
    ("description", "Description"),
    ("start_date", "Start date"),
    ("due_date", "Due date"),
    ("estimated_hours", "Estimated hours"),
    ("actual_hours", "Actual hours"),
    ("issue_type_name", "Issue type"),
    ("category_names", "Category"),
    ("version_names", "Version"),
    ("milestone_names", "Milestone"),
    ("priority_name", "Priority"),
    ("assignee_name", "Assignee"),
    ("parent_issue_key", "Parent issue"),
)
CUSTOM_FIELD_START = len(FIXED_COLUMNS)

DEFAULT_COLUMN_LENGTH = 16
DEFAULT_VALIDATION_ROWS = 500
CUSTOM_FIELD_FILL = PatternFill(start_color="F8FFFF", end_color="F8FFFF", fill_type="solid")
LINK_FONT = Font(color="0000FF", underline="single")

_FIELD_ID_RE = re.compile(r"attribute\.id=(\d+)")


def display_width(text: str) -> int:
    """Column width of ``text``; East Asian wide characters count twice."""
    return sum(2 if unicodedata.east_asian_width(ch) in ("W", "F") else 1 for ch in text)


def _cell(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, str) and not value.strip():
        return None
    return value


def _field_id(*candidates: Any) -> int | None:
    for candidate in candidates:
        if not candidate:
            continue
        m = _FIELD_ID_RE.search(str(candidate))
        if m:
            return int(m.group(1))
    return None


def _header_text(value: Any) -> str:
    text = "" if value is None else str(value)
    # =HYPERLINK("url";"label") formulas from older templates
    m = re.match(r'^=hyperlink\(".*?"[;,]\s*"(?P<label>.*)"\)$', text, re.IGNORECASE)
    return m.group("label") if m else text


def _trim_trailing_blank(rows: list[list[Any]]) -> list[list[Any]]:
    while rows and all(_cell(v) is None for v in rows[-1]):
        rows.pop()
    return rows


def _build_rows(headers: Sequence[tuple[str, int | None]], values: list[list[Any]]) -> list[TemplateRow]:
    rows: list[TemplateRow] = []
    for raw in values:
        padded = list(raw) + [None] * (len(headers) + CUSTOM_FIELD_START - len(raw))
        fixed = {name: _cell(padded[i]) for i, (name, _) in enumerate(FIXED_COLUMNS)}
        custom = tuple(
            RawCustomField(header=header, value=_cell(padded[CUSTOM_FIELD_START + j]), field_id=fid)
            for j, (header, fid) in enumerate(headers)
        )
        rows.append(TemplateRow(custom_fields=custom, **fixed))
    if not rows:
        raise TemplateError(message("invalid_row_length"))
    return rows


def _read_csv(path: Path) -> list[TemplateRow]:
    with path.open(newline="", encoding="utf-8-sig") as fh:
        records = [list(r) for r in csv.reader(fh)]
    if not records:
        raise TemplateError(message("invalid_row_length"))
    header_row = records[0]
    headers = [
        (_header_text(h), _field_id(h)) for h in header_row[CUSTOM_FIELD_START:]
    ]
    return _build_rows(headers, _trim_trailing_blank(records[1:]))


def _read_xlsx(path: Path, sheet: str) -> list[TemplateRow]:
    # formulas and hyperlinks of the header row need the non data-only workbook
    links_wb = openpyxl.load_workbook(path, data_only=False)
    values_wb = openpyxl.load_workbook(path, data_only=True)
    if sheet not in values_wb.sheetnames:
        raise TemplateError(f"Sheet '{sheet}' not found in {path}")
    links_ws = links_wb[sheet]
    values_ws = values_wb[sheet]
    headers: list[tuple[str, int | None]] = []
    for col in range(CUSTOM_FIELD_START + 1, values_ws.max_column + 1):
        link_cell = links_ws.cell(row=1, column=col)
        value_cell = values_ws.cell(row=1, column=col)
        target = link_cell.hyperlink.target if link_cell.hyperlink is not None else None
        label = value_cell.value if value_cell.value is not None else _header_text(link_cell.value)
        headers.append((str(label or ""), _field_id(target, link_cell.value)))
    values = [
        list(r)
        for r in values_ws.iter_rows(min_row=FIRST_ROW_LINE, max_col=values_ws.max_column, values_only=True)
    ]
    return _build_rows(headers, _trim_trailing_blank(values))


def read_template(path: str | Path, sheet: str = TEMPLATE_SHEET_NAME) -> list[TemplateRow]:
    p = Path(path)
    if not p.exists():
        raise TemplateError(f"Template file not found: {p}")
    if p.suffix.lower() == ".csv":
        return _read_csv(p)
    return _read_xlsx(p, sheet)


# --- writers ---------------------------------------------------------------


def _add_list_validation(
    ws: Worksheet,
    lists: Worksheet,
    list_column: int,
    names: Iterable[str],
    target_column: int,
    rows: int,
) -> int:
    """Write ``names`` to the hidden lists sheet and validate ``target_column`` against them."""
    items = list(names)[: MAX_LIST_ITEM_COUNT - 1]
    if not items:
        return list_column
    letter = get_column_letter(list_column)
    for i, name in enumerate(items, start=1):
        lists.cell(row=i, column=list_column, value=name)
    ref = f"{quote_sheetname(lists.title)}!${letter}$1:${letter}${len(items)}"
    dv = DataValidation(type="list", formula1=ref, allow_blank=True)
    target = get_column_letter(target_column)
    dv.add(f"{target}{FIRST_ROW_LINE}:{target}{rows + 1}")
    ws.add_data_validation(dv)
    return list_column + 1


def write_template(
    path: str | Path,
    definition: ProjectDefinition,
    *,
    custom_field_url: Callable[[int], str] | None = None,
    rows: int = DEFAULT_VALIDATION_ROWS,
) -> Path:
    """Write an empty template for ``definition`` and return its path."""
    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = TEMPLATE_SHEET_NAME
    lists = wb.create_sheet(LISTS_SHEET_NAME)
    lists.sheet_state = "hidden"

    for col, (_, label) in enumerate(FIXED_COLUMNS, start=1):
        ws.cell(row=1, column=col, value=label)
        ws.column_dimensions[get_column_letter(col)].width = max(
            DEFAULT_COLUMN_LENGTH, display_width(label) + 2
        )

    custom = supported_fields(definition.custom_fields)
    for offset, field_def in enumerate(custom):
        col = CUSTOM_FIELD_START + 1 + offset
        label = header_label(field_def)
        cell = ws.cell(row=1, column=col, value=label)
        if custom_field_url is not None:
            cell.hyperlink = custom_field_url(field_def.id)
            cell.font = LINK_FONT
        for r in range(1, rows + 2):
            ws.cell(row=r, column=col).fill = CUSTOM_FIELD_FILL
        ws.column_dimensions[get_column_letter(col)].width = max(
            DEFAULT_COLUMN_LENGTH, display_width(label) + 2
        )

    column_of = {name: i for i, (name, _) in enumerate(FIXED_COLUMNS, start=1)}
    list_column = 1
    for name, values in (
        ("issue_type_name", definition.issue_type_names()),
        ("category_names", definition.category_names()),
        ("version_names", definition.version_names()),
        ("milestone_names", definition.version_names()),
        ("priority_name", definition.priority_names()),
        ("assignee_name", definition.user_names()),
    ):
        list_column = _add_list_validation(ws, lists, list_column, values, column_of[name], rows)
    # validations are added after every custom field column exists
    for offset, field_def in enumerate(custom):
        if field_def.type_id == CustomFieldType.SINGLE_LIST:
            list_column = _add_list_validation(
                ws, lists, list_column, field_def.item_names(), CUSTOM_FIELD_START + 1 + offset, rows
            )

    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    wb.save(out)
    return out


def write_result_log(
    path: str | Path,
    created: Sequence[CreatedIssue],
    issue_url: Callable[[str], str],
) -> Path:
    """Write the created issues (key linked to the issue page, summary)."""
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    if out.suffix.lower() == ".csv":
        with out.open("w", newline="", encoding="utf-8") as fh:
            writer = csv.writer(fh)
            writer.writerow(["key", "summary", "url"])
            for issue in created:
                writer.writerow([issue.issue_key, issue.summary, issue_url(issue.issue_key)])
        return out

    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = RESULT_SHEET_NAME
    key_length = summary_length = DEFAULT_COLUMN_LENGTH
    for row, issue in enumerate(created, start=1):
        key_cell = ws.cell(row=row, column=1, value=issue.issue_key)
        key_cell.hyperlink = issue_url(issue.issue_key)
        key_cell.font = LINK_FONT
        ws.cell(row=row, column=2, value=issue.summary)
        key_length = max(key_length, display_width(issue.issue_key))
        summary_length = max(summary_length, display_width(issue.summary))
    ws.column_dimensions["A"].width = key_length + 2
    ws.column_dimensions["B"].width = summary_length + 2
    wb.save(out)
    return out


__all__ = [
    "CUSTOM_FIELD_START",
    "FIXED_COLUMNS",
    "TEMPLATE_SHEET_NAME",
    "display_width",
    "read_template",
    "write_result_log",
    "write_template",
]
