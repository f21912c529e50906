"""Custom field support rules and cell value shapes."""

from __future__ import annotations

import math
import re
from collections.abc import Sequence
from datetime import date, datetime
from typing import Any

from .models import CustomFieldDefinition, CustomFieldType, RawCustomField

SUPPORTED_FIELD_TYPES = frozenset(
    {
        CustomFieldType.TEXT,
        CustomFieldType.TEXTAREA,
        CustomFieldType.NUMERIC,
        CustomFieldType.DATE,
        CustomFieldType.SINGLE_LIST,
    }
)

TYPE_LABELS = {
    CustomFieldType.TEXT: "Text",
    CustomFieldType.TEXTAREA: "Text area",
    CustomFieldType.NUMERIC: "Number",
    CustomFieldType.DATE: "Date",
    CustomFieldType.SINGLE_LIST: "Single list",
}

DATE_FORMATS = ("%Y-%m-%d", "%Y/%m/%d", "%Y-%m-%d %H:%M:%S", "%Y/%m/%d %H:%M:%S")

_HEADER_LABEL_RE = re.compile(r"^(?P<name>.*?)\s*[(（][^()（）]*[)）]\s*$")


def cell_name(value: Any) -> str:
    """A name cell as text, surrounding whitespace removed."""
    return "" if value is None else str(value).strip()


def is_supported_field(definition: CustomFieldDefinition) -> bool:
    return definition.type_id in SUPPORTED_FIELD_TYPES


def supported_fields(definitions: Sequence[CustomFieldDefinition]) -> list[CustomFieldDefinition]:
    return [d for d in definitions if is_supported_field(d)]


def header_label(definition: CustomFieldDefinition) -> str:
    """Column header written to generated templates, e.g. ``Budget (Number)``."""
    label = TYPE_LABELS.get(definition.type_id, "")
    return f"{definition.name} ({label})" if label else definition.name


def header_display_name(header: str) -> str:
    """Strip the trailing ``(type)`` label from a custom field column header."""
    text = (header or "").strip()
    m = _HEADER_LABEL_RE.match(text)
    return m.group("name").strip() if m else text


def parse_number(value: Any) -> float | None:
    """Return ``value`` as a float, or ``None`` when it is not a finite number."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip().replace(",", ""))
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def parse_date(value: Any) -> date | None:
    """Return ``value`` as a date; spreadsheet cells arrive as datetimes, CSV cells as text."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None
    text = value.strip()
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return None


def pair_custom_fields(
    entries: Sequence[RawCustomField],
    definitions: Sequence[CustomFieldDefinition],
) -> dict[int, Any]:
    """Join a row's custom field cells to definitions and return ``{field_id: value}``.

    A cell is matched by the definition id recovered from its header first,
    then by the header's display name, and only then by its position among
    the supported definitions (the order templates are generated in).
    Definitions without a matching cell map to ``None``.
    """
    supported = supported_fields(definitions)
    known_ids = {d.id for d in definitions}
    by_name = {d.name: d.id for d in supported}
    values: dict[int, Any] = {d.id: None for d in supported}
    matched: set[int] = set()
    unmatched: list[tuple[int, RawCustomField]] = []
    for position, entry in enumerate(entries):
        if entry.field_id is not None and entry.field_id in known_ids:
            if entry.field_id in values:
                values[entry.field_id] = entry.value
            matched.add(entry.field_id)
            continue
        field_id = by_name.get(header_display_name(entry.header))
        if field_id is not None and field_id not in matched:
            values[field_id] = entry.value
            matched.add(field_id)
            continue
        unmatched.append((position, entry))
    for position, entry in unmatched:
        if position >= len(supported):
            continue
        field_id = supported[position].id
        if field_id not in matched:
            values[field_id] = entry.value
            matched.add(field_id)
    return values


__all__ = [
    "DATE_FORMATS",
    "cell_name",
    "SUPPORTED_FIELD_TYPES",
    "TYPE_LABELS",
    "header_display_name",
    "header_label",
    "is_supported_field",
    "pair_custom_fields",
    "parse_date",
    "parse_number",
    "supported_fields",
]
