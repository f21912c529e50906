"""Batch validation of template rows against live project metadata.

Validation is all-or-nothing: the first violation raises and nothing is
created. Checks run in two phases:

1. Configuration: every custom field related to the batch that is required
   must be of a supported type. This never depends on row content.
2. Rows, in template order: summary, issue type, explicit parent key, then
   each supported related custom field (required-ness and value shape).
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Any, Protocol

from .errors import ConfigurationError, InternalInconsistencyError, ValidationError
from .fields import (
    cell_name,
    is_supported_field,
    pair_custom_fields,
    parse_date,
    parse_number,
)
from .messages import line_message, message
from .models import (
    FIRST_ROW_LINE,
    SHORTHAND_PARENT,
    CreatedIssue,
    CustomFieldDefinition,
    CustomFieldType,
    IssueType,
    TemplateRow,
)
from .relations import related_custom_field_definitions, related_issue_types


class IssueLookup(Protocol):
    def get_issue(self, key: str) -> CreatedIssue | None: ...  # pragma: no cover


def is_present(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    return True


def find_issue_type(name: Any, issue_types: Iterable[IssueType]) -> IssueType:
    """Issue type named ``name``; its absence means metadata changed under us."""
    for issue_type in issue_types:
        if issue_type.name == name:
            return issue_type
    raise InternalInconsistencyError(f"Issue type name not found. Name: {name}")


def check_required_fields_supported(
    definitions: Iterable[CustomFieldDefinition], locale: str | None = None
) -> None:
    for definition in definitions:
        if definition.required and not is_supported_field(definition):
            raise ConfigurationError(
                message("validate_custom_field_required_unsupported", locale, name=definition.name)
            )


def _check_shape(
    definition: CustomFieldDefinition, value: Any, line: int, locale: str | None
) -> None:
    if definition.type_id == CustomFieldType.NUMERIC and parse_number(value) is None:
        raise ValidationError(
            line_message(
                line, "validate_custom_field_number", locale, name=definition.name, value=value
            ),
            line=line,
            field=definition.name,
            value=value,
        )
    if definition.type_id == CustomFieldType.DATE and parse_date(value) is None:
        raise ValidationError(
            line_message(
                line, "validate_custom_field_date", locale, name=definition.name, value=value
            ),
            line=line,
            field=definition.name,
            value=value,
        )


def _check_parent(row: TemplateRow, line: int, client: IssueLookup, locale: str | None) -> None:
    if not is_present(row.parent_issue_key):
        return
    key = str(row.parent_issue_key).strip()
    if key == SHORTHAND_PARENT:
        return
    if client.get_issue(key) is None:
        raise ValidationError(
            line_message(line, "validate_parent_issue_key_not_found", locale, key=key),
            line=line,
            field="parent_issue_key",
            value=key,
        )


def validate_row(  # noqa: C901
    row: TemplateRow,
    line: int,
    issue_types: Sequence[IssueType],
    definitions: Sequence[CustomFieldDefinition],
    checked: Sequence[CustomFieldDefinition],
    client: IssueLookup,
    locale: str | None = None,
) -> None:
    """Validate one row; ``checked`` holds the supported definitions related to the batch."""
    if not is_present(row.summary):
        raise ValidationError(
            line_message(line, "validate_summary_empty", locale), line=line, field="summary"
        )
    if not is_present(row.issue_type_name):
        raise ValidationError(
            line_message(line, "validate_issue_type_empty", locale),
            line=line,
            field="issue_type",
        )
    type_name = cell_name(row.issue_type_name)
    if not any(issue_type.name == type_name for issue_type in issue_types):
        raise ValidationError(
            line_message(line, "validate_issue_type_not_found", locale, name=type_name),
            line=line,
            field="issue_type",
            value=type_name,
        )
    _check_parent(row, line, client, locale)

    values = pair_custom_fields(row.custom_fields, definitions)
    for definition in checked:
        value = values.get(definition.id)
        if is_present(value):
            _check_shape(definition, value, line, locale)
            continue
        if not definition.required:
            continue
        if not definition.restricted:
            raise ValidationError(
                line_message(line, "validate_custom_field_required", locale, name=definition.name),
                line=line,
                field=definition.name,
            )
        issue_type = find_issue_type(type_name, issue_types)
        if issue_type.id in definition.applicable_issue_types:
            raise ValidationError(
                line_message(
                    line,
                    "validate_custom_field_required_issue_type",
                    locale,
                    name=definition.name,
                    issue_type=issue_type.name,
                ),
                line=line,
                field=definition.name,
            )


def validate(
    rows: Iterable[TemplateRow],
    issue_types: Sequence[IssueType],
    definitions: Sequence[CustomFieldDefinition],
    client: IssueLookup,
    locale: str | None = None,
) -> None:
    """Raise on the first configuration or row violation; return ``None`` when the batch is clean."""
    row_list = list(rows)
    related = related_custom_field_definitions(
        related_issue_types(row_list, issue_types), definitions
    )
    check_required_fields_supported(related, locale)
    checked = [d for d in related if is_supported_field(d)]
    for index, row in enumerate(row_list):
        validate_row(
            row, index + FIRST_ROW_LINE, issue_types, definitions, checked, client, locale
        )


__all__ = [
    "IssueLookup",
    "check_required_fields_supported",
    "find_issue_type",
    "is_present",
    "validate",
    "validate_row",
]
