"""Resolve which issue types and custom fields a batch of rows touches."""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from .fields import cell_name
from .models import CustomFieldDefinition, IssueType, TemplateRow


def related_issue_types(
    rows: Iterable[TemplateRow], issue_types: Sequence[IssueType]
) -> list[IssueType]:
    """Issue types named by at least one row, in project order."""
    names = {cell_name(row.issue_type_name) for row in rows} - {""}
    related: list[IssueType] = []
    seen: set[int] = set()
    for issue_type in issue_types:
        if issue_type.name in names and issue_type.id not in seen:
            related.append(issue_type)
            seen.add(issue_type.id)
    return related


def related_custom_field_definitions(
    issue_types: Iterable[IssueType], definitions: Sequence[CustomFieldDefinition]
) -> list[CustomFieldDefinition]:
    """Definitions applicable to any of ``issue_types``.

    Unrestricted definitions always apply. Input order is preserved and a
    definition appears once even when several issue types match it.
    """
    type_ids = {issue_type.id for issue_type in issue_types}
    related: list[CustomFieldDefinition] = []
    seen: set[int] = set()
    for definition in definitions:
        if definition.id in seen:
            continue
        if not definition.restricted or type_ids.intersection(definition.applicable_issue_types):
            related.append(definition)
            seen.add(definition.id)
    return related


__all__ = ["related_custom_field_definitions", "related_issue_types"]
