"""Turn validated template rows into typed :class:`Issue` drafts.

Names (issue type, categories, versions, milestones, priority, assignee and
single-list items) are resolved against project metadata fetched once per
batch. Any name Backlog does not know raises :class:`ConversionError`.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from typing import Any, Protocol, TypeVar

from .errors import ConversionError
from .fields import cell_name, pair_custom_fields, parse_date, parse_number, supported_fields
from .messages import line_message
from .models import (
    FIRST_ROW_LINE,
    Category,
    CustomFieldDefinition,
    CustomFieldType,
    CustomFieldValue,
    Issue,
    IssueType,
    Priority,
    Project,
    ProjectDefinition,
    TemplateRow,
    User,
    Version,
)
from .validation import is_present

# Backlog's "Normal" priority
DEFAULT_PRIORITY_ID = 3

_NAME_SPLIT_RE = re.compile(r"[,\n]")

N = TypeVar("N", IssueType, Category, Version, Priority)


class DefinitionSource(Protocol):
    def get_issue_types(self, project_id: int) -> list[IssueType]: ...  # pragma: no cover
    def get_categories(self, project_id: int) -> list[Category]: ...  # pragma: no cover
    def get_versions(self, project_id: int) -> list[Version]: ...  # pragma: no cover
    def get_priorities(self) -> list[Priority]: ...  # pragma: no cover
    def get_users(self, project_id: int) -> list[User]: ...  # pragma: no cover
    def get_custom_fields(self, project_id: int) -> list[CustomFieldDefinition]: ...  # pragma: no cover


def fetch_project_definition(client: DefinitionSource, project: Project) -> ProjectDefinition:
    return ProjectDefinition(
        issue_types=client.get_issue_types(project.id),
        categories=client.get_categories(project.id),
        versions=client.get_versions(project.id),
        priorities=client.get_priorities(),
        users=client.get_users(project.id),
        custom_fields=client.get_custom_fields(project.id),
    )


def split_names(value: Any) -> list[str]:
    if not is_present(value):
        return []
    if isinstance(value, (list, tuple)):
        parts = [str(v) for v in value]
    else:
        parts = _NAME_SPLIT_RE.split(str(value))
    return [p.strip() for p in parts if p.strip()]


def _text(value: Any) -> str | None:
    if not is_present(value):
        return None
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


class IssueConverter:
    def __init__(
        self,
        project: Project,
        definition: ProjectDefinition,
        locale: str | None = None,
    ) -> None:
        self.project = project
        self.definition = definition
        self.locale = locale

    @classmethod
    def from_client(
        cls, client: DefinitionSource, project: Project, locale: str | None = None
    ) -> IssueConverter:
        return cls(project, fetch_project_definition(client, project), locale)

    # --- helpers ---------------------------------------------------------
    def _fail(self, line: int, key: str, column: str, value: Any = None, /, **params: Any) -> ConversionError:
        return ConversionError(
            line_message(line, key, self.locale, **params),
            line=line,
            field=column,
            value=value,
        )

    def _by_name(self, items: Sequence[N], name: str, line: int, key: str, column: str) -> N:
        for item in items:
            if item.name == name:
                return item
        raise self._fail(line, key, column, name, name=name)

    def _priority(self, name: Any, line: int) -> Priority:
        priorities = self.definition.priorities
        if is_present(name):
            return self._by_name(
                priorities, str(name).strip(), line, "convert_priority_not_found", "priority"
            )
        for priority in priorities:
            if priority.id == DEFAULT_PRIORITY_ID:
                return priority
        if priorities:
            return priorities[0]
        return Priority(DEFAULT_PRIORITY_ID, "")

    def _assignee(self, name: Any, line: int) -> User | None:
        if not is_present(name):
            return None
        wanted = str(name).strip()
        for user in self.definition.users:
            if wanted in (user.name, user.user_id):
                return user
        raise self._fail(line, "convert_user_not_found", "assignee", wanted, name=wanted)

    def _date(self, value: Any, column: str, line: int) -> Any:
        if not is_present(value):
            return None
        parsed = parse_date(value)
        if parsed is None:
            raise self._fail(line, "convert_invalid_date", column, value, value=value, column=column)
        return parsed

    def _number(self, value: Any, column: str, line: int) -> float | None:
        if not is_present(value):
            return None
        parsed = parse_number(value)
        if parsed is None:
            raise self._fail(line, "convert_invalid_number", column, value, value=value, column=column)
        return parsed

    def _custom_value(self, definition: CustomFieldDefinition, value: Any, line: int) -> Any:
        type_id = definition.type_id
        if type_id == CustomFieldType.NUMERIC:
            return self._number(value, definition.name, line)
        if type_id == CustomFieldType.DATE:
            return self._date(value, definition.name, line)
        if type_id == CustomFieldType.SINGLE_LIST:
            wanted = str(value).strip()
            for item in definition.items:
                if item.name == wanted:
                    return item.id
            raise self._fail(
                line,
                "convert_custom_field_item_not_found",
                definition.name,
                wanted,
                value=wanted,
                name=definition.name,
            )
        return _text(value)

    def _custom_fields(self, row: TemplateRow, line: int) -> list[CustomFieldValue]:
        definitions = self.definition.custom_fields
        values = pair_custom_fields(row.custom_fields, definitions)
        out: list[CustomFieldValue] = []
        for definition in supported_fields(definitions):
            raw = values.get(definition.id)
            if not is_present(raw):
                continue
            out.append(
                CustomFieldValue(definition.id, definition.type_id, self._custom_value(definition, raw, line))
            )
        return out

    # --- public API ------------------------------------------------------
    def convert(self, row: TemplateRow, line: int = FIRST_ROW_LINE) -> Issue:
        d = self.definition
        issue_type = self._by_name(
            d.issue_types,
            cell_name(row.issue_type_name),
            line,
            "convert_issue_type_not_found",
            "issue_type",
        )
        categories = [
            self._by_name(d.categories, n, line, "convert_category_not_found", "category")
            for n in split_names(row.category_names)
        ]
        versions = [
            self._by_name(d.versions, n, line, "convert_version_not_found", "version")
            for n in split_names(row.version_names)
        ]
        milestones = [
            self._by_name(d.versions, n, line, "convert_milestone_not_found", "milestone")
            for n in split_names(row.milestone_names)
        ]
        parent = str(row.parent_issue_key).strip() if is_present(row.parent_issue_key) else None
        return Issue(
            project_id=self.project.id,
            summary=str(row.summary).strip(),
            issue_type=issue_type,
            priority=self._priority(row.priority_name, line),
            description=_text(row.description),
            start_date=self._date(row.start_date, "start_date", line),
            due_date=self._date(row.due_date, "due_date", line),
            estimated_hours=self._number(row.estimated_hours, "estimated_hours", line),
            actual_hours=self._number(row.actual_hours, "actual_hours", line),
            categories=categories,
            versions=versions,
            milestones=milestones,
            assignee=self._assignee(row.assignee_name, line),
            parent_issue_key=parent,
            custom_fields=self._custom_fields(row, line),
        )


def convert_all(rows: Iterable[TemplateRow], converter: IssueConverter) -> list[Issue]:
    """Convert every row before anything is created; the first failure aborts the batch."""
    return [converter.convert(row, index + FIRST_ROW_LINE) for index, row in enumerate(rows)]


__all__ = [
    "DEFAULT_PRIORITY_ID",
    "DefinitionSource",
    "IssueConverter",
    "convert_all",
    "fetch_project_definition",
    "split_names",
]
