from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import IntEnum
from typing import Any

# Spreadsheet list validations accept at most 500 entries
MAX_LIST_ITEM_COUNT = 500

# Parent issue cell meaning "child of the current anchor issue"
SHORTHAND_PARENT = "*"

# Template line of the first issue row (line 1 is the header)
FIRST_ROW_LINE = 2


class CustomFieldType(IntEnum):
    """Backlog custom field type ids."""

    TEXT = 1
    TEXTAREA = 2
    NUMERIC = 3
    DATE = 4
    SINGLE_LIST = 5
    MULTIPLE_LIST = 6
    CHECKBOX = 7
    RADIO = 8


@dataclass(frozen=True)
class Project:
    id: int
    project_key: str
    name: str = ""


@dataclass(frozen=True)
class IssueType:
    id: int
    name: str
    project_id: int | None = None
    color: str | None = None


@dataclass(frozen=True)
class Category:
    id: int
    name: str


@dataclass(frozen=True)
class Version:
    """Project version; Backlog milestones are versions as well."""

    id: int
    name: str


@dataclass(frozen=True)
class Priority:
    id: int
    name: str


@dataclass(frozen=True)
class User:
    id: int
    user_id: str
    name: str


@dataclass(frozen=True)
class CustomFieldItem:
    id: int
    name: str


@dataclass
class CustomFieldDefinition:
    id: int
    type_id: int
    name: str
    required: bool = False
    applicable_issue_types: list[int] = field(default_factory=list)
    items: list[CustomFieldItem] = field(default_factory=list)
    description: str = ""

    @property
    def restricted(self) -> bool:
        return bool(self.applicable_issue_types)

    def item_names(self) -> list[str]:
        return [item.name for item in self.items]


@dataclass(frozen=True)
class RawCustomField:
    """One custom-field cell of a template row.

    ``field_id`` is the definition id recovered from the column header when
    the header carries one (templates generated by ``init`` always do).
    """

    header: str
    value: Any = None
    field_id: int | None = None


@dataclass(frozen=True)
class TemplateRow:
    summary: Any = None
    description: Any = None
    start_date: Any = None
    due_date: Any = None
    estimated_hours: Any = None
    actual_hours: Any = None
    issue_type_name: Any = None
    category_names: Any = None
    version_names: Any = None
    milestone_names: Any = None
    priority_name: Any = None
    assignee_name: Any = None
    parent_issue_key: Any = None
    custom_fields: tuple[RawCustomField, ...] = ()


@dataclass(frozen=True)
class CustomFieldValue:
    field_id: int
    type_id: int
    value: Any


@dataclass
class Issue:
    """Fully typed issue draft ready for submission."""

    project_id: int
    summary: str
    issue_type: IssueType
    priority: Priority
    description: str | None = None
    start_date: date | None = None
    due_date: date | None = None
    estimated_hours: float | None = None
    actual_hours: float | None = None
    categories: list[Category] = field(default_factory=list)
    versions: list[Version] = field(default_factory=list)
    milestones: list[Version] = field(default_factory=list)
    assignee: User | None = None
    parent_issue_key: str | None = None
    custom_fields: list[CustomFieldValue] = field(default_factory=list)


@dataclass(frozen=True)
class CreatedIssue:
    id: int
    issue_key: str
    summary: str
    parent_issue_id: int | None = None


@dataclass
class ProjectDefinition:
    """Project metadata needed to build and convert a template."""

    issue_types: list[IssueType]
    categories: list[Category]
    versions: list[Version]
    priorities: list[Priority]
    users: list[User]
    custom_fields: list[CustomFieldDefinition]

    def issue_type_names(self) -> list[str]:
        return [t.name for t in self.issue_types]

    def category_names(self) -> list[str]:
        return [c.name for c in self.categories]

    def version_names(self) -> list[str]:
        return [v.name for v in self.versions]

    def priority_names(self) -> list[str]:
        return [p.name for p in self.priorities]

    def user_names(self) -> list[str]:
        return [u.name for u in self.users]


__all__ = [
    "Category",
    "CreatedIssue",
    "CustomFieldDefinition",
    "CustomFieldItem",
    "CustomFieldType",
    "CustomFieldValue",
    "Issue",
    "IssueType",
    "MAX_LIST_ITEM_COUNT",
    "Priority",
    "Project",
    "ProjectDefinition",
    "RawCustomField",
    "SHORTHAND_PARENT",
    "FIRST_ROW_LINE",
    "TemplateRow",
    "User",
    "Version",
]
