from __future__ import annotations

from datetime import date, datetime

import pytest

from backlogimport.converter import IssueConverter, convert_all, split_names
from backlogimport.errors import ConversionError, ValidationError
from backlogimport.models import (
    CustomFieldDefinition,
    CustomFieldItem,
    CustomFieldType,
    CustomFieldValue,
    Priority,
    ProjectDefinition,
    RawCustomField,
    TemplateRow,
)
from backlogimport.validation import validate

SEVERITY = CustomFieldDefinition(
    12,
    CustomFieldType.SINGLE_LIST,
    "Severity",
    items=[CustomFieldItem(1, "Minor"), CustomFieldItem(2, "Major")],
)
BUDGET = CustomFieldDefinition(7, CustomFieldType.NUMERIC, "Budget")
DEADLINE = CustomFieldDefinition(10, CustomFieldType.DATE, "Deadline")
NOTE = CustomFieldDefinition(9, CustomFieldType.TEXT, "Note")
TAGS = CustomFieldDefinition(8, CustomFieldType.MULTIPLE_LIST, "Tags")


@pytest.fixture
def converter(fake_backlog, project):
    fake_backlog.custom_fields = [SEVERITY, BUDGET, DEADLINE, NOTE, TAGS]
    return IssueConverter.from_client(fake_backlog, project)


def test_minimal_row(converter):
    issue = converter.convert(TemplateRow(summary="Hello", issue_type_name="Task"))
    assert issue.project_id == 1
    assert issue.summary == "Hello"
    assert issue.issue_type.id == 10
    assert issue.priority == Priority(3, "Normal")
    assert issue.description is None
    assert issue.start_date is None
    assert issue.estimated_hours is None
    assert issue.categories == []
    assert issue.milestones == []
    assert issue.assignee is None
    assert issue.parent_issue_key is None
    assert issue.custom_fields == []


def test_full_row(converter):
    row = TemplateRow(
        summary=" Ship it ",
        description=12.0,
        start_date="2024/01/02",
        due_date=datetime(2024, 1, 31, 0, 0),
        estimated_hours="1.5",
        actual_hours=2,
        issue_type_name="Bug",
        category_names="Backend, Frontend",
        version_names="v1.0",
        milestone_names="v2.0\nv1.0",
        priority_name="High",
        assignee_name="alice",
        parent_issue_key="*",
        custom_fields=(
            RawCustomField("Severity (Single list)", "Major"),
            RawCustomField("column B", "1,000", field_id=7),
            RawCustomField("Deadline (Date)", "2024-02-01"),
            RawCustomField("Note (Text)", 42.0),
        ),
    )
    issue = converter.convert(row)
    assert issue.summary == "Ship it"
    assert issue.description == "12"
    assert issue.start_date == date(2024, 1, 2)
    assert issue.due_date == date(2024, 1, 31)
    assert issue.estimated_hours == 1.5
    assert issue.actual_hours == 2.0
    assert issue.issue_type.name == "Bug"
    assert [c.id for c in issue.categories] == [20, 21]
    assert [v.id for v in issue.versions] == [30]
    assert [m.id for m in issue.milestones] == [31, 30]
    assert issue.priority.id == 2
    assert issue.assignee is not None and issue.assignee.id == 40
    assert issue.parent_issue_key == "*"
    assert issue.custom_fields == [
        CustomFieldValue(12, CustomFieldType.SINGLE_LIST, 2),
        CustomFieldValue(7, CustomFieldType.NUMERIC, 1000.0),
        CustomFieldValue(10, CustomFieldType.DATE, date(2024, 2, 1)),
        CustomFieldValue(9, CustomFieldType.TEXT, "42"),
    ]


def test_assignee_matches_display_name(converter):
    issue = converter.convert(
        TemplateRow(summary="x", issue_type_name="Task", assignee_name="Alice Liddell")
    )
    assert issue.assignee is not None and issue.assignee.user_id == "alice"


@pytest.mark.parametrize(
    "overrides,field",
    [
        ({"category_names": "Backend, Nope"}, "category"),
        ({"version_names": "v9"}, "version"),
        ({"milestone_names": "v9"}, "milestone"),
        ({"priority_name": "Urgent"}, "priority"),
        ({"assignee_name": "bob"}, "assignee"),
        ({"start_date": "someday"}, "start_date"),
        ({"estimated_hours": "many"}, "estimated_hours"),
        ({"custom_fields": (RawCustomField("Severity", "Blocker"),)}, "Severity"),
    ],
)
def test_unknown_names_raise(converter, overrides, field):
    row = TemplateRow(summary="x", issue_type_name="Task", **overrides)
    with pytest.raises(ConversionError) as exc:
        converter.convert(row, line=5)
    assert exc.value.line == 5
    assert exc.value.field == field
    assert str(exc.value).startswith("Line 5: ")
    assert isinstance(exc.value, ValidationError)


def test_default_priority_falls_back_to_first(project):
    definition = ProjectDefinition(
        issue_types=[],
        categories=[],
        versions=[],
        priorities=[Priority(7, "Whenever")],
        users=[],
        custom_fields=[],
    )
    conv = IssueConverter(project, definition)
    assert conv._priority(None, 2) == Priority(7, "Whenever")


def test_convert_all_numbers_lines(converter):
    rows = [
        TemplateRow(summary="a", issue_type_name="Task"),
        TemplateRow(summary="b", issue_type_name="Task", category_names="Missing"),
    ]
    with pytest.raises(ConversionError) as exc:
        convert_all(rows, converter)
    assert exc.value.line == 3


def test_split_names():
    assert split_names("a, b\nc,,") == ["a", "b", "c"]
    assert split_names(None) == []
    assert split_names(" ") == []


def test_minimal_row_through_validation_and_conversion(fake_backlog, project):
    rows = [TemplateRow(summary="Hello", issue_type_name="Task")]

    assert validate(rows, fake_backlog.issue_types, [], fake_backlog) is None
    (issue,) = convert_all(rows, IssueConverter.from_client(fake_backlog, project))

    assert issue.summary == "Hello"
    assert issue.issue_type.name == "Task"
    for optional in (
        issue.description,
        issue.start_date,
        issue.due_date,
        issue.estimated_hours,
        issue.actual_hours,
        issue.assignee,
        issue.parent_issue_key,
    ):
        assert optional is None
    assert issue.categories == []
    assert issue.versions == []
    assert issue.milestones == []
    assert issue.custom_fields == []


def test_padded_issue_type_name_validates_and_converts(fake_backlog, project):
    rows = [TemplateRow(summary="Hello", issue_type_name=" Bug ")]

    validate(rows, fake_backlog.issue_types, [], fake_backlog)
    (issue,) = convert_all(rows, IssueConverter.from_client(fake_backlog, project))

    assert issue.issue_type.id == 11
