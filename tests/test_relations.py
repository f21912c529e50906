from __future__ import annotations

from backlogimport.models import CustomFieldDefinition, CustomFieldType, IssueType, TemplateRow
from backlogimport.relations import related_custom_field_definitions, related_issue_types

TASK = IssueType(10, "Task")
BUG = IssueType(11, "Bug")
STORY = IssueType(12, "Story")


def test_related_issue_types_in_project_order_without_duplicates():
    rows = [
        TemplateRow(summary="a", issue_type_name="Bug"),
        TemplateRow(summary="b", issue_type_name="Task"),
        TemplateRow(summary="c", issue_type_name="Bug"),
        TemplateRow(summary="d", issue_type_name="Unknown"),
        TemplateRow(summary="e"),
    ]
    assert related_issue_types(rows, [TASK, BUG, STORY]) == [TASK, BUG]


def test_related_issue_types_empty_batch():
    assert related_issue_types([], [TASK, BUG]) == []


def test_related_custom_fields():
    everywhere = CustomFieldDefinition(1, CustomFieldType.TEXT, "Everywhere")
    bug_only = CustomFieldDefinition(2, CustomFieldType.TEXT, "Bug only", applicable_issue_types=[11])
    story_only = CustomFieldDefinition(3, CustomFieldType.TEXT, "Story only", applicable_issue_types=[12])
    shared = CustomFieldDefinition(4, CustomFieldType.TEXT, "Shared", applicable_issue_types=[10, 11])

    related = related_custom_field_definitions([TASK, BUG], [everywhere, bug_only, story_only, shared])

    assert [d.id for d in related] == [1, 2, 4]


def test_unrestricted_fields_relate_to_empty_batch():
    everywhere = CustomFieldDefinition(1, CustomFieldType.TEXT, "Everywhere")
    restricted = CustomFieldDefinition(2, CustomFieldType.TEXT, "R", applicable_issue_types=[10])
    assert related_custom_field_definitions([], [everywhere, restricted]) == [everywhere]


def test_resolvers_are_repeatable():
    rows = [TemplateRow(summary="a", issue_type_name="Bug")]
    types = [TASK, BUG]
    definitions = [CustomFieldDefinition(2, CustomFieldType.TEXT, "B", applicable_issue_types=[11])]

    first = related_custom_field_definitions(related_issue_types(rows, types), definitions)
    second = related_custom_field_definitions(related_issue_types(rows, types), definitions)

    assert first == second == definitions
    assert types == [TASK, BUG]


def test_related_issue_types_trims_names():
    rows = [TemplateRow(summary="a", issue_type_name=" Bug "), TemplateRow(summary="b", issue_type_name="  ")]
    assert related_issue_types(rows, [TASK, BUG]) == [BUG]
