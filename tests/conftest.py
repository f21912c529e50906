"""Pytest configuration for backlog-import tests.

Ensures the in-repo `src` directory is on `sys.path` so the package can be
imported without an editable install (`pip install -e .`), and provides an
in-memory Backlog double so no test talks to a real space.
"""

from __future__ import annotations

import sys
import time
from pathlib import Path
from typing import Any

import pytest

_TEST_START_TIMES: dict[str, float] = {}
_TEST_DURATIONS: list[tuple[str, float]] = []

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from backlogimport.backlog_rest import BacklogAPIError  # noqa: E402
from backlogimport.models import (  # noqa: E402
    Category,
    CreatedIssue,
    CustomFieldDefinition,
    Issue,
    IssueType,
    Priority,
    Project,
    User,
    Version,
)

PROJECT_KEY = "DEMO"


class FakeBacklog:
    """Records every call; serves fixed project metadata and an issue store."""

    def __init__(
        self,
        *,
        issue_types: list[IssueType] | None = None,
        custom_fields: list[CustomFieldDefinition] | None = None,
        categories: list[Category] | None = None,
        versions: list[Version] | None = None,
        priorities: list[Priority] | None = None,
        users: list[User] | None = None,
        fail_on: set[str] | None = None,
        project_status: int | None = None,
    ) -> None:
        self.issue_types = issue_types if issue_types is not None else [
            IssueType(10, "Task", 1),
            IssueType(11, "Bug", 1),
        ]
        self.custom_fields = custom_fields or []
        self.categories = categories if categories is not None else [
            Category(20, "Backend"),
            Category(21, "Frontend"),
        ]
        self.versions = versions if versions is not None else [
            Version(30, "v1.0"),
            Version(31, "v2.0"),
        ]
        self.priorities = priorities if priorities is not None else [
            Priority(2, "High"),
            Priority(3, "Normal"),
            Priority(4, "Low"),
        ]
        self.users = users if users is not None else [User(40, "alice", "Alice Liddell")]
        self.fail_on = fail_on or set()
        self.project_status = project_status
        self.calls: list[tuple[str, Any]] = []
        self.created: list[tuple[Issue, int | None]] = []
        self.finalized: list[str] = []
        self.issues: dict[str, CreatedIssue] = {
            "DEMO-99": CreatedIssue(99, "DEMO-99", "Existing parent"),
            "DEMO-50": CreatedIssue(50, "DEMO-50", "Existing child", parent_issue_id=99),
        }
        self._next_id = 1000

    # metadata
    def get_project(self, key: str) -> Project:
        self.calls.append(("get_project", key))
        if self.project_status is not None:
            raise BacklogAPIError(
                f"Backlog API GET /projects/{key} returned code {self.project_status}",
                status=self.project_status,
            )
        return Project(1, key, "Demo project")

    def get_issue_types(self, project_id: int) -> list[IssueType]:
        self.calls.append(("get_issue_types", project_id))
        return list(self.issue_types)

    def get_custom_fields(self, project_id: int) -> list[CustomFieldDefinition]:
        self.calls.append(("get_custom_fields", project_id))
        return list(self.custom_fields)

    def get_categories(self, project_id: int) -> list[Category]:
        return list(self.categories)

    def get_versions(self, project_id: int) -> list[Version]:
        return list(self.versions)

    def get_priorities(self) -> list[Priority]:
        return list(self.priorities)

    def get_users(self, project_id: int) -> list[User]:
        return list(self.users)

    # issues
    def get_issue(self, key: str) -> CreatedIssue | None:
        self.calls.append(("get_issue", key))
        return self.issues.get(key)

    def create_issue(self, issue: Issue, parent_issue_id: int | None = None) -> CreatedIssue:
        self.calls.append(("create_issue", issue.summary))
        if issue.summary in self.fail_on:
            raise BacklogAPIError(
                "Backlog API POST /issues returned code 500", status=500, response_text="boom"
            )
        self._next_id += 1
        key = f"{PROJECT_KEY}-{len(self.created) + 1}"
        created = CreatedIssue(self._next_id, key, issue.summary, parent_issue_id)
        self.created.append((issue, parent_issue_id))
        self.issues[key] = created
        return created

    def import_finalize(self, project_key: str) -> None:
        self.calls.append(("import_finalize", project_key))
        self.finalized.append(project_key)

    def issue_url(self, issue_key: str) -> str:
        return f"https://demo.backlog.com/view/{issue_key}"

    def custom_field_url(self, field_id: int) -> str:
        return f"https://demo.backlog.com/EditAttribute.action?attribute.id={field_id}"

    def parents(self) -> list[int | None]:
        return [parent for _, parent in self.created]


@pytest.fixture
def fake_backlog() -> FakeBacklog:
    return FakeBacklog()


@pytest.fixture
def fake_backlog_factory() -> type[FakeBacklog]:
    return FakeBacklog


@pytest.fixture
def project() -> Project:
    return Project(1, PROJECT_KEY, "Demo project")


# --- Timing utilities to help identify slow/stalling tests ---


def pytest_runtest_setup(item):  # type: ignore
    _TEST_START_TIMES[item.nodeid] = time.perf_counter()


def pytest_runtest_teardown(item):  # type: ignore
    start = _TEST_START_TIMES.pop(item.nodeid, None)
    if start is not None:
        _TEST_DURATIONS.append((item.nodeid, time.perf_counter() - start))


def pytest_sessionfinish(session, exitstatus):  # type: ignore
    if not _TEST_DURATIONS:
        return
    slow = sorted(_TEST_DURATIONS, key=lambda x: x[1], reverse=True)[:10]
    print("\n=== Slowest Tests (top 10) ===")
    for nodeid, secs in slow:
        print(f"{secs:0.3f}s  {nodeid}")
