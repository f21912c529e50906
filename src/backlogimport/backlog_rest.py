from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date
from typing import Any

import requests

from .errors import redact
from .models import (
    Category,
    CreatedIssue,
    CustomFieldDefinition,
    CustomFieldItem,
    CustomFieldType,
    Issue,
    IssueType,
    Priority,
    Project,
    User,
    Version,
)
from .retry import run_with_retries

DEFAULT_DOMAIN = ".com"
USER_AGENT = "backlog-import-rest/0.3.0"
HTTP_ERROR_STATUS = 400
HTTP_NOT_FOUND = 404
REQUEST_TIMEOUT = 30


class BacklogAPIError(RuntimeError):
    """Raised when the Backlog API returns an error status."""

    def __init__(
        self,
        message: str,
        *,
        status: int | None = None,
        response_text: str | None = None,
    ):
        super().__init__(message)
        self.status = status
        self.response_text = response_text


def _format_date(value: date) -> str:
    return value.strftime("%Y-%m-%d")


def _format_number(value: float) -> str:
    return str(int(value)) if value.is_integer() else str(value)


def _optional_int(value: Any) -> int | None:
    return value if isinstance(value, int) else None


def issue_form(issue: Issue, parent_issue_id: int | None = None) -> list[tuple[str, str]]:
    """Form fields for ``POST /issues``; list parameters repeat with a ``[]`` suffix."""
    form: list[tuple[str, str]] = [
        ("projectId", str(issue.project_id)),
        ("summary", issue.summary),
        ("issueTypeId", str(issue.issue_type.id)),
        ("priorityId", str(issue.priority.id)),
    ]
    if issue.description is not None:
        form.append(("description", issue.description))
    if issue.start_date is not None:
        form.append(("startDate", _format_date(issue.start_date)))
    if issue.due_date is not None:
        form.append(("dueDate", _format_date(issue.due_date)))
    if issue.estimated_hours is not None:
        form.append(("estimatedHours", _format_number(issue.estimated_hours)))
    if issue.actual_hours is not None:
        form.append(("actualHours", _format_number(issue.actual_hours)))
    form.extend(("categoryId[]", str(c.id)) for c in issue.categories)
    form.extend(("versionId[]", str(v.id)) for v in issue.versions)
    form.extend(("milestoneId[]", str(m.id)) for m in issue.milestones)
    if issue.assignee is not None:
        form.append(("assigneeId", str(issue.assignee.id)))
    if parent_issue_id is not None:
        form.append(("parentIssueId", str(parent_issue_id)))
    for cf in issue.custom_fields:
        name = f"customField_{cf.field_id}"
        if cf.type_id == CustomFieldType.DATE and isinstance(cf.value, date):
            form.append((name, _format_date(cf.value)))
        elif cf.type_id == CustomFieldType.NUMERIC and isinstance(cf.value, float):
            form.append((name, _format_number(cf.value)))
        else:
            form.append((name, str(cf.value)))
    return form


def parse_custom_field(entry: dict[str, Any]) -> CustomFieldDefinition:
    items = [
        CustomFieldItem(int(item["id"]), str(item.get("name", "")))
        for item in entry.get("items") or []
        if isinstance(item, dict) and "id" in item
    ]
    applicable = [int(i) for i in entry.get("applicableIssueTypes") or []]
    return CustomFieldDefinition(
        id=int(entry["id"]),
        type_id=int(entry.get("typeId", 0)),
        name=str(entry.get("name", "")),
        required=bool(entry.get("required", False)),
        applicable_issue_types=applicable,
        items=items,
        description=str(entry.get("description") or ""),
    )


def parse_created_issue(entry: dict[str, Any]) -> CreatedIssue:
    return CreatedIssue(
        id=int(entry["id"]),
        issue_key=str(entry.get("issueKey", "")),
        summary=str(entry.get("summary", "")),
        parent_issue_id=_optional_int(entry.get("parentIssueId")),
    )


@dataclass
class BacklogClient:
    """Lightweight Backlog API v2 client authenticated with an API key."""

    space: str
    api_key: str
    domain: str = DEFAULT_DOMAIN
    session: requests.Session | None = None
    _session: requests.Session = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._session = self.session or requests.Session()
        self._session.headers.setdefault("User-Agent", USER_AGENT)
        self._session.headers.setdefault("Accept", "application/json")

    @property
    def space_url(self) -> str:
        return f"https://{self.space}.backlog{self.domain}"

    @property
    def base_url(self) -> str:
        return f"{self.space_url}/api/v2"

    def issue_url(self, issue_key: str) -> str:
        return f"{self.space_url}/view/{issue_key}"

    def custom_field_url(self, field_id: int) -> str:
        return f"{self.space_url}/EditAttribute.action?attribute.id={field_id}"

    # ---- REST helpers -------------------------------------------------
    def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        data: Iterable[tuple[str, str]] | None = None,
    ) -> Any:
        url = f"{self.base_url}/{path.lstrip('/')}"
        query = dict(params or {})
        query["apiKey"] = self.api_key
        body = list(data) if data is not None else None

        def _run() -> requests.Response:
            return self._session.request(
                method,
                url,
                params=query,
                data=body,
                headers=self._session.headers,
                timeout=REQUEST_TIMEOUT,
            )

        # only GETs may be resent
        response = run_with_retries(_run, idempotent=method == "GET")
        if response.status_code >= HTTP_ERROR_STATUS:
            raise BacklogAPIError(
                f"Backlog API {method} {url} returned code {response.status_code}",
                status=response.status_code,
                response_text=redact(response.text),
            )
        if response.text:
            return response.json()
        return None

    def _list(self, path: str, **params: Any) -> list[dict[str, Any]]:
        data = self._request("GET", path, params=params or None)
        if not isinstance(data, list):
            return []
        return [entry for entry in data if isinstance(entry, dict)]

    # ---- Project metadata ---------------------------------------------
    def get_project(self, key: str) -> Project:
        data = self._request("GET", f"/projects/{key}")
        return Project(
            id=int(data["id"]),
            project_key=str(data.get("projectKey", key)),
            name=str(data.get("name", "")),
        )

    def get_issue_types(self, project_id: int) -> list[IssueType]:
        return [
            IssueType(
                id=int(e["id"]),
                name=str(e.get("name", "")),
                project_id=_optional_int(e.get("projectId")),
                color=e.get("color"),
            )
            for e in self._list(f"/projects/{project_id}/issueTypes")
        ]

    def get_custom_fields(self, project_id: int) -> list[CustomFieldDefinition]:
        return [parse_custom_field(e) for e in self._list(f"/projects/{project_id}/customFields")]

    def get_categories(self, project_id: int) -> list[Category]:
        return [
            Category(int(e["id"]), str(e.get("name", "")))
            for e in self._list(f"/projects/{project_id}/categories")
        ]

    def get_versions(self, project_id: int) -> list[Version]:
        return [
            Version(int(e["id"]), str(e.get("name", "")))
            for e in self._list(f"/projects/{project_id}/versions")
            if not e.get("archived")
        ]

    def get_priorities(self) -> list[Priority]:
        return [Priority(int(e["id"]), str(e.get("name", ""))) for e in self._list("/priorities")]

    def get_users(self, project_id: int) -> list[User]:
        return [
            User(int(e["id"]), str(e.get("userId") or ""), str(e.get("name", "")))
            for e in self._list(f"/projects/{project_id}/users")
        ]

    # ---- Issue operations ---------------------------------------------
    def get_issue(self, key: str) -> CreatedIssue | None:
        try:
            data = self._request("GET", f"/issues/{key}")
        except BacklogAPIError as exc:
            if exc.status == HTTP_NOT_FOUND:
                return None
            raise
        if not isinstance(data, dict):
            return None
        return parse_created_issue(data)

    def create_issue(self, issue: Issue, parent_issue_id: int | None = None) -> CreatedIssue:
        data = self._request("POST", "/issues", data=issue_form(issue, parent_issue_id))
        if not isinstance(data, dict):
            raise BacklogAPIError("Backlog API POST /issues returned no issue")
        return parse_created_issue(data)

    def import_finalize(self, project_key: str) -> None:
        self._request("POST", f"/projects/{project_key}/import/finalize")


__all__ = [
    "BacklogAPIError",
    "BacklogClient",
    "issue_form",
    "parse_created_issue",
    "parse_custom_field",
]
