"""Sequential issue creation with parent resolution.

Issues are created strictly in template order because the ``*`` parent
shorthand refers to an issue created earlier in the same run. The chaining
rules live in two pure functions so they can be exercised without I/O:

``decide_parent(session, parent_key)``
    what the next issue's parent should be: nothing, the current anchor, an
    explicit key, or nothing plus a warning when the anchor is itself a
    child (Backlog has no grandchildren).

``advance(session, decision, created)``
    the session after an issue was created. Issues attached to the anchor
    through ``*`` leave the anchor in place so consecutive ``*`` rows become
    siblings; any other issue becomes the new anchor.

``create_issues`` stops at the first failed creation. Issues created before
the failure stay in Backlog and are listed in the returned report.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field, replace
from typing import Any, Literal, Protocol

import requests

from .backlog_rest import BacklogAPIError
from .converter import DefinitionSource, IssueConverter, convert_all
from .errors import ErrorInfo, RemoteAccessError, classify_error
from .logging import StructuredLogger, get_logger
from .messages import message
from .models import (
    FIRST_ROW_LINE,
    SHORTHAND_PARENT,
    CreatedIssue,
    Issue,
    Project,
    ProjectDefinition,
    TemplateRow,
)
from .validation import IssueLookup, validate

ParentKind = Literal["none", "anchor", "explicit", "rejected"]


class ImportClient(DefinitionSource, IssueLookup, Protocol):
    def create_issue(
        self, issue: Issue, parent_issue_id: int | None = None
    ) -> CreatedIssue: ...  # pragma: no cover
    def import_finalize(self, project_key: str) -> None: ...  # pragma: no cover


@dataclass(frozen=True)
class ImportSession:
    """Chaining state carried from one created issue to the next."""

    anchor: CreatedIssue | None = None
    anchor_has_parent: bool = False


@dataclass(frozen=True)
class ParentDecision:
    kind: ParentKind
    parent_id: int | None = None
    key: str | None = None
    warning: str | None = None

    @property
    def took_over(self) -> bool:
        return self.kind == "anchor"


@dataclass
class ImportReport:
    created: list[CreatedIssue] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    failed_line: int | None = None
    error: ErrorInfo | None = None
    error_message: str | None = None
    finalized: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None and self.finalized

    def totals(self) -> dict[str, Any]:
        return {
            "created": len(self.created),
            "warnings": len(self.warnings),
            "failed_line": self.failed_line,
            "finalized": self.finalized,
        }


def decide_parent(
    session: ImportSession, parent_key: str | None, locale: str | None = None
) -> ParentDecision:
    if parent_key is None:
        return ParentDecision("none")
    if parent_key != SHORTHAND_PARENT:
        return ParentDecision("explicit", key=parent_key)
    anchor = session.anchor
    if anchor is not None and session.anchor_has_parent:
        return ParentDecision(
            "rejected",
            warning=message("already_been_child_issue", locale, key=anchor.issue_key),
        )
    # Without an anchor the row is created top-level but still counts as taken over
    return ParentDecision("anchor", parent_id=anchor.id if anchor is not None else None)


def advance(
    session: ImportSession, decision: ParentDecision, created: CreatedIssue
) -> ImportSession:
    if decision.took_over:
        return session
    has_parent = decision.parent_id is not None or created.parent_issue_id is not None
    return ImportSession(anchor=created, anchor_has_parent=has_parent)


def _resolve_explicit(
    decision: ParentDecision, client: IssueLookup, line: int, locale: str | None
) -> ParentDecision:
    if decision.kind != "explicit" or decision.key is None:
        return decision
    parent = client.get_issue(decision.key)
    if parent is None:
        # validated earlier; the issue disappeared while the batch was running
        raise RemoteAccessError(
            message("validate_error_line", locale, line=line)
            + message("validate_parent_issue_key_not_found", locale, key=decision.key),
            status=404,
        )
    return replace(decision, parent_id=parent.id)


def create_issues(
    issues: Sequence[Issue],
    client: ImportClient,
    project: Project,
    *,
    locale: str | None = None,
    logger: StructuredLogger | None = None,
    on_created: Callable[[int, CreatedIssue], None] | None = None,
) -> ImportReport:
    log = logger or get_logger()
    report = ImportReport()
    session = ImportSession()
    for index, issue in enumerate(issues):
        line = index + FIRST_ROW_LINE
        decision = decide_parent(session, issue.parent_issue_key, locale)
        if decision.warning:
            report.warnings.append(decision.warning)
            log.warning(decision.warning, line=line)
        try:
            decision = _resolve_explicit(decision, client, line, locale)
            created = client.create_issue(issue, decision.parent_id)
        except (BacklogAPIError, RemoteAccessError, requests.RequestException) as exc:
            report.failed_line = line
            report.error = classify_error(exc)
            report.error_message = message("validate_error_line", locale, line=line) + message(
                "create_issue_failed", locale, summary=issue.summary, error=report.error.message
            )
            if report.created:
                report.error_message += " " + message(
                    "import_incomplete", locale, created=len(report.created)
                )
            log.log_error(
                "issue creation failed",
                error=str(exc),
                line=line,
                created_count=len(report.created),
            )
            return report
        report.created.append(created)
        log.log_issue_action(
            "created", line, created.issue_key, parent_issue_id=decision.parent_id
        )
        if on_created is not None:
            on_created(line, created)
        session = advance(session, decision, created)
    client.import_finalize(project.project_key)
    report.finalized = True
    log.log_operation(
        "import_finalized", project_key=project.project_key, created_count=len(report.created)
    )
    return report


def run_import(
    rows: Iterable[TemplateRow],
    client: ImportClient,
    project: Project,
    *,
    locale: str | None = None,
    logger: StructuredLogger | None = None,
    on_created: Callable[[int, CreatedIssue], None] | None = None,
) -> ImportReport:
    """Validate and convert every row, then create the issues in order.

    Validation and conversion failures raise before anything is created.
    """
    log = logger or get_logger()
    row_list = list(rows)
    with log.timed_operation("validate", rows=len(row_list)):
        issue_types = client.get_issue_types(project.id)
        custom_fields = client.get_custom_fields(project.id)
        validate(row_list, issue_types, custom_fields, client, locale)
    definition = ProjectDefinition(
        issue_types=issue_types,
        categories=client.get_categories(project.id),
        versions=client.get_versions(project.id),
        priorities=client.get_priorities(),
        users=client.get_users(project.id),
        custom_fields=custom_fields,
    )
    issues = convert_all(row_list, IssueConverter(project, definition, locale))
    with log.timed_operation("create_issues", issues=len(issues)):
        return create_issues(
            issues, client, project, locale=locale, logger=log, on_created=on_created
        )


__all__ = [
    "ImportClient",
    "ImportReport",
    "ImportSession",
    "ParentDecision",
    "advance",
    "create_issues",
    "decide_parent",
    "run_import",
]
