from __future__ import annotations

import os
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

import requests

from .backlog_rest import BacklogAPIError, BacklogClient
from .config import ImportConfig
from .converter import fetch_project_definition
from .errors import ConfigurationError, RemoteAccessError, redact
from .importer import ImportClient, ImportReport, run_import
from .logging import configure_logging
from .messages import message
from .models import CreatedIssue, Project, ProjectDefinition, TemplateRow
from .template import read_template, write_result_log, write_template
from .validation import validate

HTTP_UNAUTHORIZED = 401
HTTP_NOT_FOUND = 404


def create_backlog_client(
    space: str, domain: str, api_key: str, locale: str | None = None
) -> BacklogClient:
    if not space:
        raise ConfigurationError(message("space_url_required", locale))
    if not api_key:
        raise ConfigurationError(message("api_key_required", locale))
    return BacklogClient(space=space, api_key=api_key, domain=domain)


def get_project(client: Any, key: str, locale: str | None = None) -> Project:
    """Fetch ``key`` and translate API failures into user-facing errors."""
    if not key:
        raise ConfigurationError(message("project_key_required", locale))
    try:
        project: Project = client.get_project(key)
    except BacklogAPIError as exc:
        if exc.status == HTTP_NOT_FOUND:
            raise RemoteAccessError(
                message("space_or_project_not_found", locale), status=exc.status
            ) from exc
        if exc.status == HTTP_UNAUTHORIZED:
            raise RemoteAccessError(
                message("authenticate_failed", locale), status=exc.status
            ) from exc
        raise _access_error(exc, locale) from exc
    except requests.RequestException as exc:
        raise _access_error(exc, locale) from exc
    return project


def _access_error(exc: Exception, locale: str | None) -> RemoteAccessError:
    return RemoteAccessError(
        message("api_access_error", locale, error=redact(str(exc))),
        status=getattr(exc, "status", None),
    )


@contextmanager
def remote_access(locale: str | None = None) -> Iterator[None]:
    """Report Backlog API and transport failures as ``RemoteAccessError``."""
    try:
        yield
    except (BacklogAPIError, requests.RequestException) as exc:
        raise _access_error(exc, locale) from exc


class BulkImport:
    """Template-to-Backlog import for one configured project."""

    def __init__(self, cfg: ImportConfig, client: ImportClient | None = None):
        self.cfg = cfg
        self._debug = os.environ.get("BACKLOG_IMPORT_DEBUG") == "1"
        self._logger = configure_logging(
            json_logging=cfg.logging_json_enabled,
            level="DEBUG" if self._debug else cfg.logging_level,
        )
        self._client = client
        self._project: Project | None = None

    @classmethod
    def from_config_path(cls, path: str | Path) -> BulkImport:
        from .config import load_config  # noqa: PLC0415

        return cls(load_config(path))

    @property
    def locale(self) -> str:
        return self.cfg.locale

    @property
    def client(self) -> ImportClient:
        if self._client is None:
            self._client = create_backlog_client(
                self.cfg.space, self.cfg.domain, self.cfg.api_key, self.locale
            )
        return self._client

    def project(self) -> Project:
        if self._project is None:
            self._project = get_project(self.client, self.cfg.project_key, self.locale)
            self._logger.log_operation(
                "project_loaded",
                project_key=self._project.project_key,
                project_id=self._project.id,
            )
        return self._project

    def _issue_url(self, issue_key: str) -> str:
        url_for = getattr(self.client, "issue_url", None)
        if callable(url_for):
            return str(url_for(issue_key))
        return f"https://{self.cfg.space}.backlog{self.cfg.domain}/view/{issue_key}"

    def load_rows(self) -> list[TemplateRow]:
        self._logger.info(message("progress_collect", self.locale))
        rows = read_template(self.cfg.template_file, self.cfg.template_sheet)
        self._logger.log_operation("template_read", rows=len(rows))
        return rows

    def fetch_definition(self) -> ProjectDefinition:
        project = self.project()
        with remote_access(self.locale):
            return fetch_project_definition(self.client, project)

    def validate(self, rows: list[TemplateRow] | None = None) -> int:
        """Validate the template without creating anything; returns the row count."""
        row_list = rows if rows is not None else self.load_rows()
        project = self.project()
        timer = self._logger.timed_operation("validate", rows=len(row_list))
        with remote_access(self.locale), timer:
            validate(
                row_list,
                self.client.get_issue_types(project.id),
                self.client.get_custom_fields(project.id),
                self.client,
                self.locale,
            )
        return len(row_list)

    def run(self, result_log: str | Path | None = None) -> ImportReport:
        rows = self.load_rows()
        project = self.project()
        self._logger.info(message("progress_run_begin", self.locale))
        created: list[CreatedIssue] = []

        def _record(line: int, issue: CreatedIssue) -> None:
            created.append(issue)

        try:
            with remote_access(self.locale):
                report = run_import(
                    rows,
                    self.client,
                    project,
                    locale=self.locale,
                    logger=self._logger,
                    on_created=_record,
                )
        finally:
            log_path = Path(result_log) if result_log else self.cfg.result_log
            if created and log_path is not None:
                write_result_log(log_path, created, self._issue_url)
                self._logger.log_operation("result_log_written", path=str(log_path))
        if report.ok:
            self._logger.info(
                message("script_name", self.locale) + message("progress_end", self.locale)
            )
        return report

    def init_template(self, path: str | Path | None = None) -> Path:
        self._logger.info(message("progress_init_begin", self.locale))
        definition = self.fetch_definition()
        url_for = getattr(self.client, "custom_field_url", None)
        out = write_template(
            path or self.cfg.template_file,
            definition,
            custom_field_url=url_for if callable(url_for) else None,
        )
        self._logger.info(message("complete_init", self.locale))
        return out


__all__ = ["BulkImport", "create_backlog_client", "get_project", "remote_access"]
