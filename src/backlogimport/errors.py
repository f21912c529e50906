"""Error taxonomy & redaction.

Import failures fall into a handful of categories with different handling:

- ``ConfigurationError``: batch-level problems found before any row is read
  (missing credentials, required custom fields of an unsupported type).
- ``TemplateError``: the template itself cannot be read as issue rows.
- ``ValidationError``: a row breaks a structural rule; carries the template
  line so the user can fix the source row.
- ``ConversionError``: a row references a name Backlog does not know.
- ``RemoteAccessError``: Backlog rejected or could not serve a request.
- ``InternalInconsistencyError``: metadata contradicts an earlier check; a
  bug, not bad input.

``classify_error`` and ``redact`` prepare any exception for logging and for
the import report without leaking API keys.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

_SENSITIVE_PATTERNS: list[re.Pattern[str]] = [
    re.compile(r"(?<=apiKey=)[^&\s'\"]+"),
    re.compile(r"(?<=api_key: )\S+"),
]

_REDACTION_PLACEHOLDER = "<redacted>"


class BacklogImportError(Exception):
    """Base class for every error raised by the import pipeline."""


class ConfigurationError(BacklogImportError):
    pass


class TemplateError(BacklogImportError):
    pass


class ValidationError(BacklogImportError):
    def __init__(
        self,
        message: str,
        *,
        line: int | None = None,
        field: str | None = None,
        value: Any = None,
    ):
        super().__init__(message)
        self.line = line
        self.field = field
        self.value = value


class ConversionError(ValidationError):
    pass


class RemoteAccessError(BacklogImportError):
    def __init__(self, message: str, *, status: int | None = None):
        super().__init__(message)
        self.status = status


class InternalInconsistencyError(BacklogImportError):
    pass


@dataclass
class ErrorInfo:
    category: str
    message: str
    original_type: str
    transient: bool = False
    details: dict[str, Any] | None = None


def redact(text: str) -> str:
    """Replace API keys found in ``text`` with a placeholder."""
    if not text:
        return text
    redacted = text
    for pat in _SENSITIVE_PATTERNS:
        redacted = pat.sub(_REDACTION_PLACEHOLDER, redacted)
    return redacted


def _status_of(exc: BaseException) -> int | None:
    status = getattr(exc, "status", None)
    return status if isinstance(status, int) else None


def classify_error(exc: BaseException) -> ErrorInfo:
    """Best-effort classification of an exception.

    HTTP status codes win over message keywords when the exception carries
    one (``BacklogAPIError``, ``RemoteAccessError``).
    """
    msg = str(exc) if exc else ""
    low = msg.lower()
    name = exc.__class__.__name__
    status = _status_of(exc)
    details = {"status": status} if status is not None else None

    if isinstance(exc, ValidationError):
        line_details = {"line": exc.line, "field": exc.field}
        return ErrorInfo("validation", redact(msg), name, details=line_details)
    if status == 429 or "rate limit" in low:
        return ErrorInfo("backlog.rate_limit", redact(msg), name, transient=True, details=details)
    if status == 401 or "unauthorized" in low:
        return ErrorInfo("backlog.auth", redact(msg), name, details=details)
    if status == 404:
        return ErrorInfo("backlog.not_found", redact(msg), name, details=details)
    if any(k in low for k in ("timeout", "timed out", "connection reset", "temporarily unavailable")):
        return ErrorInfo("network", redact(msg), name, transient=True, details=details)
    return ErrorInfo("generic", redact(msg), name, details=details)


__all__ = [
    "BacklogImportError",
    "ConfigurationError",
    "ConversionError",
    "ErrorInfo",
    "InternalInconsistencyError",
    "RemoteAccessError",
    "TemplateError",
    "ValidationError",
    "classify_error",
    "redact",
]
