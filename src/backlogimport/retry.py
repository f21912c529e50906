"""Centralized retry / backoff helpers for Backlog API calls.

``run_with_retries`` wraps a thunk returning a ``requests.Response``. Rate
limiting (429) and gateway errors (502/503/504) are retried with
exponential backoff and jitter, as are connection failures and timeouts.
Every other response is handed back to the caller untouched.

Calls that are not idempotent (``idempotent=False``, e.g. issue creation)
are retried only on 429, which Backlog answers before doing any work. A
timeout or gateway error may arrive after the server acted, so those are
raised or returned immediately.

Environment overrides:
  BACKLOG_IMPORT_RETRY_ATTEMPTS (default 3)
  BACKLOG_IMPORT_RETRY_BASE (seconds base, default 0.5)
  BACKLOG_IMPORT_RETRY_MAX_SLEEP (upper bound for a single sleep)
"""

from __future__ import annotations

import os
import random
import time
from collections.abc import Callable
from dataclasses import dataclass, field

import requests

from .errors import redact
from .logging import get_logger

HTTP_TOO_MANY_REQUESTS = 429
TRANSIENT_STATUS = frozenset({HTTP_TOO_MANY_REQUESTS, 502, 503, 504})

_JITTER = random.SystemRandom()


def _env_int(name: str, default: int) -> int:
    return int(os.environ.get(name, str(default)))


def _env_float(name: str, default: float) -> float:
    return float(os.environ.get(name, str(default)))


@dataclass
class RetryConfig:
    attempts: int = field(default_factory=lambda: _env_int("BACKLOG_IMPORT_RETRY_ATTEMPTS", 3))
    base_sleep: float = field(default_factory=lambda: _env_float("BACKLOG_IMPORT_RETRY_BASE", 0.5))


def is_transient(response: requests.Response) -> bool:
    return response.status_code in TRANSIENT_STATUS


def _should_retry(response: requests.Response, idempotent: bool) -> bool:
    if idempotent:
        return is_transient(response)
    return response.status_code == HTTP_TOO_MANY_REQUESTS


def _retry_after(response: requests.Response | None) -> float | None:
    """Seconds requested by a ``Retry-After`` header, when it holds a positive number."""
    if response is None:
        return None
    raw = response.headers.get("Retry-After") if response.headers else None
    if not raw:
        return None
    try:
        val = float(raw)
    except ValueError:
        return None
    return val if val > 0 else None


def _compute_sleep(attempt: int, cfg: RetryConfig, response: requests.Response | None) -> float:
    explicit = _retry_after(response)
    backoff = cfg.base_sleep * (2 ** (attempt - 1)) + _JITTER.uniform(0, 0.25)
    sleep_for = explicit if explicit is not None else backoff
    max_cap_env = os.environ.get("BACKLOG_IMPORT_RETRY_MAX_SLEEP")
    if max_cap_env:
        try:
            cap = float(max_cap_env)
        except ValueError:
            return sleep_for
        if cap >= 0:
            sleep_for = min(sleep_for, cap)
    return sleep_for


def run_with_retries(
    fn: Callable[[], requests.Response],
    *,
    cfg: RetryConfig | None = None,
    idempotent: bool = True,
) -> requests.Response:
    cfg = cfg or RetryConfig()
    attempts = max(1, cfg.attempts)
    for attempt in range(1, attempts + 1):
        try:
            response = fn()
        except (requests.ConnectionError, requests.Timeout) as exc:
            if not idempotent or attempt >= attempts:
                raise
            sleep_for = _compute_sleep(attempt, cfg, None)
            get_logger().warning(
                "transient network error, retrying",
                attempt=attempt,
                attempts=attempts,
                sleep_s=round(sleep_for, 2),
                error=redact(str(exc)),
            )
            time.sleep(sleep_for)
            continue
        if attempt >= attempts or not _should_retry(response, idempotent):
            return response
        sleep_for = _compute_sleep(attempt, cfg, response)
        get_logger().warning(
            "transient Backlog response, retrying",
            attempt=attempt,
            attempts=attempts,
            status=response.status_code,
            sleep_s=round(sleep_for, 2),
        )
        time.sleep(sleep_for)
    raise RuntimeError("retry logic exited unexpectedly")  # pragma: no cover


__all__ = ["RetryConfig", "TRANSIENT_STATUS", "is_transient", "run_with_retries"]
