from __future__ import annotations

from dataclasses import dataclass, field

import pytest
import requests

from backlogimport import retry

# Constants for test expectations
FIRST_SUCCESS_ATTEMPT = 2  # transient once then success
EXPECTED_RETRY_COUNT = 2  # total attempts when one retry occurs


@dataclass
class _Response:
    status_code: int
    headers: dict[str, str] = field(default_factory=dict)


@pytest.fixture
def sleeps(monkeypatch):
    recorded: list[float] = []
    monkeypatch.setattr(retry.time, "sleep", recorded.append)
    monkeypatch.delenv("BACKLOG_IMPORT_RETRY_MAX_SLEEP", raising=False)
    return recorded


def test_is_transient_statuses():
    assert retry.is_transient(_Response(429))
    assert retry.is_transient(_Response(503))
    assert not retry.is_transient(_Response(500))
    assert not retry.is_transient(_Response(200))


def test_run_with_retries_transient_then_success(sleeps):
    attempts: list[int] = []

    def fn():
        attempts.append(1)
        if len(attempts) < FIRST_SUCCESS_ATTEMPT:
            return _Response(429)
        return _Response(200)

    cfg = retry.RetryConfig(attempts=3, base_sleep=0.01)
    result = retry.run_with_retries(fn, cfg=cfg)
    assert result.status_code == 200
    assert len(attempts) == EXPECTED_RETRY_COUNT
    assert len(sleeps) == 1


def test_run_with_retries_non_transient(sleeps):
    attempts: list[int] = []

    def fn():
        attempts.append(1)
        return _Response(500)

    result = retry.run_with_retries(fn, cfg=retry.RetryConfig(attempts=4, base_sleep=0.01))
    assert result.status_code == 500
    assert len(attempts) == 1
    assert sleeps == []


def test_run_with_retries_returns_last_transient_response(sleeps):
    attempts: list[int] = []

    def fn():
        attempts.append(1)
        return _Response(503)

    cfg = retry.RetryConfig(attempts=3, base_sleep=0.0)
    assert retry.run_with_retries(fn, cfg=cfg).status_code == 503
    assert len(attempts) == cfg.attempts


def test_retry_after_header_and_cap(sleeps, monkeypatch):
    responses = [_Response(429, {"Retry-After": "7"}), _Response(200)]
    retry.run_with_retries(lambda: responses.pop(0), cfg=retry.RetryConfig(attempts=2))
    assert sleeps == [7.0]

    monkeypatch.setenv("BACKLOG_IMPORT_RETRY_MAX_SLEEP", "1")
    responses = [_Response(429, {"Retry-After": "7"}), _Response(200)]
    retry.run_with_retries(lambda: responses.pop(0), cfg=retry.RetryConfig(attempts=2))
    assert sleeps[-1] == 1.0


def test_connection_errors_retry_then_raise(sleeps):
    attempts: list[int] = []

    def fn():
        attempts.append(1)
        raise requests.ConnectionError("connection reset apiKey=secret")

    with pytest.raises(requests.ConnectionError):
        retry.run_with_retries(fn, cfg=retry.RetryConfig(attempts=3, base_sleep=0.0))
    assert len(attempts) == 3
    assert len(sleeps) == 2


def test_retry_config_from_env(monkeypatch):
    monkeypatch.setenv("BACKLOG_IMPORT_RETRY_ATTEMPTS", "5")
    monkeypatch.setenv("BACKLOG_IMPORT_RETRY_BASE", "0.1")
    cfg = retry.RetryConfig()
    assert cfg.attempts == 5
    assert cfg.base_sleep == 0.1


def test_non_idempotent_call_not_retried_on_timeout(sleeps):
    attempts: list[int] = []

    def fn():
        attempts.append(1)
        raise requests.ReadTimeout("read timed out")

    with pytest.raises(requests.Timeout):
        retry.run_with_retries(fn, cfg=retry.RetryConfig(attempts=3, base_sleep=0.0), idempotent=False)
    assert len(attempts) == 1
    assert sleeps == []


def test_non_idempotent_call_retried_only_on_rate_limit(sleeps):
    responses = [_Response(502), _Response(200)]
    result = retry.run_with_retries(
        lambda: responses.pop(0), cfg=retry.RetryConfig(attempts=3), idempotent=False
    )
    assert result.status_code == 502

    responses = [_Response(429), _Response(200)]
    result = retry.run_with_retries(
        lambda: responses.pop(0), cfg=retry.RetryConfig(attempts=3, base_sleep=0.0), idempotent=False
    )
    assert result.status_code == 200
    assert len(sleeps) == 1
