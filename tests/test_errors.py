from __future__ import annotations

import requests

from backlogimport.backlog_rest import BacklogAPIError
from backlogimport.errors import (
    ConversionError,
    RemoteAccessError,
    ValidationError,
    classify_error,
    redact,
)


def test_classify_rate_limit_by_status():
    info = classify_error(BacklogAPIError('Backlog API GET /issues returned code 429', status=429))
    assert info.category == 'backlog.rate_limit'
    assert info.transient is True
    assert info.details == {'status': 429}


def test_classify_rate_limit_by_message():
    info = classify_error(RuntimeError('API Rate Limit Exceeded'))
    assert info.category == 'backlog.rate_limit'


def test_classify_auth():
    info = classify_error(RemoteAccessError('Authentication failed.', status=401))
    assert info.category == 'backlog.auth'
    assert info.transient is False


def test_classify_not_found():
    info = classify_error(BacklogAPIError('missing', status=404))
    assert info.category == 'backlog.not_found'


def test_classify_network():
    info = classify_error(requests.ConnectionError('Connection reset by peer'))
    assert info.category == 'network'
    assert info.transient is True


def test_classify_validation_keeps_line():
    info = classify_error(ConversionError('Line 4: Category x was not found.', line=4, field='category'))
    assert info.category == 'validation'
    assert info.details == {'line': 4, 'field': 'category'}
    assert info.original_type == 'ConversionError'
    assert isinstance(ConversionError('x'), ValidationError)


def test_classify_generic():
    info = classify_error(ValueError('Some other problem'))
    assert info.category == 'generic'
    assert info.details is None


def test_redact_api_keys():
    sample = "GET https://acme.backlog.com/api/v2/issues?apiKey=AbC123&count=1\napi_key: hunter2"
    out = redact(sample)
    assert 'AbC123' not in out
    assert 'hunter2' not in out
    assert 'count=1' in out
    assert out.count('<redacted>') == 2


def test_classify_redacts_message():
    info = classify_error(RuntimeError('failed: apiKey=AbC123'))
    assert 'AbC123' not in info.message
