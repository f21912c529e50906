from __future__ import annotations

from backlogimport import messages
from backlogimport.messages import line_message, message, normalize_locale


def test_normalize_locale():
    assert normalize_locale(None) == 'en'
    assert normalize_locale('ja_JP') == 'ja'
    assert normalize_locale('ja-JP') == 'ja'
    assert normalize_locale('fr') == 'en'


def test_message_formats_parameters():
    assert message('validate_parent_issue_key_not_found', key='DEMO-1') == (
        "Parent issue key 'DEMO-1' was not found."
    )


def test_line_message_prefix():
    assert line_message(7, 'validate_summary_empty') == 'Line 7: Summary is empty.'
    assert line_message(7, 'validate_summary_empty', 'ja').startswith('7 行目: ')


def test_catalogs_have_the_same_keys():
    assert set(messages._EN) == set(messages._JA)
