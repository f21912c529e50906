"""Localized user-facing messages.

Every message shown to the person running an import goes through
:func:`message`, so the CLI and the library report the same text. Catalog
entries are ``str.format`` templates; unknown locales fall back to English.
"""

from __future__ import annotations

from typing import Any

DEFAULT_LOCALE = "en"

_EN: dict[str, str] = {
    "script_name": "Backlog bulk issue import",
    "progress_collect": "Collecting issues from the template...",
    "progress_run_begin": "Importing issues into Backlog...",
    "progress_end": " finished.",
    "progress_init_begin": "Reading project definitions from Backlog...",
    "complete_init": "Template created.",
    "space_url_required": "Space URL is required.",
    "api_key_required": "API key is required.",
    "project_key_required": "Project key is required.",
    "space_or_project_not_found": "Space or project was not found.",
    "authenticate_failed": "Authentication failed. Check the API key.",
    "api_access_error": "Backlog API access error: {error}",
    "invalid_row_length": "The template has no issue rows.",
    "validate_error_line": "Line {line}: ",
    "validate_summary_empty": "Summary is empty.",
    "validate_issue_type_empty": "Issue type is empty.",
    "validate_issue_type_not_found": "Issue type '{name}' is not defined in the project.",
    "validate_parent_issue_key_not_found": "Parent issue key '{key}' was not found.",
    "validate_custom_field_required": "Custom field '{name}' is required.",
    "validate_custom_field_required_issue_type": (
        "Custom field '{name}' is required for issue type '{issue_type}'."
    ),
    "validate_custom_field_required_unsupported": (
        "Custom field '{name}' is required but its type is not supported by the bulk import."
    ),
    "validate_custom_field_number": "Custom field '{name}' must be a number. Value: {value}",
    "validate_custom_field_date": "Custom field '{name}' must be a date. Value: {value}",
    "convert_issue_type_not_found": "Issue type '{name}' was not found.",
    "convert_category_not_found": "Category '{name}' was not found.",
    "convert_version_not_found": "Version '{name}' was not found.",
    "convert_milestone_not_found": "Milestone '{name}' was not found.",
    "convert_priority_not_found": "Priority '{name}' was not found.",
    "convert_user_not_found": "User '{name}' was not found.",
    "convert_invalid_date": "'{value}' is not a valid date for {column}.",
    "convert_invalid_number": "'{value}' is not a valid number for {column}.",
    "convert_custom_field_item_not_found": "'{value}' is not an item of custom field '{name}'.",
    "already_been_child_issue": (
        "Issue {key} is already a child issue, so the next '*' row was registered without a parent."
    ),
    "create_issue_failed": "Could not create the issue '{summary}': {error}",
    "import_incomplete": "{created} issue(s) were created before the import stopped.",
}

_JA: dict[str, str] = {
    "script_name": "Backlog 課題一括登録",
    "progress_collect": "テンプレートから課題を収集しています...",
    "progress_run_begin": "Backlog に課題を登録しています...",
    "progress_end": " が完了しました。",
    "progress_init_begin": "Backlog からプロジェクトの定義を取得しています...",
    "complete_init": "テンプレートを作成しました。",
    "space_url_required": "スペース URL を入力してください。",
    "api_key_required": "API キーを入力してください。",
    "project_key_required": "プロジェクトキーを入力してください。",
    "space_or_project_not_found": "スペースまたはプロジェクトが見つかりません。",
    "authenticate_failed": "認証に失敗しました。API キーを確認してください。",
    "api_access_error": "Backlog API へのアクセスでエラーが発生しました: {error}",
    "invalid_row_length": "テンプレートに課題が入力されていません。",
    "validate_error_line": "{line} 行目: ",
    "validate_summary_empty": "件名が入力されていません。",
    "validate_issue_type_empty": "種別が入力されていません。",
    "validate_issue_type_not_found": "種別 '{name}' はプロジェクトに存在しません。",
    "validate_parent_issue_key_not_found": "親課題 '{key}' が見つかりません。",
    "validate_custom_field_required": "カスタム属性 '{name}' は必須です。",
    "validate_custom_field_required_issue_type": (
        "カスタム属性 '{name}' は種別 '{issue_type}' で必須です。"
    ),
    "validate_custom_field_required_unsupported": (
        "カスタム属性 '{name}' は必須ですが、一括登録でサポートされていない型です。"
    ),
    "validate_custom_field_number": "カスタム属性 '{name}' には数値を入力してください。値: {value}",
    "validate_custom_field_date": "カスタム属性 '{name}' には日付を入力してください。値: {value}",
    "convert_issue_type_not_found": "種別 '{name}' が見つかりません。",
    "convert_category_not_found": "カテゴリー '{name}' が見つかりません。",
    "convert_version_not_found": "発生バージョン '{name}' が見つかりません。",
    "convert_milestone_not_found": "マイルストーン '{name}' が見つかりません。",
    "convert_priority_not_found": "優先度 '{name}' が見つかりません。",
    "convert_user_not_found": "ユーザー '{name}' が見つかりません。",
    "convert_invalid_date": "{column} の値 '{value}' は日付ではありません。",
    "convert_invalid_number": "{column} の値 '{value}' は数値ではありません。",
    "convert_custom_field_item_not_found": (
        "'{value}' はカスタム属性 '{name}' の選択肢にありません。"
    ),
    "already_been_child_issue": (
        "課題 {key} はすでに子課題のため、次の '*' の行は親課題なしで登録しました。"
    ),
    "create_issue_failed": "課題 '{summary}' を登録できませんでした: {error}",
    "import_incomplete": "中断までに {created} 件の課題を登録しました。",
}

_CATALOGS: dict[str, dict[str, str]] = {"en": _EN, "ja": _JA}


def normalize_locale(locale: str | None) -> str:
    if not locale:
        return DEFAULT_LOCALE
    lang = locale.replace("-", "_").split("_", 1)[0].lower()
    return lang if lang in _CATALOGS else DEFAULT_LOCALE


def message(key: str, locale: str | None = None, /, **params: Any) -> str:
    catalog = _CATALOGS[normalize_locale(locale)]
    template = catalog.get(key) or _EN[key]
    return template.format(**params) if params else template


def line_message(line: int, key: str, locale: str | None = None, /, **params: Any) -> str:
    """Prefix a message with the template line it refers to."""
    return message("validate_error_line", locale, line=line) + message(key, locale, **params)


__all__ = ["DEFAULT_LOCALE", "line_message", "message", "normalize_locale"]
