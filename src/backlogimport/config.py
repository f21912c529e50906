from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, cast

import yaml
from dotenv import load_dotenv

from .errors import ConfigurationError
from .messages import normalize_locale

CONFIG_DEFAULT = "backlog_import.config.yaml"


class ConfigError(ConfigurationError):
    """Unreadable or malformed configuration file."""


@dataclass
class ImportConfig:
    version: int
    config_dir: Path
    # Backlog connection
    space: str
    domain: str
    api_key: str
    project_key: str
    # Template & output
    template_file: Path
    template_sheet: str
    result_log: Path | None
    locale: str
    # Logging configuration
    logging_json_enabled: bool
    logging_level: str
    # Environment configuration
    env_load_dotenv: bool
    env_dotenv_path: str | None


def _resolve_env_var(value: Any, env_var_name: str | None = None) -> Any:
    """Resolve environment variable if value starts with $."""
    if isinstance(value, str) and value.startswith('$'):
        env_name = env_var_name or value[1:]
        return os.getenv(env_name, '')
    return value


def _section(raw: dict[str, Any], name: str) -> dict[str, Any]:
    value = raw.get(name, {}) or {}
    if not isinstance(value, dict):
        raise ConfigError(f"Section '{name}' must be a mapping")
    return cast(dict[str, Any], value)


def _load_env_file(base: Path, env: dict[str, Any]) -> None:
    if not bool(env.get('load_dotenv', True)):
        return
    dotenv_path = Path(env.get('dotenv_path') or '.env')
    if not dotenv_path.is_absolute():
        dotenv_path = base / dotenv_path
    if dotenv_path.exists():
        load_dotenv(dotenv_path, override=False)


def load_config(path: str | Path) -> ImportConfig:
    p = Path(path)
    if not p.exists():
        raise ConfigError(f'Configuration file not found: {p}')
    try:
        raw_any = yaml.safe_load(p.read_text(encoding='utf-8')) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f'Invalid YAML in {p}: {exc}') from exc
    if not isinstance(raw_any, dict):
        raise ConfigError(f'Configuration root must be a mapping: {p}')
    raw = cast(dict[str, Any], raw_any)
    base = p.parent
    backlog = _section(raw, 'backlog')
    template = _section(raw, 'template')
    out = _section(raw, 'output')
    logging_config = _section(raw, 'logging')
    env = _section(raw, 'environment')

    # .env must be loaded before $VAR references are resolved
    _load_env_file(base, env)

    result_log = out.get('result_log', 'import_result.xlsx')
    return ImportConfig(
        version=int(raw.get('version', 1)),
        config_dir=base,
        space=str(_resolve_env_var(backlog.get('space', '')) or '').strip(),
        domain=str(backlog.get('domain', '.com') or '.com'),
        api_key=str(_resolve_env_var(backlog.get('api_key', '$BACKLOG_API_KEY')) or '').strip(),
        project_key=str(_resolve_env_var(backlog.get('project_key', '')) or '').strip(),
        template_file=base / template.get('file', 'template.xlsx'),
        template_sheet=str(template.get('sheet', 'Template')),
        result_log=base / result_log if result_log else None,
        locale=normalize_locale(raw.get('locale')),
        logging_json_enabled=bool(logging_config.get('json_enabled', False)),
        logging_level=str(logging_config.get('level', 'INFO')),
        env_load_dotenv=bool(env.get('load_dotenv', True)),
        env_dotenv_path=env.get('dotenv_path'),
    )


__all__ = ["CONFIG_DEFAULT", "ConfigError", "ImportConfig", "load_config"]
