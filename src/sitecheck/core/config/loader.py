"""
Configuration loader.

Loads settings from an optional YAML file, expands environment
variables, overlays GitHub Actions style inputs (``INPUT_<NAME>``)
and validates everything into Pydantic models.
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any, Mapping

import yaml
from pydantic import ValidationError

from .models import AppConfig


DEFAULT_CONFIG_PATH = Path("sitecheck.yaml")

_ENV_PATTERN = re.compile(r"\$\{([^}:]+)(?::-([^}]*))?\}")

# Action input name -> config path
INPUT_FIELDS: dict[str, tuple[str, ...]] = {
    "checker": ("checker",),
    "retry_times": ("retry_times",),
    "retry_delay_seconds": ("retry_delay_seconds",),
    "exclude_issue_with_labels": ("exclude_issue_with_labels",),
    "accepted_codes": ("accepted_codes",),
    "unreachable_label": ("labels", "unreachable_label"),
    "theme_checker_invalid_label": ("labels", "theme_checker_invalid_label"),
    "friend_checker_invalid_label": ("labels", "friend_checker_invalid_label"),
    "theme_checker_meta_tag": ("theme", "meta_tag"),
    "theme_checker_content_attr": ("theme", "content_attr"),
    "theme_checker_version_attr": ("theme", "version_attr"),
    "max_concurrent_requests": ("politeness", "max_concurrent_requests"),
    "request_timeout_seconds": ("politeness", "request_timeout_seconds"),
    "log_level": ("logging", "level"),
    "report_file": ("report_file",),
}


class ConfigError(Exception):
    """Configuration loading or validation error."""

    def __init__(self, message: str, path: Path | None = None, details: str | None = None):
        self.path = path
        self.details = details
        super().__init__(message)


def _load_yaml_file(path: Path) -> dict[str, Any]:
    """Load a YAML file and return its contents as a dictionary.

    Raises:
        ConfigError: If file cannot be read or parsed
    """
    if not path.exists():
        raise ConfigError(f"Configuration file not found: {path}", path=path)

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(
            f"Invalid YAML in {path}",
            path=path,
            details=str(e),
        ) from e
    except OSError as e:
        raise ConfigError(
            f"Cannot read {path}",
            path=path,
            details=str(e),
        ) from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Top level of {path} must be a mapping", path=path)
    return data


def _expand_env_vars(data: Any, environ: Mapping[str, str]) -> Any:
    """Recursively expand ${VAR} and ${VAR:-default} in string values."""
    if isinstance(data, str):
        def replacer(match: re.Match[str]) -> str:
            return environ.get(match.group(1), match.group(2) or "")

        return _ENV_PATTERN.sub(replacer, data)
    if isinstance(data, dict):
        return {k: _expand_env_vars(v, environ) for k, v in data.items()}
    if isinstance(data, list):
        return [_expand_env_vars(item, environ) for item in data]
    return data


def read_action_inputs(environ: Mapping[str, str]) -> dict[str, Any]:
    """Collect non-empty ``INPUT_<NAME>`` variables as a nested override dict.

    Empty inputs mean "use the default", matching how Actions passes
    unset ``with:`` keys.
    """
    overrides: dict[str, Any] = {}
    for name, path in INPUT_FIELDS.items():
        raw = environ.get(f"INPUT_{name.upper()}")
        if raw is None or not raw.strip():
            continue
        node = overrides
        for key in path[:-1]:
            node = node.setdefault(key, {})
        node[path[-1]] = raw.strip()
    return overrides


def _deep_merge(base: dict[str, Any], overrides: dict[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_app_config(
    path: Path | str | None = None,
    expand_env: bool = True,
    environ: Mapping[str, str] | None = None,
    overrides: dict[str, Any] | None = None,
) -> AppConfig:
    """Load application configuration.

    Args:
        path: Path to sitecheck.yaml (default: ./sitecheck.yaml if present)
        expand_env: Whether to expand environment variables in the file
        environ: Environment mapping (default: os.environ)
        overrides: Nested values applied last (command line options)

    Returns:
        Validated AppConfig instance

    Raises:
        ConfigError: If configuration is invalid
    """
    if environ is None:
        environ = os.environ

    if path is None:
        path = DEFAULT_CONFIG_PATH
        data = _load_yaml_file(path) if path.exists() else {}
    else:
        path = Path(path)
        data = _load_yaml_file(path)

    if expand_env:
        data = _expand_env_vars(data, environ)

    data = _deep_merge(data, read_action_inputs(environ))
    if overrides:
        data = _deep_merge(data, overrides)

    try:
        return AppConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(
            f"Invalid configuration in {path}",
            path=path,
            details=str(e),
        ) from e
