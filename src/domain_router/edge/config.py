"""Load edge router settings from a bundled JSON file.

Lambda@Edge functions cannot carry environment variables, so the viewer and
origin functions read their configuration from a JSON file shipped inside
the deployment bundle. Keys are the same names ``RouterSettings.from_env``
reads::

    {
      "ENVIRONMENT": "production",
      "ORIGIN_HOST": "main.d1abc.amplifyapp.com",
      "PLATFORM_HOST_SUFFIXES": ["amplifyapp.com"],
      "SUPABASE_URL": "https://xyz.supabase.co",
      "SUPABASE_SERVICE_ROLE_KEY": "...",
      "DIAGNOSTIC_HEADERS": true
    }

Configuration sources (in order):
  1. Explicit ``data`` dict argument (tests, embedded config).
  2. Filesystem path via ``path`` argument.
  3. ``domain_router.json`` in the function bundle root (``LAMBDA_TASK_ROOT``).
  4. Process environment (local runs and the ASGI gateway).
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Mapping

from ..settings import RouterSettings

CONFIG_FILENAME = 'domain_router.json'

# Reserved runtime variables are present even where custom ones are not.
_LAMBDA_MARKERS = ('AWS_LAMBDA_FUNCTION_NAME', 'AWS_EXECUTION_ENV')


class EdgeConfigError(ValueError):
    """Raised when edge configuration is missing, malformed or unsafe."""


def running_on_lambda(env: Mapping[str, str] | None = None) -> bool:
    env = os.environ if env is None else env
    return any(env.get(marker) for marker in _LAMBDA_MARKERS)


def bundled_config_path(env: Mapping[str, str] | None = None) -> Path:
    env = os.environ if env is None else env
    return Path(env.get('LAMBDA_TASK_ROOT') or '.') / CONFIG_FILENAME


def load_edge_settings(
    *,
    path: str | Path | None = None,
    data: Mapping[str, Any] | None = None,
) -> RouterSettings:
    """Build settings for the edge entry points.

    Raises:
        EdgeConfigError: If the config cannot be loaded, or if it would run a
            Lambda runtime with local defaults.
    """
    if data is None:
        if path is None and bundled_config_path().exists():
            path = bundled_config_path()
        if path is not None:
            data = _load_json(Path(path))

    if data is None:
        settings = RouterSettings.from_env()
        source = 'environment'
    else:
        settings = RouterSettings.from_env(_as_env(data))
        source = 'file'

    if settings.is_local and running_on_lambda():
        raise EdgeConfigError(
            f'Refusing to serve with local defaults on a Lambda runtime '
            f'(settings from {source}). Bundle {CONFIG_FILENAME} with '
            f'ENVIRONMENT, ORIGIN_HOST and Supabase credentials.'
        )
    return settings


def _load_json(config_path: Path) -> dict:
    if not config_path.exists():
        raise EdgeConfigError(f'Edge config not found at {config_path}')
    try:
        data = json.loads(config_path.read_text(encoding='utf-8'))
    except json.JSONDecodeError as exc:
        raise EdgeConfigError(f'Invalid JSON in {config_path}: {exc}') from exc
    if not isinstance(data, dict):
        raise EdgeConfigError(
            f'Expected dict at top level, got {type(data).__name__}'
        )
    return data


def _as_env(data: Mapping[str, Any]) -> dict[str, str]:
    """Flatten JSON values into the string form ``from_env`` parses."""
    env: dict[str, str] = {}
    for key, value in data.items():
        if value is None:
            continue
        if isinstance(value, bool):
            value = 'true' if value else 'false'
        elif isinstance(value, (list, tuple)):
            value = ','.join(str(item) for item in value)
        env[str(key).upper()] = str(value)
    return env
