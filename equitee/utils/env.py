"""Helpers for reading ``EQUITEE_*`` configuration from the environment."""
from __future__ import annotations

import json
import logging
import os

LOGGER = logging.getLogger(__name__)


def load_headers_from_env(variable_name: str) -> dict[str, str]:
    """Parse optional headers from a JSON-encoded environment variable."""

    raw_value = os.getenv(variable_name)
    if not raw_value:
        return {}

    try:
        parsed = json.loads(raw_value)
    except json.JSONDecodeError:
        LOGGER.warning("Ignoring invalid JSON in %s", variable_name)
        return {}

    if not isinstance(parsed, dict):
        LOGGER.warning("Ignoring non-object value in %s", variable_name)
        return {}

    return {str(key): str(value) for key, value in parsed.items() if value is not None}


def load_timeout_from_env(variable_name: str, default: float) -> float:
    """Return the timeout specified by the environment, falling back to ``default``."""

    raw_value = os.getenv(variable_name)
    if not raw_value:
        return default

    try:
        timeout = float(raw_value)
    except ValueError:
        LOGGER.warning("Ignoring invalid timeout value in %s", variable_name)
        return default

    if timeout <= 0:
        LOGGER.warning("Ignoring non-positive timeout value in %s", variable_name)
        return default

    return timeout


def load_url_from_env(variable_name: str, default: str) -> str:
    """Return a base URL without its trailing slash."""

    raw_value = (os.getenv(variable_name) or "").strip()
    if not raw_value:
        return default.rstrip("/")
    if not raw_value.startswith(("http://", "https://")):
        LOGGER.warning("Ignoring non-HTTP URL in %s", variable_name)
        return default.rstrip("/")
    return raw_value.rstrip("/")


def load_choice_from_env(variable_name: str, choices: tuple[str, ...], default: str) -> str:
    raw_value = (os.getenv(variable_name) or "").strip().lower()
    if not raw_value:
        return default
    if raw_value not in choices:
        LOGGER.warning("Ignoring unsupported value %r in %s", raw_value, variable_name)
        return default
    return raw_value
