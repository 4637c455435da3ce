"""Configuration for the reminder mail.

Config lives in ``~/.email-reminder/config.json``::

    {
      "smtp": {"host": "smtp.example.com", "port": 465, "secure": true,
               "user": "me@example.com", "pass": "app-password"},
      "from": {"email": "me@example.com", "name": "Reminder"},
      "to": ["me@example.com"],
      "subject": "Still waiting on you",
      "timeoutSeconds": 300
    }

The file is JSON; text that does not parse as JSON is retried with
``yaml.safe_load`` so a hand-written YAML config works too.
"""

import json
import logging
import math
import os
from pathlib import Path

import yaml

from email_reminder.paths import config_path

logger = logging.getLogger(__name__)

TIMEOUT_OVERRIDE_ENV = "EMAIL_REMINDER_TIMEOUT_OVERRIDE_SEC"
DEFAULT_TIMEOUT_SECONDS = 300


class ConfigError(ValueError):
    """The config file is missing or lacks a required field."""


def _parse_seconds(value) -> float | None:
    """Return *value* as non-negative seconds, or None if it isn't one."""
    if isinstance(value, bool) or value is None:
        return None
    try:
        seconds = float(str(value).strip())
    except ValueError:
        return None
    if not math.isfinite(seconds) or seconds < 0:
        return None
    return seconds


def _parse_document(cp: Path):
    """Parse config.json; YAML is accepted when the text is not plain JSON.

    Raises:
        ConfigError: If the file can't be decoded or parsed as either.
    """
    try:
        text = cp.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise ConfigError(f"Config file {cp} is not valid UTF-8: {e}") from e
    try:
        return json.loads(text)
    except json.JSONDecodeError as json_error:
        try:
            return yaml.safe_load(text)
        except yaml.YAMLError:
            raise ConfigError(f"Config file {cp} is not valid JSON: {json_error}") from json_error


def read_config(er_home: Path) -> dict:
    """Read config.json without validating it.

    Returns an empty dict if the file is missing, unparsable, or not a mapping.
    """
    cp = config_path(er_home)
    if not cp.exists():
        return {}
    try:
        data = _parse_document(cp)
    except (OSError, ConfigError) as e:
        logger.warning("Could not read config %s: %s", cp, e)
        return {}
    return data if isinstance(data, dict) else {}


def load_config(er_home: Path) -> dict:
    """Read and validate config.json.

    Raises:
        ConfigError: If the file is missing or a required field is absent.
    """
    cp = config_path(er_home)
    if not cp.exists():
        raise ConfigError(f"Config file not found: {cp}")

    data = _parse_document(cp)
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {cp} must contain an object")

    smtp = data.get("smtp") if isinstance(data.get("smtp"), dict) else {}
    sender = data.get("from") if isinstance(data.get("from"), dict) else {}

    missing = [
        name for name, value in (
            ("smtp.host", smtp.get("host")),
            ("smtp.user", smtp.get("user")),
            ("smtp.pass", smtp.get("pass")),
            ("from.email", sender.get("email")),
        )
        if not value
    ]
    to = data.get("to")
    if not to or not isinstance(to, (str, list)):
        missing.append("to")

    if missing:
        raise ConfigError(f"Config file {cp} is missing: {', '.join(missing)}")
    return data


def get_timeout_seconds(config: dict | None, env: dict | None = None) -> float:
    """Resolve how long to wait before sending the reminder.

    Resolution order:
    1. ``EMAIL_REMINDER_TIMEOUT_OVERRIDE_SEC`` (if numeric and >= 0)
    2. ``timeoutSeconds`` from the config
    3. 300 seconds
    """
    env = os.environ if env is None else env
    override = env.get(TIMEOUT_OVERRIDE_ENV)
    if override is not None and str(override).strip():
        seconds = _parse_seconds(override)
        if seconds is not None:
            return seconds
        logger.warning("Ignoring invalid %s=%r", TIMEOUT_OVERRIDE_ENV, override)

    if config:
        seconds = _parse_seconds(config.get("timeoutSeconds"))
        if seconds is not None:
            return seconds

    return DEFAULT_TIMEOUT_SECONDS
