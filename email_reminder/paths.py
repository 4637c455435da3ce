"""Centralized path computations for the email reminder.

All state lives under a single home directory (``~/.email-reminder`` by
default).  The ``EMAIL_REMINDER_HOME`` environment variable overrides the
default, which is also how the detached check process finds the same files
as the hook invocation that spawned it.
"""

import os
from pathlib import Path

_DEFAULT_HOME = Path.home() / ".email-reminder"

HOME_ENV = "EMAIL_REMINDER_HOME"


def home(override: Path | None = None) -> Path:
    """Return the reminder home directory.

    Resolution order:
    1. *override* argument (used in tests)
    2. ``EMAIL_REMINDER_HOME`` environment variable
    3. ``~/.email-reminder``
    """
    if override is not None:
        return override
    env = os.environ.get(HOME_ENV)
    if env:
        return Path(env)
    return _DEFAULT_HOME


def config_path(er_home: Path) -> Path:
    return er_home / "config.json"


def state_path(er_home: Path) -> Path:
    """The single-record state document."""
    return er_home / "state.json"


def log_path(er_home: Path) -> Path:
    return er_home / "reminder.log"
