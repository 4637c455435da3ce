"""Shared test fixtures for email-reminder tests."""

import json
import os

import pytest

from email_reminder.config import TIMEOUT_OVERRIDE_ENV
from email_reminder.paths import HOME_ENV, config_path

SAMPLE_CONFIG = {
    "smtp": {"host": "smtp.example.com", "user": "bot@example.com", "pass": "secret"},
    "from": {"email": "bot@example.com", "name": "Reminder Bot"},
    "to": ["alice@example.com", "bob@example.com"],
}


class FakeTransport:
    """Stands in for an SMTP client; records every message handed to it."""

    def __init__(self, fail_with: Exception | None = None):
        self.sent = []
        self.fail_with = fail_with

    def send_message(self, msg):
        if self.fail_with is not None:
            raise self.fail_with
        self.sent.append(msg)


def write_config(er_home, data=None):
    """Write *data* (default SAMPLE_CONFIG) as the home's config.json."""
    cp = config_path(er_home)
    cp.parent.mkdir(parents=True, exist_ok=True)
    cp.write_text(json.dumps(SAMPLE_CONFIG if data is None else data))
    return cp


@pytest.fixture
def reminder_home(tmp_path, monkeypatch):
    """An isolated reminder home with EMAIL_REMINDER_HOME pointing at it.

    The timeout override is removed so tests see the config/default delay
    unless they set it themselves.
    """
    er_home = tmp_path / "reminder"
    er_home.mkdir()
    monkeypatch.setenv(HOME_ENV, str(er_home))
    monkeypatch.delenv(TIMEOUT_OVERRIDE_ENV, raising=False)
    return er_home


@pytest.fixture
def configured_home(reminder_home):
    write_config(reminder_home)
    return reminder_home


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def no_spawn():
    """Replacement spawner that remembers tokens instead of forking."""
    calls = []

    def _spawn(er_home, token):
        calls.append((er_home, token))
        return os.getpid()

    _spawn.calls = calls
    return _spawn
