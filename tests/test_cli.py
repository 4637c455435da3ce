"""Tests for email_reminder/cli.py — the hook-facing commands."""

import json

import pytest
from click.testing import CliRunner

from email_reminder import reminder
from email_reminder.cli import USAGE, main
from email_reminder.config import TIMEOUT_OVERRIDE_ENV
from email_reminder.state import read_record

from tests.conftest import FakeTransport, write_config


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def spawned(monkeypatch):
    """Capture spawn_check calls instead of forking a child."""
    calls = []
    monkeypatch.setattr(reminder, "spawn_check", lambda er_home, token: calls.append(token))
    return calls


class TestUsage:
    def test_no_command(self, runner, reminder_home):
        result = runner.invoke(main, [])
        assert result.exit_code == 1
        assert USAGE in result.output

    def test_unknown_command(self, runner, reminder_home):
        result = runner.invoke(main, ["snooze"])
        assert result.exit_code == 1
        assert USAGE in result.output

    def test_check_without_token(self, runner, reminder_home):
        result = runner.invoke(main, ["check"])
        assert result.exit_code == 1
        assert "Usage: email-reminder check <token>" in result.output


class TestStartCommand:
    def test_records_payload(self, runner, reminder_home, spawned):
        payload = {"session_id": "abc", "notification": {"title": "T", "message": "M"}}
        result = runner.invoke(main, ["start"], input=json.dumps(payload))

        assert result.exit_code == 0, result.output
        record = read_record(reminder_home)
        assert record.title == "T"
        assert record.message == "M"
        assert record.session_id == "abc"
        assert spawned == [record.token]

    @pytest.mark.parametrize("stdin", ["", "not json", "[1, 2]", "42"])
    def test_bad_stdin_treated_as_empty(self, runner, reminder_home, spawned, stdin):
        result = runner.invoke(main, ["start"], input=stdin)

        assert result.exit_code == 0, result.output
        record = read_record(reminder_home)
        assert record.title is None
        assert record.message is None
        assert len(spawned) == 1

    def test_home_option(self, runner, tmp_path, spawned):
        other = tmp_path / "elsewhere"
        result = runner.invoke(main, ["--home", str(other), "start"], input="{}")
        assert result.exit_code == 0, result.output
        assert read_record(other) is not None


class TestClearCommand:
    def test_clears_pending(self, runner, reminder_home, spawned):
        runner.invoke(main, ["start"], input="{}")
        result = runner.invoke(main, ["clear"])
        assert result.exit_code == 0
        assert read_record(reminder_home).cleared_at is not None

    def test_nothing_to_clear(self, runner, reminder_home):
        result = runner.invoke(main, ["clear"])
        assert result.exit_code == 0
        assert read_record(reminder_home) is None


class TestCheckCommand:
    def test_runs_delayed_check(self, runner, reminder_home, monkeypatch):
        seen = []
        monkeypatch.setattr(reminder, "run_delayed_check", lambda er_home, token: seen.append(token))
        result = runner.invoke(main, ["check", "tok-1"])
        assert result.exit_code == 0
        assert seen == ["tok-1"]


class TestStatusCommand:
    def test_no_record(self, runner, reminder_home):
        result = runner.invoke(main, ["status"])
        assert result.exit_code == 0
        assert "No reminder recorded" in result.output

    def test_shows_record(self, runner, reminder_home, spawned):
        runner.invoke(main, ["start"], input=json.dumps({"title": "Waiting"}))
        runner.invoke(main, ["clear"])

        result = runner.invoke(main, ["status"])

        assert result.exit_code == 0
        assert "Status:  cleared" in result.output
        assert "Title:   Waiting" in result.output
        assert read_record(reminder_home).token in result.output


class TestEndToEnd:
    def test_start_then_background_check_sends(self, runner, reminder_home, monkeypatch):
        """start with a zero timeout: the check fires promptly and sends."""
        write_config(reminder_home)
        monkeypatch.setenv(TIMEOUT_OVERRIDE_ENV, "0")
        transport = FakeTransport()
        pending = {}

        def _spawn(er_home, token):
            pending["record"] = read_record(er_home)
            pending["result"] = reminder.run_delayed_check(er_home, token, transport=transport)

        monkeypatch.setattr(reminder, "spawn_check", _spawn)

        result = runner.invoke(main, ["start"], input='{"title":"T","message":"M"}')

        assert result.exit_code == 0, result.output
        created = pending["record"]
        assert created.title == "T"
        assert created.message == "M"
        assert created.token
        assert created.sent_at is None

        final = read_record(reminder_home)
        assert final.token == created.token
        assert final.sent_at is not None
        assert final.error_at is None
        assert len(transport.sent) == 1
        body = transport.sent[0].get_content()
        assert "Title: T" in body
        assert "Message: M" in body
