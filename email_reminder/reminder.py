"""Reminder lifecycle: start, clear, and the delayed check.

A reminder moves through::

    pending --clear--> cleared
    pending --check--> sent | errored

``start`` writes a fresh record under a new token and spawns a detached
``python -m email_reminder check <token>`` process, then returns.  That
child sleeps out the delay and calls ``check``, which only sends if the
stored record still carries its token and is neither cleared nor sent.
A newer ``start`` therefore disarms older timers without killing them.

``clear`` and a running ``check`` are not synchronized; a clear that lands
after the check has read the record does not stop the mail.
"""

import logging
import os
import subprocess
import sys
import time
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from email_reminder.config import get_timeout_seconds, load_config, read_config
from email_reminder.logging_setup import log_file_path
from email_reminder.mailer import send_reminder
from email_reminder.paths import HOME_ENV
from email_reminder.state import (
    ReminderRecord,
    clear_record,
    format_ts,
    parse_ts,
    read_record,
    write_record,
)

logger = logging.getLogger(__name__)

SKIP_MISMATCH = "state-missing-or-token-mismatch"
SKIP_CLEARED = "state-cleared"
SKIP_ALREADY_SENT = "already-sent"

# Ordered lookup paths per field; the first non-empty value wins.
_NOTIFICATION_FIELDS = {
    "notification_type": (("notification", "type"), ("type",), ("notification_type",)),
    "title": (("notification", "title"), ("title",)),
    "message": (("notification", "message"), ("message",)),
    "session_id": (
        ("session_id",),
        ("sessionId",),
        ("notification", "session_id"),
        ("notification", "sessionId"),
    ),
    "cwd": (("cwd",),),
}


@dataclass
class CheckResult:
    sent: bool
    reason: str | None = None


def _lookup(payload: dict, path: tuple[str, ...]):
    value = payload
    for key in path:
        if not isinstance(value, dict):
            return None
        value = value.get(key)
    return value


def extract_notification(payload: dict) -> dict:
    """Pull the descriptive fields out of a hook payload.

    The nested ``notification`` object wins over top-level fields, field by
    field.  Absent fields come back as None.
    """
    fields = {}
    for field, paths in _NOTIFICATION_FIELDS.items():
        fields[field] = None
        for path in paths:
            value = _lookup(payload, path)
            if value is not None and value != "":
                fields[field] = str(value)
                break
    return fields


def spawn_check(er_home: Path, token: str) -> int:
    """Launch the detached check process for *token* and return its PID.

    The child gets its own session and no stdin/stdout; stderr goes to the
    reminder log so interpreter-level failures are not lost.
    """
    er_home.mkdir(parents=True, exist_ok=True)
    env = os.environ.copy()
    env[HOME_ENV] = str(er_home)

    cmd = [sys.executable, "-m", "email_reminder", "check", token]

    with open(log_file_path(er_home), "a") as stderr_fh:
        proc = subprocess.Popen(
            cmd,
            env=env,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=stderr_fh,
            start_new_session=True,
        )
    logger.info("Spawned check process %d for %s", proc.pid, token)
    return proc.pid


def start(er_home: Path, payload: dict, now: datetime | None = None, spawn=None) -> ReminderRecord:
    """Record a new pending reminder and schedule its delayed check.

    Any previous record is overwritten.  *spawn* defaults to
    ``spawn_check``; it is called with ``(er_home, token)`` and not awaited.
    """
    now = now or datetime.now(timezone.utc)
    fields = extract_notification(payload)
    record = ReminderRecord(
        token=str(uuid.uuid4()),
        created_at=format_ts(now),
        session_id=fields["session_id"],
        notification_type=fields["notification_type"],
        title=fields["title"],
        message=fields["message"],
        cwd=fields["cwd"] or str(Path.cwd().resolve()),
    )
    write_record(er_home, record)
    logger.info(
        "Reminder %s started (session=%s, type=%s)",
        record.token, record.session_id, record.notification_type,
    )

    (spawn or spawn_check)(er_home, record.token)
    return record


def clear(er_home: Path, now: datetime | None = None) -> bool:
    """Cancel the pending reminder.  Returns False if there was none."""
    cleared = clear_record(er_home, now=now)
    if cleared:
        logger.info("Reminder cleared")
    return cleared


def check(er_home: Path, token: str, now: datetime | None = None, transport=None) -> CheckResult:
    """Send the reminder for *token* unless it was superseded, cleared, or sent.

    Configuration and delivery errors propagate; ``run_delayed_check`` is
    the caller that contains them.
    """
    record = read_record(er_home)
    if record is None or record.token != token:
        logger.info("Skipping check for %s: %s", token, SKIP_MISMATCH)
        return CheckResult(sent=False, reason=SKIP_MISMATCH)
    if record.cleared_at:
        logger.info("Skipping check for %s: %s", token, SKIP_CLEARED)
        return CheckResult(sent=False, reason=SKIP_CLEARED)
    if record.sent_at:
        logger.info("Skipping check for %s: %s", token, SKIP_ALREADY_SENT)
        return CheckResult(sent=False, reason=SKIP_ALREADY_SENT)

    config = load_config(er_home)
    send_reminder(config, record, now or datetime.now(timezone.utc), transport=transport)

    # A start during the send owns the file now; leave its record alone.
    current = read_record(er_home)
    if current is None or current.token != token:
        logger.info("Reminder %s was superseded while sending; not stamping", token)
        return CheckResult(sent=True)
    current.sent_at = format_ts(datetime.now(timezone.utc))
    write_record(er_home, current)
    return CheckResult(sent=True)


def _record_error(er_home: Path, token: str, error: Exception) -> None:
    record = read_record(er_home)
    if record is None or record.token != token:
        return
    record.error_at = format_ts(datetime.now(timezone.utc))
    record.error_message = str(error) or error.__class__.__name__
    write_record(er_home, record)


def remaining_delay(er_home: Path, token: str, now: datetime | None = None) -> float:
    """Seconds left before the reminder for *token* is due.

    The delay counts from the record's creation time.  A record that is
    gone or belongs to another token needs no wait.
    """
    record = read_record(er_home)
    if record is None or record.token != token:
        return 0.0
    timeout = get_timeout_seconds(read_config(er_home))
    created = parse_ts(record.created_at)
    if created is None:
        return float(timeout)
    elapsed = ((now or datetime.now(timezone.utc)) - created).total_seconds()
    return max(0.0, timeout - elapsed)


def run_delayed_check(er_home: Path, token: str, transport=None, sleep=time.sleep) -> CheckResult | None:
    """Wait out the delay, then run ``check``.

    Never raises: any failure is logged and written to the record's error
    fields.  Returns None in that case.
    """
    try:
        delay = remaining_delay(er_home, token)
        logger.info("Check for %s due in %.1fs", token, delay)
        if delay > 0:
            sleep(delay)
        return check(er_home, token, transport=transport)
    except Exception as e:
        logger.exception("Reminder %s failed", token)
        try:
            _record_error(er_home, token, e)
        except OSError:
            logger.exception("Could not record failure for %s", token)
        return None
