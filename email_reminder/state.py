"""Single-record state store for the pending reminder.

The store is one JSON document (``state.json`` under the reminder home).
It holds at most one ``ReminderRecord``: ``start`` overwrites whatever was
there, ``clear`` stamps the record instead of deleting it, and the delayed
check stamps ``sentAt`` or the error fields.

Reads favour availability: a missing, empty, or unparsable file is simply
"no record".  There is no locking; writes replace the whole file.
"""

import json
import logging
import os
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from email_reminder.paths import state_path

logger = logging.getLogger(__name__)

# Record attribute -> JSON key in state.json
_JSON_KEYS = {
    "token": "token",
    "created_at": "createdAt",
    "session_id": "sessionId",
    "notification_type": "notificationType",
    "title": "title",
    "message": "message",
    "cwd": "cwd",
    "cleared_at": "clearedAt",
    "sent_at": "sentAt",
    "error_at": "errorAt",
    "error_message": "errorMessage",
}


def format_ts(dt: datetime) -> str:
    return dt.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


def parse_ts(value: str) -> datetime | None:
    """Parse a timestamp written by ``format_ts``; None if it can't be read."""
    try:
        return datetime.strptime(value, "%Y-%m-%dT%H:%M:%S.%fZ").replace(tzinfo=timezone.utc)
    except (TypeError, ValueError):
        return None


def _now_iso() -> str:
    return format_ts(datetime.now(timezone.utc))


@dataclass
class ReminderRecord:
    token: str
    created_at: str
    session_id: str | None = None
    notification_type: str | None = None
    title: str | None = None
    message: str | None = None
    cwd: str | None = None
    cleared_at: str | None = None
    sent_at: str | None = None
    error_at: str | None = None
    error_message: str | None = None

    @property
    def status(self) -> str:
        """Lifecycle state: pending, cleared, sent or errored."""
        if self.cleared_at:
            return "cleared"
        if self.sent_at:
            return "sent"
        if self.error_at:
            return "errored"
        return "pending"

    def to_dict(self) -> dict:
        """JSON-ready dict; unset optional fields are left out."""
        data = {}
        for attr, key in _JSON_KEYS.items():
            value = getattr(self, attr)
            if value is not None:
                data[key] = value
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "ReminderRecord":
        """Build a record from its JSON form.

        Raises ValueError if the token or creation time is missing.
        """
        fields = {}
        for attr, key in _JSON_KEYS.items():
            value = data.get(key)
            if value is not None:
                fields[attr] = str(value)
        if not fields.get("token") or not fields.get("created_at"):
            raise ValueError("Reminder record needs 'token' and 'createdAt'")
        return cls(**fields)


def read_record(er_home: Path) -> ReminderRecord | None:
    """Return the stored record, or None if there isn't a readable one."""
    sp = state_path(er_home)
    try:
        raw = sp.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
    except (OSError, UnicodeDecodeError) as e:
        logger.warning("Could not read state file %s: %s", sp, e)
        return None

    if not raw.strip():
        return None
    try:
        data = json.loads(raw)
        if not isinstance(data, dict):
            raise ValueError("state document is not an object")
        return ReminderRecord.from_dict(data)
    except ValueError as e:
        logger.warning("Ignoring unreadable state file %s: %s", sp, e)
        return None


def write_record(er_home: Path, record: ReminderRecord) -> None:
    """Replace the stored record with *record*."""
    sp = state_path(er_home)
    sp.parent.mkdir(parents=True, exist_ok=True)
    tmp = sp.with_name(f".{sp.name}.{os.getpid()}.tmp")
    tmp.write_text(json.dumps(record.to_dict(), indent=2) + "\n", encoding="utf-8")
    os.replace(tmp, sp)


def clear_record(er_home: Path, now: datetime | None = None) -> bool:
    """Stamp the stored record as cleared.

    Returns True if there was a record to clear.  The file is kept so the
    cancelled record stays inspectable.
    """
    record = read_record(er_home)
    if record is None:
        return False
    record.cleared_at = format_ts(now) if now is not None else _now_iso()
    write_record(er_home, record)
    return True
