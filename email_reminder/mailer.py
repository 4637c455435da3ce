"""Compose and send the reminder email.

Usage:
    from email_reminder.mailer import send_reminder
    send_reminder(config, record, now)

``send_reminder`` accepts a ``transport`` (anything with ``send_message``)
so tests can swap in a double instead of a real SMTP connection.
"""

import logging
import smtplib
from datetime import datetime
from email.message import EmailMessage
from pathlib import Path

from email_reminder.state import ReminderRecord, format_ts

logger = logging.getLogger(__name__)

DEFAULT_SUBJECT = "Reminder: your assistant is waiting for input"
DEFAULT_SMTP_PORT = 465

_INTRO = (
    "Your assistant session asked for input and nobody answered "
    "within the reminder window."
)


def _format_sender(config: dict) -> str:
    sender = config["from"]
    name = sender.get("name")
    if name:
        return f"{name} <{sender['email']}>"
    return sender["email"]


def _format_recipients(to) -> str:
    if isinstance(to, list):
        return ", ".join(str(addr) for addr in to)
    return to


def build_email(config: dict, record: ReminderRecord, now: datetime) -> EmailMessage:
    """Build the plain-text reminder for *record*."""
    cwd = record.cwd or str(Path.cwd().resolve())
    lines = [
        _INTRO,
        "",
        f"Directory: {cwd}",
        f"Waiting since: {record.created_at or format_ts(now)}",
    ]
    if record.title:
        lines.append(f"Title: {record.title}")
    if record.message:
        lines.append(f"Message: {record.message}")

    msg = EmailMessage()
    msg["Subject"] = config.get("subject") or DEFAULT_SUBJECT
    msg["From"] = _format_sender(config)
    msg["To"] = _format_recipients(config["to"])
    msg.set_content("\n".join(lines) + "\n")
    return msg


def make_transport(config: dict) -> smtplib.SMTP:
    """Open an authenticated SMTP connection from ``config["smtp"]``.

    ``secure`` defaults to True (implicit TLS).  With ``secure: false`` the
    connection is upgraded via STARTTLS when the server offers it.
    """
    smtp = config["smtp"]
    host = smtp["host"]
    port = int(smtp.get("port") or DEFAULT_SMTP_PORT)
    secure = smtp.get("secure") is not False

    if secure:
        client = smtplib.SMTP_SSL(host, port)
    else:
        client = smtplib.SMTP(host, port)
        client.ehlo()
        if client.has_extn("starttls"):
            client.starttls()
            client.ehlo()
    try:
        client.login(smtp["user"], smtp["pass"])
    except Exception:
        client.close()
        raise
    return client


def send_reminder(config: dict, record: ReminderRecord, now: datetime, transport=None) -> None:
    """Build the reminder and hand it to *transport* (or a fresh SMTP client)."""
    msg = build_email(config, record, now)
    if transport is not None:
        transport.send_message(msg)
    else:
        with make_transport(config) as client:
            client.send_message(msg)
    logger.info("Reminder for %s sent to %s", record.token, msg["To"])
