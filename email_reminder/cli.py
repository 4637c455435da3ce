"""email-reminder CLI entry point using Click.

Meant to be wired up as assistant lifecycle hooks:

Commands:
    email-reminder start            — record a reminder from the JSON payload on stdin
    email-reminder clear            — cancel the pending reminder
    email-reminder check <token>    — wait out the delay, then send (spawned by start)
    email-reminder status           — show the current reminder record

A missing or unknown command prints usage and exits 1.
"""

import json
from pathlib import Path

import click

from email_reminder.paths import HOME_ENV, home as _home

USAGE = "Usage: email-reminder <start|clear|check <token>|status>"


def _get_home(ctx: click.Context) -> Path:
    """Resolve the reminder home from context or default."""
    return _home(ctx.obj.get("home_override") if ctx.obj else None)


def _usage_exit(ctx: click.Context) -> None:
    click.echo(USAGE)
    ctx.exit(1)


def _read_payload() -> dict:
    """Parse the hook payload from stdin; anything unusable becomes ``{}``."""
    try:
        raw = click.get_text_stream("stdin").read()
    except (OSError, ValueError):
        return {}
    if not raw.strip():
        return {}
    try:
        payload = json.loads(raw)
    except ValueError:
        return {}
    return payload if isinstance(payload, dict) else {}


class _ReminderGroup(click.Group):
    """Click group that reports unknown commands with usage and exit code 1."""

    def resolve_command(self, ctx, args):
        if args and self.get_command(ctx, args[0]) is None:
            _usage_exit(ctx)
        return super().resolve_command(ctx, args)


@click.group(cls=_ReminderGroup, invoke_without_command=True)
@click.option(
    "--home", "home_override", type=click.Path(path_type=Path), default=None,
    envvar=HOME_ENV,
    help="Override the reminder home directory (default: ~/.email-reminder).",
)
@click.pass_context
def main(ctx: click.Context, home_override: Path | None) -> None:
    """Email reminder for assistant notifications nobody answered."""
    ctx.ensure_object(dict)
    ctx.obj["home_override"] = home_override
    if ctx.invoked_subcommand is None:
        _usage_exit(ctx)


@main.command()
@click.pass_context
def start(ctx: click.Context) -> None:
    """Record a reminder from the notification on stdin and schedule it."""
    from email_reminder.logging_setup import configure_logging
    from email_reminder.reminder import start as start_reminder

    er_home = _get_home(ctx)
    configure_logging(er_home)
    start_reminder(er_home, _read_payload())


@main.command()
@click.pass_context
def clear(ctx: click.Context) -> None:
    """Cancel the pending reminder, if any."""
    from email_reminder.logging_setup import configure_logging
    from email_reminder.reminder import clear as clear_reminder

    er_home = _get_home(ctx)
    configure_logging(er_home)
    clear_reminder(er_home)


@main.command()
@click.argument("token", required=False)
@click.pass_context
def check(ctx: click.Context, token: str | None) -> None:
    """Wait for the reminder delay, then send unless cancelled."""
    if not token:
        click.echo("Usage: email-reminder check <token>")
        ctx.exit(1)

    from email_reminder.logging_setup import configure_logging
    from email_reminder.reminder import run_delayed_check

    er_home = _get_home(ctx)
    configure_logging(er_home)
    run_delayed_check(er_home, token)


@main.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show the current reminder record."""
    from email_reminder.state import read_record

    record = read_record(_get_home(ctx))
    if record is None:
        click.echo("No reminder recorded")
        return

    click.echo(f"Token:   {record.token}")
    click.echo(f"Status:  {record.status}")
    click.echo(f"Created: {record.created_at}")
    for label, value in (
        ("Session", record.session_id),
        ("Type", record.notification_type),
        ("Title", record.title),
        ("Message", record.message),
        ("Cleared", record.cleared_at),
        ("Sent", record.sent_at),
        ("Error", record.error_message),
    ):
        if value:
            click.echo(f"{label + ':':<8} {value}")


if __name__ == "__main__":
    main()
