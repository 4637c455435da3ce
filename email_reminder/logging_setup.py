"""Logging configuration shared by the hook commands and the detached check.

Every module logs through ``logging.getLogger(__name__)``; this module only
decides where those records end up.
"""

import logging
import logging.handlers
from pathlib import Path

from email_reminder.paths import log_path

_FORMAT = "%(asctime)s %(levelname)s [%(process)d] %(name)s: %(message)s"

_MAX_BYTES = 1_000_000
_BACKUPS = 2


def log_file_path(er_home: Path) -> Path:
    """The shared log file: handlers write to it and the check child's stderr is appended to it."""
    return log_path(er_home)


def configure_logging(er_home: Path, console: bool = False, level: int = logging.INFO) -> None:
    """Attach a rotating file handler (and optionally stderr) to the root logger.

    Safe to call more than once; handlers installed by a previous call are
    replaced rather than duplicated.
    """
    er_home.mkdir(parents=True, exist_ok=True)
    root = logging.getLogger()
    for handler in list(root.handlers):
        if getattr(handler, "_email_reminder", False):
            root.removeHandler(handler)
            handler.close()

    formatter = logging.Formatter(_FORMAT)

    file_handler = logging.handlers.RotatingFileHandler(
        log_file_path(er_home), maxBytes=_MAX_BYTES, backupCount=_BACKUPS, encoding="utf-8",
    )
    file_handler.setFormatter(formatter)
    file_handler._email_reminder = True
    root.addHandler(file_handler)

    if console:
        stream_handler = logging.StreamHandler()
        stream_handler.setFormatter(formatter)
        stream_handler._email_reminder = True
        root.addHandler(stream_handler)

    root.setLevel(level)
