"""Process-wide logging setup: rotating log file plus stderr."""

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler

from prompt_relay.config import LoggingSettings

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
_HANDLER_MARKER = "_prompt_relay_handler"


def configure_logging(settings: LoggingSettings) -> None:
    """Attach relay handlers to the root logger. Safe to call more than once."""

    root = logging.getLogger()
    root.setLevel(getattr(logging, settings.level.upper(), logging.INFO))
    for handler in list(root.handlers):
        if getattr(handler, _HANDLER_MARKER, False):
            root.removeHandler(handler)
            handler.close()

    formatter = logging.Formatter(LOG_FORMAT)
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if settings.log_file is not None:
        settings.log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(
            RotatingFileHandler(
                settings.log_file,
                maxBytes=settings.max_bytes,
                backupCount=settings.backup_count,
                encoding="utf-8",
            ),
        )
    for handler in handlers:
        handler.setFormatter(formatter)
        setattr(handler, _HANDLER_MARKER, True)
        root.addHandler(handler)
