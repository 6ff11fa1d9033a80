"""Logging setup for the tmpl command-line interface."""

import json
import logging
import os
from datetime import UTC, datetime
from typing import Any, TextIO

from rich.console import Console
from rich.logging import RichHandler

from tmpl import APP_NAME
from tmpl.paths import KEY_NO_COLOR, lookup_env


def record_fields(record: logging.LogRecord) -> dict[str, Any]:
    """Return the structured fields attached to a log record."""
    fields = getattr(record, "fields", None)
    return dict(fields) if isinstance(fields, dict) else {}


def _format_value(value: Any) -> str:
    if isinstance(value, list | tuple):
        return "[" + " ".join(str(v) for v in value) + "]"
    text = str(value)
    if not text or any(c.isspace() for c in text):
        return json.dumps(text)
    return text


class FieldsFormatter(logging.Formatter):
    """Formatter appending structured fields as ``key=value`` pairs."""

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        fields = record_fields(record)
        if not fields:
            return message
        pairs = " ".join(f"{key}={_format_value(value)}" for key, value in fields.items())
        return f"{message} {pairs}"


class JSONFormatter(logging.Formatter):
    """Formatter writing one JSON object per log record."""

    def format(self, record: logging.LogRecord) -> str:
        data: dict[str, Any] = {
            "time": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "msg": record.getMessage(),
        }
        data.update(record_fields(record))

        if record.exc_info:
            data["error"] = self.formatException(record.exc_info)

        return json.dumps(data, default=str)


def no_color() -> bool:
    """Check if colored output is disabled by the environment.

    ``CLICOLOR_FORCE`` forces color, while ``NO_COLOR``, ``TMPL_NO_COLOR`` and a
    ``dumb`` terminal disable it.
    """
    if os.environ.get("CLICOLOR_FORCE", "") not in ("", "0"):
        return False
    if os.environ.get("NO_COLOR") is not None or lookup_env(KEY_NO_COLOR) is not None:
        return True
    return os.environ.get("TERM") == "dumb"


def configure_logging(
    debug: bool = False,
    quiet: bool = False,
    json_output: bool = False,
    stream: TextIO | None = None,
) -> logging.Logger:
    """Configure the application logger.

    Args:
        debug: Log debug messages, including every tmux command.
        quiet: Only log warnings and errors. Takes precedence over ``debug``.
        json_output: Write JSON lines instead of human readable output.
        stream: Stream to write to; defaults to stderr.

    Returns:
        The configured ``tmpl`` logger.
    """
    level = logging.INFO
    if debug:
        level = logging.DEBUG
    if quiet:
        level = logging.WARNING

    handler: logging.Handler
    if json_output:
        handler = logging.StreamHandler(stream)
        handler.setFormatter(JSONFormatter())
    else:
        console = Console(file=stream, stderr=stream is None, no_color=no_color(), force_terminal=_force_color())
        handler = RichHandler(
            console=console,
            show_path=False,
            show_time=debug,
            rich_tracebacks=debug,
            markup=False,
        )
        handler.setFormatter(FieldsFormatter("%(message)s"))

    logger = logging.getLogger(APP_NAME)
    for existing in logger.handlers[:]:
        logger.removeHandler(existing)

    logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = False

    return logger


def _force_color() -> bool | None:
    if os.environ.get("CLICOLOR_FORCE", "") not in ("", "0"):
        return True
    return None
