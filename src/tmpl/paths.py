"""Path and application environment helpers for tmpl."""

import os
from pathlib import Path

ENV_PREFIX = "TMPL_"

# Application environment keys, read with the ENV_PREFIX prepended.
KEY_CONFIG_NAME = "CONFIG_NAME"
KEY_PWD = "PWD"
KEY_NO_COLOR = "NO_COLOR"


def getenv(key: str, default: str = "") -> str:
    """Get an application specific environment variable (``TMPL_<key>``)."""
    return os.environ.get(ENV_PREFIX + key, default)


def lookup_env(key: str) -> str | None:
    """Look up an application specific environment variable, None if unset."""
    return os.environ.get(ENV_PREFIX + key)


def getwd() -> Path:
    """Get the current working directory.

    ``TMPL_PWD`` overrides the real working directory when it holds an
    absolute path. Tests use it to stub the directory.
    """
    stub = lookup_env(KEY_PWD)
    if stub and os.path.isabs(stub):
        return Path(stub)
    return Path.cwd()


def abs_path(path: str) -> str:
    """Return an absolute version of a path.

    Paths starting with ``~`` are expanded to the user's home directory and
    relative paths are resolved against the current working directory.

    Args:
        path: The path to make absolute.

    Returns:
        The absolute path as a string.
    """
    if os.path.isabs(path):
        return path
    if path.startswith("~"):
        return os.path.normpath(os.path.expanduser(path))
    return os.path.normpath(os.path.join(getwd(), path))
