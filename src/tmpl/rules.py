"""Validation rules for configuration values.

Each rule returns an error message, or None if the value is valid. Empty
values are treated as valid; required-ness is checked separately.
"""

import os
import re
import shutil

NAME_RE = re.compile(r"^[\w._-]+$")


def name_matches(value: str) -> str | None:
    """Check that a session or window name only holds safe characters."""
    if value and not NAME_RE.match(value):
        return "must only contain alphanumeric characters, underscores, dots, and dashes"
    return None


def dir_exists(value: str) -> str | None:
    """Check that a path points to an existing directory."""
    if not value:
        return None
    path = os.path.abspath(value)
    if not os.path.exists(path):
        return "directory does not exist"
    if not os.path.isdir(path):
        return "not a directory"
    return None


def executable_exists(value: str) -> str | None:
    """Check that a command is in PATH or is a path to an executable file."""
    if value and shutil.which(value) is None:
        return "executable file was not found"
    return None


def not_blank(value: str) -> str | None:
    """Check that a string is not empty or whitespace only."""
    if not value.strip():
        return "cannot be blank"
    return None
