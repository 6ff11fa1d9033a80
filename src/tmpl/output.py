"""Formatting and parsing of tmux command output records.

tmux commands that create or list entities are invoked with ``-F`` and a
format string built by :func:`output_format`, which makes tmux print one line
per entity as comma-separated ``key:value`` pairs::

    session_id:$1,session_name:project,session_path:/home/user/project

:func:`parse_output` turns that output back into :class:`OutputRecord` mappings.
"""

from tmpl.errors import DuplicateKeyError, MalformedPairError


class OutputRecord(dict[str, str]):
    """A single parsed line of tmux output, mapping field names to values.

    Field order is not significant; look values up by key.
    """

    def __str__(self) -> str:
        return ",".join(f"{key}:{value}" for key, value in self.items())


def format_var(name: str) -> str:
    """Return the tmux placeholder for a format variable (e.g. ``#{pane_id}``)."""
    return f"#{{{name}}}"


def output_format(*names: str) -> str:
    """Build a tmux ``-F`` format string for the given format variables.

    Args:
        *names: tmux format variable names, e.g. ``session_id``.

    Returns:
        A format string like ``session_id:#{session_id},session_name:#{session_name}``.
    """
    return ",".join(f"{name}:{format_var(name)}" for name in names)


def parse_output(output: bytes) -> list[OutputRecord]:
    """Parse tmux command output into output records.

    Args:
        output: Raw output following the :func:`output_format` layout.

    Returns:
        One record per non-blank line. Empty or all-whitespace output returns
        an empty list.

    Raises:
        MalformedPairError: If a token has no ``:`` separator.
        DuplicateKeyError: If a key repeats within a line.
    """
    text = output.decode("utf-8", errors="backslashreplace").strip()
    if not text:
        return []

    records: list[OutputRecord] = []
    for line in text.split("\n"):
        line = line.strip()
        if not line:
            continue

        record = OutputRecord()
        for token in line.split(","):
            key, sep, value = token.partition(":")
            if not sep:
                raise MalformedPairError(token)
            if key in record:
                raise DuplicateKeyError(key)
            record[key] = value

        records.append(record)

    return records
