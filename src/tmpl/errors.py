"""Exceptions raised by tmpl.

Every exception inherits from :class:`TmplError` so callers can catch all
tmpl failures with a single clause, while the sub-classes let them tell
precondition, command, parse, configuration and cancellation failures apart.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TypeVar

E = TypeVar("E", bound=BaseException)


class TmplError(Exception):
    """Base exception for all tmpl errors."""


class CancelledError(TmplError):
    """Raised when an operation is attempted on a cancelled context."""


class MissingReferenceError(TmplError, ValueError):
    """Raised when a required collaborator (runner, session, window) is missing."""


class EntityOptionError(TmplError, ValueError):
    """Raised when a session, window or pane is configured with invalid options."""


class EntityStateError(TmplError):
    """Base exception for operations on an entity in the wrong lifecycle state."""


class SessionClosedError(EntityStateError):
    """Raised when an entity belongs to a session that has been closed."""

    def __init__(self, message: str = "session is closed") -> None:
        super().__init__(message)


class NotAppliedError(EntityStateError):
    """Base exception for entities used before being applied."""


class SessionNotAppliedError(NotAppliedError):
    """Raised when an unapplied session is used."""

    def __init__(self, message: str = "session is not applied") -> None:
        super().__init__(message)


class WindowNotAppliedError(NotAppliedError):
    """Raised when an unapplied window is used."""

    def __init__(self, message: str = "window is not applied") -> None:
        super().__init__(message)


class PaneNotAppliedError(NotAppliedError):
    """Raised when an unapplied pane is used."""

    def __init__(self, message: str = "pane is not applied") -> None:
        super().__init__(message)


class CommandError(TmplError):
    """Raised when a tmux invocation fails to spawn or exits non-zero.

    Attributes:
        argv: The tmux arguments of the failed invocation.
        output: Combined stdout and stderr of the process.
        returncode: Exit status, or None if the process never ran.
    """

    def __init__(
        self,
        message: str,
        args: Sequence[str] = (),
        output: bytes = b"",
        returncode: int | None = None,
    ) -> None:
        self.argv = list(args)
        self.output = output
        self.returncode = returncode
        detail = output.decode("utf-8", errors="backslashreplace").strip()
        super().__init__(f"{message}: {detail}" if detail else message)

    @property
    def subcommand(self) -> str:
        """Return the tmux sub-command name (e.g. ``new-window``)."""
        return self.argv[0] if self.argv else ""


class ParseError(TmplError):
    """Raised when tmux command output does not follow the record format."""


class MalformedPairError(ParseError):
    """Raised when an output token lacks the key/value separator."""

    def __init__(self, token: str) -> None:
        self.token = token
        super().__init__(f"invalid key-value pair in command output: {token}")


class DuplicateKeyError(ParseError):
    """Raised when a key repeats within a single output line."""

    def __init__(self, key: str) -> None:
        self.key = key
        super().__init__(f"duplicate key in command output: {key}")


class ConfigError(TmplError):
    """Base exception for configuration loading problems."""


class ConfigNotFoundError(ConfigError):
    """Raised when no configuration file can be found."""

    def __init__(self, message: str = "configuration file not found") -> None:
        super().__init__(message)


class EmptyConfigError(ConfigError):
    """Raised when a configuration file is empty."""

    def __init__(self, message: str = "configuration file is empty") -> None:
        super().__init__(message)


class DecodeError(ConfigError):
    """Raised when a configuration file is not valid YAML or has the wrong shape."""

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"decoding error: {reason}")


class ConfigValidationError(ConfigError):
    """Raised when a decoded configuration fails validation.

    Attributes:
        errors: List of ``(field_path, message)`` tuples, one per problem.
    """

    def __init__(self, errors: list[tuple[str, str]]) -> None:
        self.errors = errors
        summary = "; ".join(f"{field} {message}" for field, message in errors)
        super().__init__(f"configuration is invalid: {summary}")


class ApplyError(TmplError):
    """Raised when applying a configuration fails.

    The triggering exception is available as ``__cause__``. If cleaning up the
    partially created session also failed, that error is kept in
    ``close_error``.
    """

    def __init__(self, message: str, close_error: BaseException | None = None) -> None:
        self.close_error = close_error
        if close_error is not None:
            message = f"{message}; closing failed session: {close_error}"
        super().__init__(message)


def find_cause(err: BaseException | None, exc_type: type[E]) -> E | None:
    """Find the first exception of a type in an exception's cause chain.

    Args:
        err: The exception to start from.
        exc_type: The exception type to look for.

    Returns:
        The matching exception, or None if the chain holds none.
    """
    seen: set[int] = set()
    while err is not None and id(err) not in seen:
        if isinstance(err, exc_type):
            return err
        seen.add(id(err))
        err = err.__cause__ or err.__context__
    return None
