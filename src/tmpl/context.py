"""Cancellation context for tmux operations."""

import threading

from tmpl.errors import CancelledError


class Context:
    """Cancellation signal checked before every tmux invocation.

    Cancelling a context does not interrupt a tmux process that is already
    running; it only prevents the next invocation.
    """

    def __init__(self) -> None:
        self._event = threading.Event()
        self._reason = "context cancelled"

    def cancel(self, reason: str = "context cancelled") -> None:
        """Cancel the context."""
        if not self._event.is_set():
            self._reason = reason
            self._event.set()

    @property
    def cancelled(self) -> bool:
        """Return True if the context has been cancelled."""
        return self._event.is_set()

    @property
    def reason(self) -> str | None:
        """Return the cancellation reason, or None if not cancelled."""
        return self._reason if self.cancelled else None

    def check(self) -> None:
        """Raise CancelledError if the context has been cancelled."""
        if self._event.is_set():
            raise CancelledError(self._reason)


def background() -> Context:
    """Return a fresh context that is never cancelled by tmpl itself."""
    return Context()
