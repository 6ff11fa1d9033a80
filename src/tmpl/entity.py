"""Lifecycle shared by tmux sessions, windows and panes."""

from __future__ import annotations

from enum import StrEnum
from typing import TYPE_CHECKING, ClassVar

from tmpl.errors import (
    EntityStateError,
    MissingReferenceError,
    NotAppliedError,
    ParseError,
    SessionClosedError,
)
from tmpl.output import OutputRecord, parse_output

if TYPE_CHECKING:
    from tmpl.context import Context
    from tmpl.runner import Runner


class State(StrEnum):
    """Lifecycle state of a session, window or pane."""

    NEW = "new"  # Constructed, not yet created in tmux
    APPLIED = "applied"  # Created with a tmux command
    CLOSED = "closed"  # Removed with a tmux command


class Entity:
    """Base class for tmux entities.

    Sub-classes declare the tmux output fields they capture in ``fields`` and
    the error raised when used before being applied in ``not_applied_error``.
    An entity's closed state is derived from its ancestors, so closing a
    session closes every window and pane below it.
    """

    kind: ClassVar[str] = "entity"
    fields: ClassVar[dict[str, str]] = {}
    not_applied_error: ClassVar[type[NotAppliedError]] = NotAppliedError

    def __init__(self, runner: Runner | None) -> None:
        if runner is None:
            raise MissingReferenceError("runner is nil")
        self._tmux = runner
        self._state = State.NEW
        self.id = ""

    @property
    def name(self) -> str:
        """Return the entity's fully qualified tmux target name."""
        raise NotImplementedError

    @property
    def state(self) -> State:
        """Return the effective lifecycle state, taking ancestors into account."""
        if self.is_closed():
            return State.CLOSED
        return self._state

    def is_applied(self) -> bool:
        """Return True if the entity has been created in tmux."""
        return self._state == State.APPLIED

    def is_closed(self) -> bool:
        """Return True if the entity or one of its ancestors is closed."""
        return self._state == State.CLOSED

    def run_commands(self, ctx: Context, *cmds: str) -> None:
        """Run shell commands in the entity with tmux send-keys.

        Each command is typed followed by a carriage return. Commands run in
        order and the first failure aborts the rest.

        Args:
            ctx: Cancellation context.
            *cmds: Shell commands to run. No-op if empty.

        Raises:
            EntityStateError: If the entity is not applied or is closed.
            CommandError: If a send-keys invocation fails.
        """
        ctx.check()

        if not cmds:
            return

        self._check_state()

        for cmd in cmds:
            self._tmux.run(ctx, "send-keys", "-t", self.name, cmd, "C-m")
            self._log(f"{self.kind} send-keys", cmd=f"{cmd}<cr>")

    def _check_state(self) -> None:
        """Raise unless the entity is applied and not closed."""
        if self.is_closed():
            raise SessionClosedError()
        if not self.is_applied():
            raise self.not_applied_error()

    def _create(self, ctx: Context, args: list[str]) -> None:
        """Run an entity-creating tmux command and capture the created entity.

        In dry-run mode the output is replaced by :meth:`_dry_run_record`.
        """
        output = self._tmux.run(ctx, *args)

        if self._tmux.dry_run:
            output = str(self._dry_run_record()).encode()

        records = parse_output(output)
        if not records:
            raise ParseError(f"{args[0]} command returned no output record")

        self._update(records[0])

    def _update(self, record: OutputRecord) -> None:
        """Copy non-empty record fields into attributes and mark as applied."""
        for key, value in record.items():
            attr = self.fields.get(key)
            if attr and value:
                setattr(self, attr, value)

        self._state = State.APPLIED

    def _dry_run_record(self) -> OutputRecord:
        raise NotImplementedError

    def _log(self, msg: str, **fields: object) -> None:
        self._tmux.log(msg, **fields)

    def __str__(self) -> str:
        return f"{self.kind} {self.name}"

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name!r} id={self.id!r} state={self.state}>"


def require_applied(entity: Entity, what: str) -> None:
    """Raise if a parent entity cannot have children created under it."""
    try:
        entity._check_state()
    except EntityStateError as e:
        raise type(e)(f"checking {what} state: {e}") from e
