"""tmux sessions."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, ClassVar

from tmpl.context import Context, background
from tmpl.entity import Entity, State
from tmpl.env import env_args, in_tmux
from tmpl.errors import CommandError, MissingReferenceError, SessionClosedError, SessionNotAppliedError
from tmpl.output import OutputRecord, output_format, parse_output

if TYPE_CHECKING:
    from tmpl.runner import Runner
    from tmpl.window import Window

SESSION_OUTPUT_FORMAT = output_format("session_id", "session_name", "session_path")

# list-sessions output when no tmux server is running yet.
_NO_SERVER_MARKERS = (b"no server running", b"error connecting to")


@dataclass
class SessionOptions:
    """Options for a :class:`Session`.

    The hook commands run in created windows and panes: ``on_any`` runs first
    in every window and pane, followed by ``on_window`` in windows and
    ``on_pane`` in panes.
    """

    name: str = ""
    path: str = ""
    on_window: str = ""
    on_pane: str = ""
    on_any: str = ""
    env: dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.on_window = self.on_window.strip()
        self.on_pane = self.on_pane.strip()
        self.on_any = self.on_any.strip()


class Session(Entity):
    """A tmux session.

    The session is not created in tmux until :meth:`apply` is called.
    """

    kind: ClassVar[str] = "session"
    fields: ClassVar[dict[str, str]] = {
        "session_id": "id",
        "session_name": "_name",
        "session_path": "path",
    }
    not_applied_error = SessionNotAppliedError

    def __init__(self, runner: Runner | None, options: SessionOptions | None = None) -> None:
        super().__init__(runner)
        opts = options or SessionOptions()
        self._name = opts.name
        self.path = opts.path
        self.env = dict(opts.env)
        self.on_window = opts.on_window
        self.on_pane = opts.on_pane
        self.on_any = opts.on_any
        self.windows: list[Window] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def num_windows(self) -> int:
        """Return the number of windows in the session."""
        return len(self.windows)

    @property
    def num_panes(self) -> int:
        """Return the number of panes across all windows in the session."""
        return sum(w.num_panes for w in self.windows)

    def apply(self, ctx: Context) -> None:
        """Create the session with tmux new-session.

        No-op if the session is already applied.

        Raises:
            CancelledError: If the context is cancelled.
            SessionClosedError: If the session has been closed.
            CommandError: If new-session fails.
            ParseError: If the command output cannot be parsed.
        """
        ctx.check()

        if self.is_closed():
            raise SessionClosedError()

        if self.is_applied():
            return

        args = ["new-session", "-d", "-P", "-F", SESSION_OUTPUT_FORMAT]

        if self._name:
            args.extend(["-s", self._name])

        if self.path:
            args.extend(["-c", self.path])

        args.extend(env_args(self.env))

        self._create(ctx, args)
        self._log("session created")

    def attach(self, ctx: Context) -> None:
        """Attach the current client to the session.

        The current process is replaced by the tmux client, so this never
        returns on success. When already running inside tmux, switch-client is
        used instead of attach-session.

        Raises:
            EntityStateError: If the session is not applied or is closed.
            CommandError: If tmux cannot be executed.
        """
        ctx.check()
        self._check_state()

        if in_tmux():
            self._log("switching client to session")
            self._tmux.execve("switch-client", "-t", self._name)
            return

        self._log("attaching client to session")
        self._tmux.execve("attach-session", "-t", self._name)

    def select_active(self, ctx: Context) -> None:
        """Select the active window and its active pane.

        The last window configured as active is selected; if no window is
        active the first window is selected. No-op without windows.
        """
        ctx.check()
        self._check_state()

        if not self.windows:
            return

        active = self.windows[0]
        for window in self.windows[1:]:
            if window.active:
                active = window

        active.select(ctx)

    def close(self, ctx: Context | None = None) -> None:
        """Kill the session with tmux kill-session.

        No-op if the session is already closed or was never applied. After
        closing, the session's windows and panes all report as closed.

        Raises:
            CommandError: If kill-session fails.
        """
        if self.is_closed() or not self.is_applied():
            return

        self._tmux.run(ctx or background(), "kill-session", "-t", self._name)

        self._state = State.CLOSED
        self.windows = []

        self._tmux.debug("session closed", session=self._name)

    def window_commands(self) -> list[str]:
        """Return the hook commands to run in every created window."""
        return [cmd for cmd in (self.on_any, self.on_window) if cmd]

    def pane_commands(self) -> list[str]:
        """Return the hook commands to run in every created pane."""
        return [cmd for cmd in (self.on_any, self.on_pane) if cmd]

    def _add_window(self, window: Window) -> None:
        self.windows.append(window)

    def _dry_run_record(self) -> OutputRecord:
        return OutputRecord(session_id="$0", session_name=self._name, session_path=self.path)

    def _log(self, msg: str, **fields: object) -> None:
        if self.num_windows:
            fields["windows"] = self.num_windows
        if self.num_panes:
            fields["panes"] = self.num_panes
        fields["session"] = self._name
        self._tmux.log(msg, **fields)


def get_sessions(ctx: Context, runner: Runner | None) -> list[Session]:
    """List the current tmux sessions with tmux list-sessions.

    A tmux server that is not running yet has no sessions, so its
    "no server running" failure returns an empty list.

    Returns:
        Applied sessions, one per line of list-sessions output.

    Raises:
        CancelledError: If the context is cancelled.
        MissingReferenceError: If runner is None.
        CommandError: If list-sessions fails.
        ParseError: If the command output cannot be parsed.
    """
    ctx.check()

    if runner is None:
        raise MissingReferenceError("runner is nil")

    try:
        output = runner.run(ctx, "list-sessions", "-F", SESSION_OUTPUT_FORMAT)
    except CommandError as e:
        if any(marker in e.output for marker in _NO_SERVER_MARKERS):
            return []
        raise

    sessions: list[Session] = []
    for record in parse_output(output):
        session = Session(runner)
        session._update(record)
        sessions.append(session)

    return sessions
