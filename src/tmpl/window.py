"""tmux windows."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, ClassVar

from tmpl.entity import Entity, State, require_applied
from tmpl.env import env_args
from tmpl.errors import EntityOptionError, MissingReferenceError, SessionClosedError, WindowNotAppliedError
from tmpl.output import OutputRecord, output_format

if TYPE_CHECKING:
    from tmpl.context import Context
    from tmpl.pane import Pane
    from tmpl.runner import Runner
    from tmpl.session import Session

WINDOW_OUTPUT_FORMAT = output_format(
    "window_id",
    "window_name",
    "window_path",
    "window_index",
    "window_width",
    "window_height",
)


@dataclass
class WindowOptions:
    """Options for a :class:`Window`."""

    name: str
    path: str = ""
    commands: list[str] = field(default_factory=list)
    env: dict[str, str] = field(default_factory=dict)
    active: bool = False

    def __post_init__(self) -> None:
        if not self.name:
            raise EntityOptionError("window name cannot be empty")

    def with_commands(self, *cmds: str) -> WindowOptions:
        """Append commands to run in the window after it is created."""
        self.commands.extend(cmds)
        return self


class Window(Entity):
    """A tmux window belonging to a session.

    The session must be applied before windows can be constructed under it.
    The window is not created in tmux until :meth:`apply` is called.
    """

    kind: ClassVar[str] = "window"
    fields: ClassVar[dict[str, str]] = {
        "window_id": "id",
        "window_name": "_name",
        "window_path": "path",
        "window_index": "index",
        "window_width": "width",
        "window_height": "height",
    }
    not_applied_error = WindowNotAppliedError

    def __init__(self, runner: Runner | None, session: Session | None, options: WindowOptions) -> None:
        super().__init__(runner)

        if session is None:
            raise MissingReferenceError("session is nil")

        require_applied(session, "session")

        self.session = session
        self._name = options.name
        self.path = options.path
        self.commands = list(options.commands)
        self.env = dict(options.env)
        self.active = options.active
        self.index = ""
        self.width = ""
        self.height = ""
        self.panes: list[Pane] = []

    @property
    def name(self) -> str:
        """Return the fully qualified name, ``session:window``."""
        return f"{self.session.name}:{self._name}"

    @property
    def num_panes(self) -> int:
        """Return the number of panes created in the window, nested panes included."""
        return len(self.panes)

    def is_closed(self) -> bool:
        return self._state == State.CLOSED or self.session.is_closed()

    def apply(self, ctx: Context) -> None:
        """Create the window with tmux new-window.

        The session's first window is created with ``-k`` at the session's
        first index, replacing the initial window made by new-session. After
        creation the session's window hook commands and the window's own
        commands are run.

        No-op if the window is already applied.

        Raises:
            CancelledError: If the context is cancelled.
            SessionClosedError: If the session has been closed.
            CommandError: If a tmux command fails.
            ParseError: If the command output cannot be parsed.
        """
        ctx.check()

        if self.is_closed():
            raise SessionClosedError()

        if self.is_applied():
            return

        args = ["new-window", "-P", "-F", WINDOW_OUTPUT_FORMAT]

        if self.session.num_windows == 0:
            args.extend(["-k", "-t", f"{self.session.name}:^"])
        else:
            args.extend(["-t", f"{self.session.name}:"])

        args.extend(env_args(self.session.env, self.env))
        args.extend(["-n", self._name])

        if self.path:
            args.extend(["-c", self.path])

        self._create(ctx, args)
        self.session._add_window(self)
        self._log("window created")

        self.run_commands(ctx, *self.session.window_commands(), *self.commands)

    def select(self, ctx: Context) -> None:
        """Select the window with tmux select-window, then its active pane.

        Raises:
            EntityStateError: If the window is not applied or is closed.
            CommandError: If a tmux command fails.
        """
        ctx.check()
        self._check_state()

        self._tmux.run(ctx, "select-window", "-t", self.name)
        self._log("window selected")

        self.select_pane(ctx)

    def select_pane(self, ctx: Context) -> None:
        """Select the window's active pane.

        The last pane configured as active is selected. Without an active
        pane, the pane at tmux's ``pane-base-index`` is selected; the index is
        a global tmux option and is queried rather than assumed.
        """
        ctx.check()
        self._check_state()

        active: Pane | None = None
        for pane in self.panes:
            if pane.active:
                active = pane

        if active is not None:
            active.select(ctx)
            return

        base_index = self._tmux.run(ctx, "show-option", "-gqv", "pane-base-index").strip().decode() or "0"
        self._tmux.run(ctx, "select-pane", "-t", f"{self.name}.{base_index}")
        self._log("pane selected", pane=f"{self.name}.{base_index}")

    def _add_pane(self, pane: Pane) -> None:
        self.panes.append(pane)

    def _dry_run_record(self) -> OutputRecord:
        window_id = self.session.num_windows + 1
        return OutputRecord(
            window_id=f"@{window_id}",
            window_name=self._name,
            window_path=self.path,
            window_index=str(window_id),
            window_width="80",
            window_height="24",
        )

    def _log(self, msg: str, **fields: object) -> None:
        self._tmux.log(msg, **fields, session=self.session.name, window=self.name)
