"""tmux window panes."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, ClassVar

from tmpl.entity import Entity, State, require_applied
from tmpl.env import env_args
from tmpl.errors import MissingReferenceError, PaneNotAppliedError, SessionClosedError
from tmpl.output import OutputRecord, output_format

if TYPE_CHECKING:
    from tmpl.context import Context
    from tmpl.runner import Runner
    from tmpl.session import Session
    from tmpl.window import Window

PANE_OUTPUT_FORMAT = output_format("pane_id", "pane_path", "pane_index", "pane_width", "pane_height")


@dataclass
class PaneOptions:
    """Options for a :class:`Pane`.

    ``size`` is passed to split-window's ``-l`` flag and may be a number of
    cells or a percentage (``"30%"``). Panes split vertically (top/bottom)
    unless ``horizontal`` is set.
    """

    path: str = ""
    size: str = ""
    commands: list[str] = field(default_factory=list)
    env: dict[str, str] = field(default_factory=dict)
    horizontal: bool = False
    active: bool = False

    def with_commands(self, *cmds: str) -> PaneOptions:
        """Append commands to run in the pane after it is created."""
        self.commands.extend(cmds)
        return self


class Pane(Entity):
    """A tmux pane belonging to a window and optionally split from another pane.

    The window and the parent pane, if any, must be applied before the pane
    can be constructed. The pane is not created in tmux until
    :meth:`apply` is called.
    """

    kind: ClassVar[str] = "pane"
    fields: ClassVar[dict[str, str]] = {
        "pane_id": "id",
        "pane_path": "path",
        "pane_index": "index",
        "pane_width": "width",
        "pane_height": "height",
    }
    not_applied_error = PaneNotAppliedError

    def __init__(
        self,
        runner: Runner | None,
        window: Window | None,
        parent: Pane | None = None,
        options: PaneOptions | None = None,
    ) -> None:
        super().__init__(runner)

        if window is None:
            raise MissingReferenceError("window is nil")

        require_applied(window, "window")

        if parent is not None:
            require_applied(parent, "parent pane")

        opts = options or PaneOptions()
        self.window = window
        self.parent = parent
        self.path = opts.path
        self.size = opts.size
        self.commands = list(opts.commands)
        self.env = dict(opts.env)
        self.horizontal = opts.horizontal
        self.active = opts.active
        self.index = ""
        self.width = ""
        self.height = ""
        self.panes: list[Pane] = []

    @property
    def session(self) -> Session:
        """Return the session the pane belongs to."""
        return self.window.session

    @property
    def name(self) -> str:
        """Return the fully qualified name, ``session:window.index``.

        The index is the one tmux assigned on creation, so nested panes are
        named after their window, not their parent pane.
        """
        return f"{self.window.name}.{self.index}"

    @property
    def num_panes(self) -> int:
        """Return the number of panes split directly from this pane."""
        return len(self.panes)

    def ancestors(self) -> list[Pane]:
        """Return the parent panes from the outermost to the direct parent."""
        chain: list[Pane] = []
        parent = self.parent
        while parent is not None:
            chain.append(parent)
            parent = parent.parent
        chain.reverse()
        return chain

    def is_closed(self) -> bool:
        return self._state == State.CLOSED or self.window.is_closed()

    def apply(self, ctx: Context) -> None:
        """Create the pane with tmux split-window.

        The pane splits its parent pane if it has one, otherwise its window.
        After creation the session's pane hook commands and the pane's own
        commands are run.

        No-op if the pane is already applied.

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

        target = self.parent.name if self.parent is not None else self.window.name

        args = ["split-window", "-d", "-P", "-F", PANE_OUTPUT_FORMAT, "-t", target]
        args.extend(self.env_args())

        if self.path:
            args.extend(["-c", self.path])

        if self.size:
            args.extend(["-l", self.size])

        if self.horizontal:
            args.append("-h")

        self._create(ctx, args)

        if self.parent is not None:
            self.parent.panes.append(self)
        self.window._add_pane(self)

        self._log("pane created")

        self.run_commands(ctx, *self.session.pane_commands(), *self.commands)

    def select(self, ctx: Context) -> None:
        """Select the pane with tmux select-pane.

        Raises:
            EntityStateError: If the pane is not applied or is closed.
            CommandError: If select-pane fails.
        """
        ctx.check()
        self._check_state()

        self._tmux.run(ctx, "select-pane", "-t", self.name)
        self._log("pane selected")

    def env_args(self) -> list[str]:
        """Return ``-e`` arguments for the environment inherited by the pane."""
        chain = [self.session.env, self.window.env]
        chain.extend(p.env for p in self.ancestors())
        chain.append(self.env)
        return env_args(*chain)

    def _dry_run_record(self) -> OutputRecord:
        return OutputRecord(
            pane_id=f"%{self.session.num_panes + 1}",
            pane_path=self.path,
            pane_index=str(self.window.num_panes + 1),
            pane_width="40",
            pane_height="12",
        )

    def _log(self, msg: str, **fields: object) -> None:
        self._tmux.log(
            msg,
            **fields,
            session=self.session.name,
            window=self.window.name,
            pane=self.name,
            pane_width=self.width,
            pane_height=self.height,
        )
