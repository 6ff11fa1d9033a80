"""Shared fixtures for tmpl tests."""

import logging
import subprocess
from collections.abc import Iterator
from pathlib import Path

import pytest

from tmpl.context import Context
from tmpl.runner import Runner


class FakeTmux:
    """Command runner that simulates a tmux server.

    Entity-creating commands answer with output records holding incrementing
    identities, so sessions, windows and panes can be applied without tmux.
    Calls are recorded in order in ``calls``.
    """

    def __init__(self, sessions: tuple[str, ...] = (), base_index: str = "0") -> None:
        self.calls: list[list[str]] = []
        self.sessions = list(sessions)
        self.base_index = base_index
        self.failures: dict[str, bytes] = {}
        self.outputs: dict[str, bytes] = {}
        self._windows = 0
        self._panes = 0
        self._window_panes: dict[str, int] = {}

    def fail(self, subcommand: str, output: bytes = b"something went wrong") -> None:
        """Make every invocation of a sub-command exit with status 1."""
        self.failures[subcommand] = output

    def stub(self, subcommand: str, output: bytes) -> None:
        """Answer every invocation of a sub-command with fixed output."""
        self.outputs[subcommand] = output

    def commands(self, subcommand: str) -> list[list[str]]:
        """Return recorded calls of a sub-command."""
        return [c for c in self.calls if c and c[0] == subcommand]

    def subcommands(self) -> list[str]:
        """Return the sub-command of every recorded call."""
        return [c[0] for c in self.calls]

    def __call__(self, ctx: Context, name: str, args: list[str]) -> bytes:
        self.calls.append(list(args))
        sub = args[0]

        if sub in self.failures:
            raise subprocess.CalledProcessError(1, [name, *args], output=self.failures[sub])

        if sub in self.outputs:
            return self.outputs[sub]

        handler = getattr(self, "_" + sub.replace("-", "_"), None)
        if handler is None:
            return b""
        return handler(args)

    def _list_sessions(self, args: list[str]) -> bytes:
        if not self.sessions:
            raise subprocess.CalledProcessError(
                1, ["tmux", *args], output=b"no server running on /tmp/tmux-1000/default\n"
            )
        lines = [f"session_id:${i},session_name:{n},session_path:/tmp" for i, n in enumerate(self.sessions, 1)]
        return ("\n".join(lines) + "\n").encode()

    def _new_session(self, args: list[str]) -> bytes:
        name = _flag(args, "-s") or "0"
        path = _flag(args, "-c") or "/tmp"
        self.sessions.append(name)
        return f"session_id:${len(self.sessions)},session_name:{name},session_path:{path}\n".encode()

    def _new_window(self, args: list[str]) -> bytes:
        self._windows += 1
        name = _flag(args, "-n")
        path = _flag(args, "-c")
        return (
            f"window_id:@{self._windows},window_name:{name},window_path:{path},"
            f"window_index:{self._windows},window_width:80,window_height:24\n"
        ).encode()

    def _split_window(self, args: list[str]) -> bytes:
        self._panes += 1
        target = _flag(args, "-t")
        window = target.rsplit(".", 1)[0] if "." in target.split(":", 1)[-1] else target
        index = self._window_panes.get(window, 0) + 1
        self._window_panes[window] = index
        path = _flag(args, "-c")
        return (
            f"pane_id:%{self._panes},pane_path:{path},pane_index:{index},pane_width:40,pane_height:12\n"
        ).encode()

    def _show_option(self, args: list[str]) -> bytes:
        return f"{self.base_index}\n".encode()


def _flag(args: list[str], flag: str) -> str:
    try:
        return args[args.index(flag) + 1]
    except (ValueError, IndexError):
        return ""


@pytest.fixture
def fake_tmux() -> FakeTmux:
    """Simulated tmux server with no sessions."""
    return FakeTmux()


@pytest.fixture
def runner(fake_tmux: FakeTmux) -> Runner:
    """Runner backed by the simulated tmux server."""
    return Runner(command_runner=fake_tmux)


@pytest.fixture
def dry_runner(fake_tmux: FakeTmux) -> Runner:
    """Runner in dry-run mode; the simulated server must never be called."""
    return Runner(dry_run=True, command_runner=fake_tmux)


@pytest.fixture
def ctx() -> Context:
    """Fresh cancellation context."""
    return Context()


@pytest.fixture
def workdir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[Path]:
    """Temporary working directory, also exposed through TMPL_PWD."""
    project = tmp_path / "project"
    project.mkdir()
    monkeypatch.chdir(project)
    monkeypatch.setenv("TMPL_PWD", str(project))
    yield project


@pytest.fixture(autouse=True)
def reset_logging() -> Iterator[None]:
    """Undo CLI logging configuration so log capture keeps working."""
    yield
    logger = logging.getLogger("tmpl")
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)
    logger.propagate = True
