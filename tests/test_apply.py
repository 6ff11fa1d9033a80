"""Tests for tmpl.apply module."""

from pathlib import Path

import pytest
from conftest import FakeTmux

from tmpl.apply import apply_config, make_pane_options, make_window_options
from tmpl.config import Config, PaneConfig, SessionConfig, WindowConfig
from tmpl.context import Context
from tmpl.errors import (
    ApplyError,
    CancelledError,
    CommandError,
    ConfigValidationError,
    find_cause,
)
from tmpl.runner import Runner


@pytest.fixture
def config(tmp_path: Path) -> Config:
    """Configuration with two windows, one of them split twice."""
    return Config(
        session=SessionConfig(
            name="main",
            path=str(tmp_path),
            on_any="any",
            env={"APP": "1"},
            windows=[
                WindowConfig(name="code", path=str(tmp_path), command="vim"),
                WindowConfig(
                    name="shell",
                    path=str(tmp_path),
                    active=True,
                    panes=[
                        PaneConfig(
                            path=str(tmp_path),
                            command="htop",
                            horizontal=True,
                            panes=[PaneConfig(path=str(tmp_path), commands=["tail -f log"], active=True)],
                        ),
                    ],
                ),
            ],
        ),
    )


class TestApplyConfig:
    """Tests for apply_config function."""

    def test_creates_session(self, config: Config, runner: Runner, fake_tmux: FakeTmux, ctx: Context) -> None:
        """Should create session, windows and panes in order and select the active ones."""
        session = apply_config(ctx, config, runner)

        assert session.is_applied() is True
        assert [w.name for w in session.windows] == ["main:code", "main:shell"]
        assert [p.name for p in session.windows[1].panes] == ["main:shell.1", "main:shell.2"]

        creating = [s for s in fake_tmux.subcommands() if s in ("new-session", "new-window", "split-window")]
        assert creating == ["new-session", "new-window", "new-window", "split-window", "split-window"]
        assert fake_tmux.calls[-2:] == [
            ["select-window", "-t", "main:shell"],
            ["select-pane", "-t", "main:shell.2"],
        ]

    def test_does_not_attach(self, config: Config, runner: Runner, fake_tmux: FakeTmux, ctx: Context) -> None:
        """Should leave attaching to the caller."""
        apply_config(ctx, config, runner)
        assert "attach-session" not in fake_tmux.subcommands()
        assert "switch-client" not in fake_tmux.subcommands()

    def test_existing_session_is_returned(self, config: Config, ctx: Context) -> None:
        """Should return the existing session without creating anything."""
        fake = FakeTmux(sessions=("other", "main"))
        session = apply_config(ctx, config, Runner(command_runner=fake))

        assert session.name == "main"
        assert session.id == "$2"
        assert session.is_applied() is True
        assert fake.subcommands() == ["list-sessions"]

    def test_idempotent(self, config: Config, runner: Runner, fake_tmux: FakeTmux, ctx: Context) -> None:
        """Should not create anything when applied a second time."""
        first = apply_config(ctx, config, runner)
        calls = len(fake_tmux.calls)

        second = apply_config(ctx, config, runner)

        assert second.name == "main"
        assert first.id == second.id
        assert fake_tmux.subcommands()[calls:] == ["list-sessions"]

    def test_invalid_config(self, runner: Runner, fake_tmux: FakeTmux, ctx: Context) -> None:
        """Should refuse an invalid configuration without running tmux."""
        config = Config(session=SessionConfig(name="bad name"))

        with pytest.raises(ApplyError, match="invalid configuration file") as exc_info:
            apply_config(ctx, config, runner)

        assert find_cause(exc_info.value, ConfigValidationError) is not None
        assert fake_tmux.calls == []

    def test_cancelled(self, config: Config, runner: Runner, fake_tmux: FakeTmux) -> None:
        """Should not start with a cancelled context."""
        ctx = Context()
        ctx.cancel()

        with pytest.raises(CancelledError):
            apply_config(ctx, config, runner)
        assert fake_tmux.calls == []

    def test_list_sessions_failure(self, config: Config, runner: Runner, fake_tmux: FakeTmux, ctx: Context) -> None:
        """Should fail when sessions cannot be listed."""
        fake_tmux.fail("list-sessions", b"permission denied")

        with pytest.raises(ApplyError, match="getting current tmux sessions"):
            apply_config(ctx, config, runner)
        assert "new-session" not in fake_tmux.subcommands()

    def test_window_failure_closes_session(
        self, config: Config, runner: Runner, fake_tmux: FakeTmux, ctx: Context
    ) -> None:
        """Should kill the session exactly once when a window fails."""
        fake_tmux.fail("new-window", b"create window failed")

        with pytest.raises(ApplyError, match="applying window configuration") as exc_info:
            apply_config(ctx, config, runner)

        assert fake_tmux.commands("kill-session") == [["kill-session", "-t", "main"]]
        command_error = find_cause(exc_info.value, CommandError)
        assert command_error is not None
        assert command_error.subcommand == "new-window"
        assert exc_info.value.close_error is None

    def test_close_failure_is_kept(self, config: Config, runner: Runner, fake_tmux: FakeTmux, ctx: Context) -> None:
        """Should report both the failure and the cleanup failure."""
        fake_tmux.fail("split-window", b"no space for new pane")
        fake_tmux.fail("kill-session", b"can't find session")

        with pytest.raises(ApplyError) as exc_info:
            apply_config(ctx, config, runner)

        err = exc_info.value
        assert len(fake_tmux.commands("kill-session")) == 1
        cause = find_cause(err, CommandError)
        assert cause is not None
        assert cause.subcommand == "split-window"
        assert isinstance(err.close_error, CommandError)
        assert err.close_error.subcommand == "kill-session"
        assert "closing failed session" in str(err)
        assert any("closing failed session" in note for note in getattr(err.__cause__, "__notes__", []))

    def test_session_failure_does_not_close(
        self, config: Config, runner: Runner, fake_tmux: FakeTmux, ctx: Context
    ) -> None:
        """Should not kill a session that was never created."""
        fake_tmux.fail("new-session", b"duplicate session")

        with pytest.raises(ApplyError, match="applying session main"):
            apply_config(ctx, config, runner)
        assert fake_tmux.commands("kill-session") == []

    def test_select_failure_closes_session(
        self, config: Config, runner: Runner, fake_tmux: FakeTmux, ctx: Context
    ) -> None:
        """Should kill the session when the active window cannot be selected."""
        fake_tmux.fail("select-window")

        with pytest.raises(ApplyError, match="selecting active window"):
            apply_config(ctx, config, runner)
        assert len(fake_tmux.commands("kill-session")) == 1


class TestApplyConfigDryRun:
    """Tests for apply_config in dry-run mode."""

    def test_synthesizes_everything(self, config: Config, dry_runner: Runner, fake_tmux: FakeTmux) -> None:
        """Should apply the whole tree without invoking tmux."""
        session = apply_config(Context(), config, dry_runner)

        assert fake_tmux.calls == []
        assert session.id == "$0"
        assert [w.id for w in session.windows] == ["@1", "@2"]
        assert session.num_panes == config.num_panes() == 2
        panes = session.windows[1].panes
        assert [p.id for p in panes] == ["%1", "%2"]
        assert all(p.is_applied() for p in panes)

    def test_single_window_selects_base_pane(self, tmp_path: Path, ctx: Context) -> None:
        """Should select the window and its base index pane."""
        config = Config(
            session=SessionConfig(name="main", path=str(tmp_path), windows=[WindowConfig(name="code")]),
        )
        calls: list[tuple[str, ...]] = []
        runner = Runner(dry_run=True)
        real_run = runner.run

        def record(run_ctx: Context, *args: str) -> bytes:
            calls.append(args)
            return real_run(run_ctx, *args)

        runner.run = record  # type: ignore[method-assign]
        apply_config(ctx, config, runner)

        assert [c[0] for c in calls] == [
            "list-sessions",
            "new-session",
            "new-window",
            "select-window",
            "show-option",
            "select-pane",
        ]
        assert calls[-1] == ("select-pane", "-t", "main:code.0")


class TestOptionBuilders:
    """Tests for configuration to options conversion."""

    def test_window_command_runs_first(self) -> None:
        """Should put command before commands."""
        opts = make_window_options(WindowConfig(name="code", command="one", commands=["two", "three"]))
        assert opts.commands == ["one", "two", "three"]

    def test_pane_options(self) -> None:
        """Should carry over every pane setting."""
        opts = make_pane_options(
            PaneConfig(path="/tmp", size="20", horizontal=True, active=True, env={"A": "1"}, commands=["x"]),
        )
        assert (opts.path, opts.size, opts.horizontal, opts.active) == ("/tmp", "20", True, True)
        assert opts.env == {"A": "1"}
        assert opts.commands == ["x"]
