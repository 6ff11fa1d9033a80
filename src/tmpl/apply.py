"""Apply a session configuration to tmux."""

from __future__ import annotations

from tmpl.config import Config, PaneConfig, SessionConfig, WindowConfig
from tmpl.context import Context
from tmpl.errors import ApplyError, ConfigValidationError, TmplError
from tmpl.pane import Pane, PaneOptions
from tmpl.runner import Runner
from tmpl.session import Session, SessionOptions, get_sessions
from tmpl.window import Window, WindowOptions


def apply_config(ctx: Context, config: Config, runner: Runner) -> Session:
    """Create a tmux session from a configuration.

    If a session with the configured name already exists it is assumed to be
    in the right state and returned as is. Otherwise the session, its windows
    and their panes are created in order, and the active window and pane are
    selected. The session is not attached.

    If anything fails after the session has been created, the session is
    killed so no half-built session is left behind.

    Args:
        ctx: Cancellation context.
        config: Configuration to apply.
        runner: tmux command runner.

    Returns:
        The existing or newly created session.

    Raises:
        CancelledError: If the context is cancelled before starting.
        ApplyError: If the configuration is invalid or a tmux operation fails.
            The triggering error is available as ``__cause__``.
    """
    ctx.check()

    try:
        config.check()
    except ConfigValidationError as e:
        raise ApplyError(f"invalid configuration file: {e}") from e

    try:
        sessions = get_sessions(ctx, runner)
    except TmplError as e:
        raise ApplyError(f"getting current tmux sessions: {e}") from e

    for existing in sessions:
        if existing.name == config.session.name:
            runner.log("session already exists", session=existing.name)
            return existing

    session = Session(runner, make_session_options(config.session))

    try:
        session.apply(ctx)
    except TmplError as e:
        raise _fatal(session, f"applying {session}: {e}", e) from e

    for window_cfg in config.session.windows:
        try:
            _apply_window(ctx, runner, session, window_cfg)
        except TmplError as e:
            raise _fatal(session, f"applying window configuration: {e}", e) from e

    try:
        session.select_active(ctx)
    except TmplError as e:
        raise _fatal(session, f"selecting active window: {e}", e) from e

    return session


def _fatal(session: Session, message: str, err: BaseException) -> ApplyError:
    """Close a partially created session and build the error to raise."""
    try:
        session.close()
    except TmplError as close_err:
        err.add_note(f"closing failed session: {close_err}")
        return ApplyError(message, close_error=close_err)

    return ApplyError(message)


def _apply_window(ctx: Context, runner: Runner, session: Session, cfg: WindowConfig) -> Window:
    window = Window(runner, session, make_window_options(cfg))

    try:
        window.apply(ctx)
    except TmplError as e:
        raise ApplyError(f"applying {window}: {e}") from e

    for pane_cfg in cfg.panes:
        _apply_pane(ctx, runner, window, None, pane_cfg)

    return window


def _apply_pane(ctx: Context, runner: Runner, window: Window, parent: Pane | None, cfg: PaneConfig) -> Pane:
    pane = Pane(runner, window, parent, make_pane_options(cfg))

    try:
        pane.apply(ctx)
    except TmplError as e:
        raise ApplyError(f"applying {pane}: {e}") from e

    for child_cfg in cfg.panes:
        _apply_pane(ctx, runner, window, pane, child_cfg)

    return pane


def make_session_options(cfg: SessionConfig) -> SessionOptions:
    """Convert a session configuration to session options."""
    return SessionOptions(
        name=cfg.name,
        path=cfg.path,
        on_window=cfg.on_window,
        on_pane=cfg.on_pane,
        on_any=cfg.on_any,
        env=dict(cfg.env),
    )


def make_window_options(cfg: WindowConfig) -> WindowOptions:
    """Convert a window configuration to window options.

    ``command`` runs before the entries of ``commands``.
    """
    opts = WindowOptions(name=cfg.name, path=cfg.path, env=dict(cfg.env), active=cfg.active)
    if cfg.command:
        opts.with_commands(cfg.command)
    return opts.with_commands(*cfg.commands)


def make_pane_options(cfg: PaneConfig) -> PaneOptions:
    """Convert a pane configuration to pane options.

    ``command`` runs before the entries of ``commands``.
    """
    opts = PaneOptions(
        path=cfg.path,
        size=cfg.size,
        env=dict(cfg.env),
        horizontal=cfg.horizontal,
        active=cfg.active,
    )
    if cfg.command:
        opts.with_commands(cfg.command)
    return opts.with_commands(*cfg.commands)
