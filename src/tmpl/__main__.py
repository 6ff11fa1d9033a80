"""CLI entry point for tmpl."""

import logging
import signal
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Annotated, Any

import typer
from rich.console import Console

from tmpl import APP_NAME, __version__
from tmpl.apply import apply_config
from tmpl.config import Config, config_file_name, display_validation_errors, find_config_file, from_file
from tmpl.context import Context
from tmpl.errors import CancelledError, ConfigValidationError, DecodeError, TmplError, find_cause
from tmpl.log import configure_logging
from tmpl.paths import getwd
from tmpl.runner import Runner
from tmpl.scaffold import write_config

EXIT_ERROR = 1
EXIT_INVALID_CONFIG = 2

app = typer.Typer(
    name=APP_NAME,
    help="Create and attach tmux sessions from a YAML configuration file.",
    no_args_is_help=False,
)

console = Console()
err_console = Console(stderr=True)


@dataclass
class Options:
    """Options shared by all sub-commands."""

    config_path: Path | None = None
    dry_run: bool = False
    debug: bool = False
    quiet: bool = False
    json_output: bool = False


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"{APP_NAME} {__version__}")
        raise typer.Exit()


def build_runner(config: Config, dry_run: bool, logger: logging.Logger) -> Runner:
    """Create the tmux runner for a loaded configuration."""
    if dry_run:
        logger.info("DRY-RUN MODE ENABLED: no tmux commands will be executed and output is simulated")

    return Runner(
        tmux=config.tmux,
        tmux_options=config.tmux_options,
        dry_run=dry_run,
        log=logger.getChild("tmux"),
    )


def load_config(config_path: Path | None, logger: logging.Logger) -> Config:
    """Load the configuration file, searching upwards from the working directory if no path is given."""
    path = config_path or find_config_file(getwd())
    config = from_file(path)
    logger.info("configuration file loaded", extra={"fields": {"path": str(path)}})
    return config


@contextmanager
def _signal_context(ctx: Context) -> Iterator[None]:
    """Cancel the context on SIGINT or SIGTERM for the duration of the block."""

    def _handler(signum: int, frame: Any) -> None:
        name = signal.Signals(signum).name
        err_console.print(f"received signal: {name}; exiting...")
        ctx.cancel(f"received signal {name}")

    previous = {sig: signal.signal(sig, _handler) for sig in (signal.SIGINT, signal.SIGTERM)}
    try:
        yield
    finally:
        for sig, handler in previous.items():
            signal.signal(sig, handler)


def _exit_code(err: BaseException) -> int:
    if find_cause(err, ConfigValidationError) or find_cause(err, DecodeError):
        return EXIT_INVALID_CONFIG
    return EXIT_ERROR


def _run(opts: Options, action: Callable[[Context, logging.Logger], None]) -> None:
    """Run a sub-command action, mapping tmpl errors to exit codes."""
    logger = configure_logging(debug=opts.debug, quiet=opts.quiet, json_output=opts.json_output)
    ctx = Context()

    with _signal_context(ctx):
        try:
            action(ctx, logger)
        except TmplError as e:
            validation = find_cause(e, ConfigValidationError)
            if validation is not None and not opts.json_output:
                display_validation_errors(validation.errors, err_console)

            if find_cause(e, CancelledError) is not None and ctx.cancelled:
                logger.error("operation cancelled", extra={"fields": {"reason": ctx.reason}})
            else:
                logger.error(str(e), exc_info=opts.debug)

            raise typer.Exit(_exit_code(e)) from None


DebugOption = Annotated[
    bool,
    typer.Option("--debug", "-d", help="Enable debug logging, including every tmux command."),
]
QuietOption = Annotated[bool, typer.Option("--quiet", "-q", help="Only log warnings and errors.")]
JSONOption = Annotated[bool, typer.Option("--json", "-j", help="Log in JSON lines format.")]


def _options(ctx: typer.Context) -> Options:
    return ctx.obj if isinstance(ctx.obj, Options) else Options()


def _command_options(
    ctx: typer.Context,
    config_path: Path | None = None,
    dry_run: bool = False,
    debug: bool = False,
    quiet: bool = False,
    json_output: bool = False,
) -> Options:
    """Combine sub-command flags with the flags given before the sub-command."""
    opts = _options(ctx)
    opts.config_path = config_path or opts.config_path
    opts.dry_run = dry_run or opts.dry_run
    opts.debug = debug or opts.debug
    opts.quiet = quiet or opts.quiet
    opts.json_output = json_output or opts.json_output
    return opts


def _run_apply(opts: Options) -> None:
    def action(ctx: Context, logger: logging.Logger) -> None:
        config = load_config(opts.config_path, logger)
        runner = build_runner(config, opts.dry_run, logger)
        session = apply_config(ctx, config, runner)
        session.attach(ctx)

    _run(opts, action)


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    config_path: Annotated[
        Path | None,
        typer.Option("--config", "-c", help="Path to the configuration file."),
    ] = None,
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", "-n", help="Log tmux commands without executing them."),
    ] = False,
    debug: DebugOption = False,
    quiet: QuietOption = False,
    json_output: JSONOption = False,
    version: Annotated[
        bool | None,
        typer.Option("--version", "-v", callback=version_callback, is_eager=True, help="Show version."),
    ] = None,
) -> None:
    """Create a tmux session from the nearest configuration file and attach it."""
    ctx.obj = Options(
        config_path=config_path,
        dry_run=dry_run,
        debug=debug,
        quiet=quiet,
        json_output=json_output,
    )

    # If a subcommand was invoked, don't run main logic
    if ctx.invoked_subcommand is not None:
        return

    _run_apply(ctx.obj)


@app.command()
def apply(
    ctx: typer.Context,
    config_path: Annotated[
        Path | None,
        typer.Option("--config", "-c", help="Path to the configuration file."),
    ] = None,
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", "-n", help="Log tmux commands without executing them."),
    ] = False,
    debug: DebugOption = False,
    quiet: QuietOption = False,
    json_output: JSONOption = False,
) -> None:
    """Create a tmux session from a configuration file and attach it.

    If a session with the configured name already exists, it is attached.
    """
    opts = _command_options(ctx, config_path, dry_run, debug, quiet, json_output)
    _run_apply(opts)


@app.command()
def check(
    ctx: typer.Context,
    config_path: Annotated[
        Path | None,
        typer.Option("--config", "-c", help="Path to the configuration file."),
    ] = None,
    debug: DebugOption = False,
    quiet: QuietOption = False,
    json_output: JSONOption = False,
) -> None:
    """Validate a configuration file."""
    opts = _command_options(ctx, config_path, debug=debug, quiet=quiet, json_output=json_output)

    def action(_ctx: Context, logger: logging.Logger) -> None:
        config = load_config(opts.config_path, logger)
        config.check()
        logger.info("configuration file is valid")

    _run(opts, action)


@app.command()
def init(
    ctx: typer.Context,
    path: Annotated[
        Path | None,
        typer.Argument(help="File or directory to create the configuration file in."),
    ] = None,
    plain: Annotated[
        bool,
        typer.Option("--plain", "-p", help="Leave out explanatory comments."),
    ] = False,
    debug: DebugOption = False,
    quiet: QuietOption = False,
    json_output: JSONOption = False,
) -> None:
    """Create a starter configuration file."""
    opts = _command_options(ctx, debug=debug, quiet=quiet, json_output=json_output)

    def action(_ctx: Context, logger: logging.Logger) -> None:
        dst = path or getwd() / config_file_name()
        if dst.is_dir():
            dst = dst / config_file_name()

        if not write_config(dst, plain=plain):
            logger.info("file already exists, skipping", extra={"fields": {"path": str(dst)}})
            return

        logger.info("configuration file created", extra={"fields": {"path": str(dst)}})

    _run(opts, action)


if __name__ == "__main__":
    app()
