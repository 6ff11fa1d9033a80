"""Running tmux commands."""

import logging
import os
import shutil
import subprocess
import time
from collections.abc import Callable, Sequence
from typing import Any

from tmpl.context import Context
from tmpl.errors import CommandError

DEFAULT_TMUX = "tmux"

# Runs an executable with arguments and returns its combined stdout/stderr.
CommandRunner = Callable[[Context, str, list[str]], bytes]

# Replaces the current process with an executable (path, argv, environment).
ExecRunner = Callable[[str, list[str], dict[str, str]], None]

logger = logging.getLogger(__name__)


def default_command_runner(ctx: Context, name: str, args: list[str]) -> bytes:
    """Run a command as a subprocess and return its combined output.

    Args:
        ctx: Cancellation context, checked before spawning.
        name: Executable name or path.
        args: Command arguments.

    Returns:
        Combined stdout and stderr.

    Raises:
        subprocess.CalledProcessError: If the command exits non-zero.
        OSError: If the command cannot be spawned.
    """
    ctx.check()
    result = subprocess.run(
        [name, *args],
        stdout=subprocess.PIPE,
        stderr=subprocess.STDOUT,
        check=False,
    )
    if result.returncode != 0:
        raise subprocess.CalledProcessError(result.returncode, [name, *args], output=result.stdout)
    return result.stdout


class Runner:
    """Runs tmux commands and logs every invocation.

    In dry-run mode no tmux command is executed: :meth:`run` returns empty
    output and :meth:`execve` only logs. Entities substitute synthesized
    output records when the runner is in dry-run mode.
    """

    def __init__(
        self,
        tmux: str = DEFAULT_TMUX,
        tmux_options: Sequence[str] | None = None,
        dry_run: bool = False,
        log: logging.Logger | None = None,
        command_runner: CommandRunner | None = None,
        exec_runner: ExecRunner | None = None,
    ) -> None:
        self.tmux = tmux or DEFAULT_TMUX
        self.tmux_options = list(tmux_options or [])
        self._dry_run = dry_run
        self._logger = log or logger
        self._command_runner = command_runner or default_command_runner
        self._exec_runner = exec_runner or os.execve

    @property
    def dry_run(self) -> bool:
        """Return True if the runner is in dry-run mode."""
        return self._dry_run

    def run(self, ctx: Context, *args: str) -> bytes:
        """Run a tmux command and return its output.

        Args:
            ctx: Cancellation context, checked before invoking tmux.
            *args: tmux arguments, starting with the sub-command.

        Returns:
            Combined stdout and stderr of the command, or empty bytes in
            dry-run mode.

        Raises:
            CancelledError: If the context is cancelled.
            CommandError: If tmux cannot be spawned or exits non-zero.
        """
        ctx.check()

        start = time.monotonic()
        argv = [*self.tmux_options, *args]
        subcommand = args[0] if args else ""

        if self._dry_run:
            self.debug("command successful", name=self.tmux, args=argv, dur=_since(start))
            return b""

        try:
            output = self._command_runner(ctx, self.tmux, argv)
        except subprocess.CalledProcessError as e:
            output = e.output or b""
            self.debug("command failed", name=self.tmux, args=argv, output=_trim(output), dur=_since(start))
            raise CommandError(f"running {subcommand} command", args, output, e.returncode) from e
        except OSError as e:
            self.debug("command failed", name=self.tmux, args=argv, error=str(e), dur=_since(start))
            raise CommandError(f"running {subcommand} command: {e}", args) from e

        self.debug("command successful", name=self.tmux, args=argv, output=_trim(output), dur=_since(start))
        return output

    def execve(self, *args: str) -> None:
        """Replace the current process with tmux.

        On success this never returns. In dry-run mode the call is only logged.

        Args:
            *args: tmux arguments, starting with the sub-command.

        Raises:
            CommandError: If the tmux executable cannot be found or executed.
        """
        start = time.monotonic()
        argv = [*self.tmux_options, *args]

        if self._dry_run:
            self.debug("execve successful", path=self.tmux, args=argv, dur=_since(start))
            return

        path = shutil.which(self.tmux)
        if path is None:
            raise CommandError(f"looking up absolute path for {self.tmux} executable: not found", args)

        try:
            self._exec_runner(path, [path, *argv], dict(os.environ))
        except OSError as e:
            self.debug("execve failed", path=path, args=argv, dur=_since(start))
            raise CommandError(f"running {args[0] if args else 'tmux'} command: {e}", args) from e

        self.debug("execve successful", path=path, args=argv, dur=_since(start))

    def debug(self, msg: str, **fields: Any) -> None:
        """Log a debug message with structured fields."""
        self._logger.debug(msg, extra={"fields": self._tag(fields)})

    def log(self, msg: str, **fields: Any) -> None:
        """Log an info message with structured fields."""
        self._logger.info(msg, extra={"fields": self._tag(fields)})

    def set_logger(self, log: logging.Logger) -> None:
        """Replace the logger used by the runner."""
        self._logger = log

    def _tag(self, fields: dict[str, Any]) -> dict[str, Any]:
        if self._dry_run:
            fields["dry_run"] = True
        return fields


def _since(start: float) -> str:
    return f"{(time.monotonic() - start) * 1000:.1f}ms"


def _trim(output: bytes) -> str:
    return output.decode("utf-8", errors="backslashreplace").strip()
