"""Configuration loading, defaulting and validation for tmpl."""

import re
from pathlib import Path
from typing import Annotated, Any

import yaml
from pydantic import BaseModel, BeforeValidator, ConfigDict, PrivateAttr, ValidationError
from rich.console import Console
from rich.panel import Panel
from rich.text import Text

from tmpl import rules
from tmpl.env import is_valid_env_key
from tmpl.errors import ConfigError, ConfigNotFoundError, ConfigValidationError, DecodeError, EmptyConfigError
from tmpl.paths import KEY_CONFIG_NAME, abs_path, getenv, getwd

DEFAULT_CONFIG_FILE = ".tmpl.yaml"

_SPECIAL_CHARS_RE = re.compile(r"[^\w_]+")

_BOOL_TAG = "tag:yaml.org,2002:bool"


class _ConfigLoader(yaml.SafeLoader):
    """SafeLoader that only reads true/false as booleans, as YAML 1.2 does.

    Values such as ``yes``, ``on`` or ``off`` stay strings.
    """


_ConfigLoader.yaml_implicit_resolvers = {
    first: [(tag, regexp) for tag, regexp in resolvers if tag != _BOOL_TAG]
    for first, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}
_ConfigLoader.add_implicit_resolver(
    _BOOL_TAG,
    re.compile(r"^(?:true|True|TRUE|false|False|FALSE)$"),
    list("tTfF"),
)


def _stringify_env(value: Any) -> Any:
    """Accept YAML scalars (numbers, booleans) as environment variable values."""
    if value is None:
        return {}
    if isinstance(value, dict):
        return {k: v if isinstance(v, str) else _scalar_str(v) for k, v in value.items()}
    return value


def _scalar_str(value: Any) -> Any:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int | float):
        return str(value)
    if value is None:
        return ""
    return value


EnvMap = Annotated[dict[str, str], BeforeValidator(_stringify_env)]


class PaneConfig(BaseModel):
    """Pane configuration.

    A pane without a path inherits its window's (or parent pane's) path.
    Environment variables override same-named variables inherited from the
    session, window and parent panes.
    """

    model_config = ConfigDict(extra="forbid")

    env: EnvMap = {}
    path: str = ""
    command: str = ""
    commands: list[str] = []
    size: str = ""  # cells or percentage, e.g. "30%"
    horizontal: bool = False
    panes: list["PaneConfig"] = []
    active: bool = False


class WindowConfig(BaseModel):
    """Window configuration.

    A window without a path inherits the session path.
    """

    model_config = ConfigDict(extra="forbid")

    name: str = ""
    path: str = ""
    command: str = ""
    commands: list[str] = []
    env: EnvMap = {}
    panes: list[PaneConfig] = []
    active: bool = False


class SessionConfig(BaseModel):
    """Session configuration.

    Environment variables are inherited by all windows and panes.
    """

    model_config = ConfigDict(extra="forbid")

    name: str = ""
    path: str = ""
    on_window: str = ""  # run in all windows
    on_pane: str = ""  # run in all panes
    on_any: str = ""  # run in all windows and panes, before on_window/on_pane
    env: EnvMap = {}
    windows: list[WindowConfig] = []


class Config(BaseModel):
    """A session configuration loaded from a YAML file."""

    model_config = ConfigDict(extra="forbid")

    session: SessionConfig = SessionConfig()
    tmux: str = ""  # tmux executable
    tmux_options: list[str] = []  # extra options for every tmux invocation

    _path: str = PrivateAttr(default="")

    @property
    def path(self) -> str:
        """Return the path of the file the configuration was loaded from."""
        return self._path

    def num_windows(self) -> int:
        """Return the number of windows the session will have (at least one)."""
        return len(self.session.windows) or 1

    def num_panes(self) -> int:
        """Return the number of configured panes, nested panes included."""
        return sum(_count_panes(w.panes) for w in self.session.windows)

    def check(self) -> None:
        """Validate the configuration.

        Raises:
            ConfigValidationError: With every problem found, keyed by dotted
                field path (e.g. ``session.windows.0.name``).
        """
        errors: list[tuple[str, str]] = []
        _add(errors, "tmux", rules.executable_exists(self.tmux))
        _validate_session(self.session, errors)
        if errors:
            raise ConfigValidationError(errors)


def _count_panes(panes: list[PaneConfig]) -> int:
    return sum(1 + _count_panes(p.panes) for p in panes)


def _add(errors: list[tuple[str, str]], field_path: str, message: str | None) -> None:
    if message:
        errors.append((field_path, message))


def _validate_env(errors: list[tuple[str, str]], field_path: str, env: dict[str, str]) -> None:
    for key in env:
        if not is_valid_env_key(key):
            errors.append((field_path, f"{key!r} is not a valid environment variable name"))


def _validate_commands(errors: list[tuple[str, str]], prefix: str, command: str, commands: list[str]) -> None:
    if command:
        _add(errors, f"{prefix}.command", rules.not_blank(command))
    for i, cmd in enumerate(commands):
        _add(errors, f"{prefix}.commands.{i}", rules.not_blank(cmd))


def _validate_session(session: SessionConfig, errors: list[tuple[str, str]]) -> None:
    _add(errors, "session.name", rules.name_matches(session.name))
    _add(errors, "session.path", rules.dir_exists(session.path))
    _validate_env(errors, "session.env", session.env)

    for i, window in enumerate(session.windows):
        prefix = f"session.windows.{i}"
        _add(errors, f"{prefix}.name", "is required" if not window.name else rules.name_matches(window.name))
        _add(errors, f"{prefix}.path", rules.dir_exists(window.path))
        _validate_env(errors, f"{prefix}.env", window.env)
        _validate_commands(errors, prefix, window.command, window.commands)
        _validate_panes(window.panes, prefix, errors)


def _validate_panes(panes: list[PaneConfig], parent: str, errors: list[tuple[str, str]]) -> None:
    for i, pane in enumerate(panes):
        prefix = f"{parent}.panes.{i}"
        _add(errors, f"{prefix}.path", rules.dir_exists(pane.path))
        _validate_env(errors, f"{prefix}.env", pane.env)
        _validate_commands(errors, prefix, pane.command, pane.commands)
        _validate_panes(pane.panes, prefix, errors)


def config_file_name() -> str:
    """Return the configuration file name.

    ``TMPL_CONFIG_NAME`` overrides the default ``.tmpl.yaml``.
    """
    return getenv(KEY_CONFIG_NAME) or DEFAULT_CONFIG_FILE


def find_config_file(start: Path) -> Path:
    """Find the nearest configuration file.

    Searches ``start`` and then each parent directory up to the root.

    Args:
        start: Directory to start searching from.

    Returns:
        Path to the configuration file.

    Raises:
        ConfigNotFoundError: If no configuration file is found.
        ConfigError: If the configuration path exists but is a directory.
    """
    name = config_file_name()
    directory = start

    while True:
        candidate = directory / name
        if candidate.exists():
            if candidate.is_dir():
                raise ConfigError(f"path {str(candidate)!r} is a directory")
            return candidate

        if directory.parent == directory:
            raise ConfigNotFoundError()

        directory = directory.parent


def _load_yaml_file(path: Path) -> dict[str, object]:
    """Load a YAML file and return its top-level mapping.

    Raises:
        EmptyConfigError: If the file is empty or holds only comments.
        DecodeError: If the file is not valid YAML or not a mapping.
    """
    try:
        if path.stat().st_size == 0:
            raise EmptyConfigError()
        with path.open(encoding="utf-8") as f:
            raw = yaml.load(f, Loader=_ConfigLoader)  # noqa: S506
    except yaml.YAMLError as e:
        raise DecodeError(str(path), str(e)) from e
    except OSError as e:
        raise ConfigError(f"opening configuration file: {e}") from e

    if raw is None:
        raise EmptyConfigError()
    if not isinstance(raw, dict):
        raise DecodeError(str(path), f"expected a mapping at top level, got {type(raw).__name__}")
    return raw


def from_file(path: Path | str) -> Config:
    """Load a configuration from a YAML file and fill in default values.

    Args:
        path: Path to the configuration file.

    Returns:
        The loaded configuration.

    Raises:
        EmptyConfigError: If the file is empty.
        DecodeError: If the file is not valid YAML or has unknown or mistyped fields.
        ConfigError: If the file cannot be read.
    """
    path = Path(path)
    raw = _load_yaml_file(path)

    try:
        config = Config.model_validate(raw)
    except ValidationError as e:
        reason = "; ".join(
            f"{'.'.join(str(loc) for loc in error['loc'])}: {error['msg']}" for error in e.errors()
        )
        raise DecodeError(str(path), reason) from e

    config._path = str(path)
    set_defaults(config)
    return config


def set_defaults(config: Config) -> None:
    """Fill in blank configuration values.

    - session name: current directory name with special characters replaced
    - session path: current working directory; other paths are made absolute
    - window path: session path
    - pane path: window path, or parent pane path for nested panes
    """
    wd = getwd()
    session = config.session

    if not session.name:
        session.name = _SPECIAL_CHARS_RE.sub("_", wd.name)

    session.path = abs_path(session.path) if session.path else str(wd)

    for window in session.windows:
        window.path = abs_path(window.path) if window.path else session.path
        _set_pane_defaults(window.panes, window.path)


def _set_pane_defaults(panes: list[PaneConfig], parent_path: str) -> None:
    for pane in panes:
        pane.path = abs_path(pane.path) if pane.path else parent_path
        _set_pane_defaults(pane.panes, pane.path)


def display_validation_errors(errors: list[tuple[str, str]], console: Console) -> None:
    """Display configuration validation errors using Rich formatting.

    Args:
        errors: ``(field_path, message)`` tuples.
        console: Rich console to output to.
    """
    if not errors:
        return

    text = Text()
    for i, (field_path, message) in enumerate(errors):
        if i > 0:
            text.append("\n")
        text.append(f"  {field_path}", style="bold")
        text.append(f" {message}", style="yellow")

    console.print(Panel(text, title="[red]Invalid Configuration[/]", border_style="red"))

