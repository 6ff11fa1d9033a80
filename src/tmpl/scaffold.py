"""Starter configuration file generation for ``tmpl init``."""

import re
from datetime import datetime
from pathlib import Path
from string import Template

from tmpl import APP_NAME, __version__
from tmpl.errors import ConfigError

DOCS_URL = "https://github.com/michenriksen/tmpl"

_CLEAN_NAME_RE = re.compile(r"[^\w._-]+")

CONFIG_TEMPLATE = """\
# $app_name configuration file generated on $time by $app_name $version.
#
# Run `$app_name` in this directory (or any directory below it) to create and
# attach the session. See $docs_url for documentation.

# tmux executable to use. Defaults to tmux found in PATH.
# tmux: tmux

# Extra command line options passed to every tmux invocation.
# tmux_options: ["-L", "my_socket"]

session:
  # Session name. Defaults to the name of the current directory.
  name: $name

  # Session working directory. Defaults to the current directory. Windows and
  # panes inherit it unless they set their own.
  # path: ~/code/$name

  # Environment variables for all windows and panes.
  # env:
  #   APP_ENV: development

  # Commands run in every new window, every new pane, or both.
  # on_window: echo "window ready"
  # on_pane: echo "pane ready"
  # on_any: source .venv/bin/activate

  windows:
    - name: code
      command: $${EDITOR:-vim} .
      active: true

    - name: shell
      panes:
        # Splits the window in two, with the new pane to the right.
        - horizontal: true
          size: 50%
          # command: make watch
"""


def clean_session_name(name: str) -> str:
    """Turn a directory name into a valid session name."""
    name = _CLEAN_NAME_RE.sub("_", name.strip())
    return name.strip("._-")


def strip_comments(text: str) -> str:
    """Remove comment and blank lines from a configuration file."""
    lines = [line for line in text.splitlines() if line.strip() and not line.strip().startswith("#")]
    return "\n".join(lines).strip()


def render_config(name: str, plain: bool = False, now: datetime | None = None) -> str:
    """Render the starter configuration file.

    Args:
        name: Session name.
        plain: Leave out explanatory comments.
        now: Generation time written into the file header.

    Returns:
        The configuration file content.
    """
    text = CONFIG_TEMPLATE
    if plain:
        text = strip_comments(text) + "\n"

    return Template(text).substitute(
        app_name=APP_NAME,
        version=__version__,
        time=(now or datetime.now()).strftime("%Y-%m-%d %H:%M"),
        docs_url=DOCS_URL,
        name=name or "main",
    )


def write_config(dst: Path, plain: bool = False) -> bool:
    """Write a starter configuration file.

    Args:
        dst: Destination file path.
        plain: Leave out explanatory comments.

    Returns:
        True if the file was written, False if it already exists.

    Raises:
        ConfigError: If the file cannot be written.
    """
    if dst.exists():
        return False

    content = render_config(clean_session_name(dst.parent.name), plain=plain)
    try:
        dst.write_text(content, encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"creating configuration file: {e}") from e
    return True
