"""Environment variable inheritance and tmux environment detection."""

import os
import re
from collections.abc import Mapping

# Uppercase letters, digits and underscores, not starting with a digit.
ENV_KEY_RE = re.compile(r"^[A-Z_][A-Z0-9_]*$")

# $NAME or ${NAME}.
_ENV_REF_RE = re.compile(r"\$(?:\{([^}]*)\}|(\w+))")


def is_valid_env_key(key: str) -> bool:
    """Check if a string is a valid environment variable name."""
    return bool(ENV_KEY_RE.match(key))


def merge_maps(*maps: Mapping[str, str] | None) -> dict[str, str]:
    """Merge environment maps left to right.

    Later maps override keys of earlier maps, so maps should be passed from the
    root ancestor (session) to the most specific entity (pane).

    Args:
        *maps: Environment maps; None entries are skipped.

    Returns:
        A new merged dictionary.
    """
    result: dict[str, str] = {}
    for env in maps:
        if env:
            result.update(env)
    return result


def _ref_name(match: re.Match[str]) -> str:
    braced = match.group(1)
    return braced if braced is not None else match.group(2)


def expand_env(value: str) -> str:
    """Expand ``$NAME`` and ``${NAME}`` references; unset variables expand to an empty string."""
    return _ENV_REF_RE.sub(lambda m: os.environ.get(_ref_name(m), ""), value)


def env_args(*maps: Mapping[str, str] | None) -> list[str]:
    """Build tmux ``-e KEY=value`` arguments from a chain of environment maps.

    The maps are merged with :func:`merge_maps`, arguments are sorted by key to
    keep command lines deterministic, and variable references in values
    (``$HOME``, ``${HOME}``) are expanded against the current process
    environment by :func:`expand_env`.

    Args:
        *maps: Environment maps from root ancestor to the entity itself.

    Returns:
        Flat argument list, e.g. ``["-e", "A=1", "-e", "B=2"]``.
    """
    merged = merge_maps(*maps)
    args: list[str] = []
    for key in sorted(merged):
        args.extend(["-e", f"{key}={expand_env(merged[key])}"])
    return args


def in_tmux() -> bool:
    """Check if the current process is running inside tmux."""
    if os.environ.get("TERM_PROGRAM") == "tmux":
        return True
    if os.environ.get("TMUX"):
        return True
    return "tmux" in os.environ.get("TERM", "")
