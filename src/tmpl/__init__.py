"""Simple tmux session management from declarative configuration files."""

__version__ = "0.1.0"

APP_NAME = "tmpl"
