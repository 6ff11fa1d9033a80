"""Tests for tmpl.scaffold module."""

from datetime import datetime
from pathlib import Path

import pytest
import yaml

from tmpl.config import Config
from tmpl.scaffold import clean_session_name, render_config, strip_comments, write_config


class TestCleanSessionName:
    """Tests for clean_session_name function."""

    @pytest.mark.parametrize(
        ("name", "expected"),
        [
            ("project", "project"),
            ("my project", "my_project"),
            ("  spaced  ", "spaced"),
            (".dotfiles", "dotfiles"),
            ("app-v1.2", "app-v1.2"),
            ("what?!name", "what_name"),
            ("--x--", "x"),
        ],
    )
    def test_clean(self, name: str, expected: str) -> None:
        """Should replace unsafe characters and trim separators."""
        assert clean_session_name(name) == expected


class TestStripComments:
    """Tests for strip_comments function."""

    def test_removes_comments_and_blank_lines(self) -> None:
        """Should keep only content lines with their indentation."""
        text = "# header\n\nsession:\n  # note\n  name: x\n\n"
        assert strip_comments(text) == "session:\n  name: x"


class TestRenderConfig:
    """Tests for render_config function."""

    def test_renders_valid_yaml(self) -> None:
        """Should produce a configuration that loads into the model."""
        text = render_config("project", now=datetime(2024, 1, 2, 3, 4))
        config = Config.model_validate(yaml.safe_load(text))

        assert config.session.name == "project"
        assert [w.name for w in config.session.windows] == ["code", "shell"]
        assert config.session.windows[0].command == "${EDITOR:-vim} ."
        assert "2024-01-02 03:04" in text

    def test_plain(self) -> None:
        """Should leave out comment lines."""
        text = render_config("project", plain=True)
        assert not any(line.lstrip().startswith("#") for line in text.splitlines())
        assert Config.model_validate(yaml.safe_load(text)).session.name == "project"

    def test_empty_name(self) -> None:
        """Should fall back to a default session name."""
        assert Config.model_validate(yaml.safe_load(render_config(""))).session.name == "main"


class TestWriteConfig:
    """Tests for write_config function."""

    def test_writes_file(self, tmp_path: Path) -> None:
        """Should write the file named after its directory."""
        directory = tmp_path / "my app"
        directory.mkdir()
        dst = directory / ".tmpl.yaml"

        assert write_config(dst) is True
        assert "name: my_app" in dst.read_text()

    def test_existing_file_untouched(self, tmp_path: Path) -> None:
        """Should not overwrite an existing file."""
        dst = tmp_path / ".tmpl.yaml"
        dst.write_text("session: {}\n")

        assert write_config(dst) is False
        assert dst.read_text() == "session: {}\n"
