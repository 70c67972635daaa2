"""Shared test fixtures for fimble."""

import logging
from pathlib import Path

import pytest
from rich.logging import RichHandler

from fimble_core.config.models import FimbleConfig


@pytest.fixture
def sample_config():
    return FimbleConfig()


@pytest.fixture
def scenario_tree(tmp_path: Path) -> Path:
    """``a.txt`` = "hello" and ``b/c.txt`` = "world"."""
    root = tmp_path / "tree"
    root.mkdir()
    (root / "a.txt").write_text("hello")
    (root / "b").mkdir()
    (root / "b" / "c.txt").write_text("world")
    return root


@pytest.fixture
def project_tree(tmp_path: Path) -> Path:
    """A slightly larger layout with nested dirs and an empty file."""
    root = tmp_path / "project"
    (root / "src" / "pkg").mkdir(parents=True)
    (root / "docs").mkdir()
    (root / "README.md").write_text("# Readme\n")
    (root / "src" / "main.py").write_text("print('hi')\n")
    (root / "src" / "pkg" / "__init__.py").write_text("")
    (root / "src" / "pkg" / "util.py").write_text("def helper(): pass\n")
    (root / "docs" / "guide.md").write_bytes(b"guide\x00\xff" * 1000)
    return root


@pytest.fixture(autouse=True)
def _drop_cli_log_handlers():
    """The CLI installs root handlers bound to CliRunner's streams; remove them."""
    yield
    root = logging.getLogger()
    for handler in list(root.handlers):
        if isinstance(handler, RichHandler) or type(handler) is logging.StreamHandler:
            root.removeHandler(handler)
