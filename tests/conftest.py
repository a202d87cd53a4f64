"""Shared pytest fixtures and test helpers for treeq tests."""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Callable, Generator
from pathlib import Path
from typing import Any

import pytest
from click.testing import CliRunner

from treeq.services.stages import disable_reporting

WriteFile = Callable[[str, Any], Path]


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Click CLI test runner."""
    return CliRunner()


@pytest.fixture(autouse=True)
def _isolated(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Generator[None]:
    """Run every test from an empty directory with no TREEQ_* environment.

    Also restores root logging and stage-report state, which the CLI mutates.
    """
    for name in list(os.environ):
        if name.startswith("TREEQ_"):
            monkeypatch.delenv(name)
    monkeypatch.chdir(tmp_path)
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield
    root.handlers = handlers
    root.setLevel(level)
    disable_reporting()


@pytest.fixture
def write_file(tmp_path: Path) -> WriteFile:
    """Write *content* under tmp_path; non-strings are dumped as JSON."""

    def _write(name: str, content: Any) -> Path:
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        text = content if isinstance(content, str) else json.dumps(content)
        path.write_text(text, encoding="utf-8")
        return path

    return _write
