"""Pytest fixtures for CLI integration tests.

Each test gets its own storage directory through a TOML config file passed
with ``--config``, and the Ollama generator is replaced by the scripted
FakeGenerator from the shared fixtures.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from pathlib import Path

import pytest
import structlog
from typer.testing import CliRunner


@pytest.fixture
def cli_runner() -> CliRunner:
    """Create a Typer CLI runner."""
    return CliRunner()


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    """Write a config file pointing storage at a temporary directory."""
    path = tmp_path / "catalyst.toml"
    path.write_text(
        f"""
[storage]
directory = "{(tmp_path / 'state').as_posix()}"

[logging]
level = "ERROR"
"""
    )
    return path


@pytest.fixture(autouse=True)
def patched_generator(fake_generator, monkeypatch: pytest.MonkeyPatch):
    """Make every CLI command use the scripted generator."""
    monkeypatch.setattr("catalyst.main.create_generator", lambda config: fake_generator)
    return fake_generator


@pytest.fixture(autouse=True)
def reset_logging() -> Iterator[None]:
    """Drop handlers bound to the runner's streams after each test."""
    yield
    logging.getLogger().handlers.clear()
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()
