"""Pytest configuration and shared fixtures."""

import itertools
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable

import pytest

from twig.core import Repository


@pytest.fixture
def temp_dir(tmp_path: Path) -> Path:
    """Create a temporary directory for testing."""
    return tmp_path


@pytest.fixture
def clock() -> Callable[[], datetime]:
    """Deterministic clock that advances one second per call."""
    start = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
    ticks = itertools.count()
    return lambda: start + timedelta(seconds=next(ticks))


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """Create an empty workspace directory."""
    root = tmp_path / "workspace"
    root.mkdir()
    return root


@pytest.fixture
def repo(workspace: Path, clock: Callable[[], datetime]) -> Repository:
    """Create an initialized repository in the workspace."""
    return Repository.init(workspace, clock=clock)


@pytest.fixture
def commit_file(repo: Repository, workspace: Path):
    """Write, stage and commit one file; returns the new commit."""

    def _commit_file(filename: str, content: str, message: str = ""):
        (workspace / filename).write_text(content)
        repo.add(filename)
        return repo.commit(message or f"Update {filename}")

    return _commit_file
