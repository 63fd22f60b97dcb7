"""Pytest configuration and shared fixtures."""

from pathlib import Path

import pytest

from grut.core import Repository


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """Create an empty working directory."""
    root = tmp_path / "workspace"
    root.mkdir()
    return root


@pytest.fixture
def repo(workspace: Path) -> Repository:
    """Create an initialized repository in the workspace."""
    repository, created = Repository.initialize(workspace)
    assert created
    return repository


@pytest.fixture
def write_file(workspace: Path):
    """Write a text file into the workspace and return its path."""

    def _write(name: str, content: str) -> Path:
        path = workspace / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content.encode("utf-8"))
        return path

    return _write
