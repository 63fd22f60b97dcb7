"""Fixtures for integration tests."""

from pathlib import Path

import pytest
from typer.testing import CliRunner

from grut.cli.main import app


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def initialized_repo(tmp_path: Path, runner: CliRunner, monkeypatch) -> Path:
    """Create a temporary directory with an initialized Grut repository.

    The current directory is switched to the workspace for the duration
    of the test.

    Returns:
        Path: Path to the workspace root
    """
    workspace = tmp_path / "test_workspace"
    workspace.mkdir()
    monkeypatch.chdir(workspace)

    result = runner.invoke(app, ["init", "--quiet"])
    if result.exit_code != 0:
        raise RuntimeError(f"Failed to initialize repo: {result.stdout}")

    return workspace
