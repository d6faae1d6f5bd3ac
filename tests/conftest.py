"""Pytest configuration and fixtures for repohooks tests."""
import subprocess
from collections.abc import Callable
from pathlib import Path

import pytest

GitRunner = Callable[..., str]


def _git(cwd: Path, *args: str) -> str:
    result = subprocess.run(
        ["git", *args],
        cwd=cwd,
        check=True,
        capture_output=True,
        text=True,
    )
    return result.stdout.strip()


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Keep user git config and REPOHOOKS_* variables out of tests."""
    for var in ("REPOHOOKS_PRODUCTION_BRANCH", "REPOHOOKS_LOG_PATH", "REPOHOOKS_README_PATTERN"):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("GIT_CONFIG_GLOBAL", str(tmp_path / "gitconfig-global"))
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")


@pytest.fixture
def git() -> GitRunner:
    """Run git in a directory and return stripped stdout."""
    return _git


@pytest.fixture
def empty_repo(tmp_path: Path) -> Path:
    """Initialized repository on an unborn ``main`` branch."""
    repo = tmp_path / "project"
    repo.mkdir()
    _git(repo, "init")
    _git(repo, "symbolic-ref", "HEAD", "refs/heads/main")
    _git(repo, "config", "user.email", "jane@x.com")
    _git(repo, "config", "user.name", "Jane Doe")
    _git(repo, "config", "commit.gpgsign", "false")
    return repo


@pytest.fixture
def git_repo(empty_repo: Path) -> Path:
    """Repository on ``main`` with a single documented commit."""
    (empty_repo / "README.md").write_text("# project\n", encoding="utf-8")
    _git(empty_repo, "add", "README.md")
    _git(empty_repo, "commit", "-m", "initial")
    return empty_repo

