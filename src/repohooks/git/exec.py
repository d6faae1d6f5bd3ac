"""Single entry point for invoking git."""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path

from repohooks.errors import RepoHooksError

logger = logging.getLogger(__name__)

# Exit status reported when git itself (or the working directory) is missing.
GIT_UNAVAILABLE = 127


@dataclass(frozen=True)
class GitResult:
    """Captured output of one git invocation."""

    args: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class GitError(RepoHooksError):
    """Raised when git exits non-zero in check mode."""

    def __init__(self, result: GitResult):
        detail = (result.stderr or result.stdout).strip()
        super().__init__(f"git {' '.join(result.args)} exited {result.returncode}: {detail}")
        self.result = result


def run_git(
    args: list[str],
    *,
    repo_root: Path,
    check: bool = True,
) -> GitResult:
    """Run ``git <args>`` inside ``repo_root``."""
    logger.debug("git %s (cwd=%s)", " ".join(args), repo_root)
    try:
        completed = subprocess.run(["git", *args], cwd=repo_root, capture_output=True, text=True, check=False)
        result = GitResult(tuple(args), completed.returncode, completed.stdout, completed.stderr)
    except (FileNotFoundError, NotADirectoryError) as exc:
        result = GitResult(tuple(args), GIT_UNAVAILABLE, "", str(exc))
    if check and not result.ok:
        raise GitError(result)
    return result
