"""Git access helpers used by repohooks checks."""

from repohooks.git.exec import GitError, GitResult, run_git
from repohooks.git.state import UNKNOWN, CommitInfo, current_branch, head_commit, resolve_repo_root

__all__ = [
    "UNKNOWN",
    "CommitInfo",
    "GitError",
    "GitResult",
    "current_branch",
    "head_commit",
    "resolve_repo_root",
    "run_git",
]
