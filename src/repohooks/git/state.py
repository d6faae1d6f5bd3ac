"""Read-only queries against the git checkout a hook runs in."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from repohooks.errors import NotARepositoryError
from repohooks.git.exec import GitError, run_git

logger = logging.getLogger(__name__)

UNKNOWN = "unknown"

# Unit separator keeps author names and subjects with spaces intact.
_LOG_FIELD_SEP = "\x1f"
_LOG_FORMAT = _LOG_FIELD_SEP.join(["%H", "%an", "%ae", "%s"])


@dataclass(frozen=True)
class CommitInfo:
    """Metadata of a single commit; missing fields read ``unknown``."""

    sha: str = UNKNOWN
    author_name: str = UNKNOWN
    author_email: str = UNKNOWN
    subject: str = UNKNOWN


def resolve_repo_root(repo: Path | None = None) -> Path:
    """Resolve git repo root from cwd or explicit path."""
    start = (repo or Path.cwd()).resolve()
    try:
        out = run_git(["rev-parse", "--show-toplevel"], repo_root=start)
    except GitError as exc:
        raise NotARepositoryError(f"unable to resolve git repo root from {start}: {exc}") from exc
    root = out.stdout.strip()
    if not root:
        raise NotARepositoryError(f"unable to resolve git repo root from {start}: empty output")
    return Path(root).resolve()


def current_branch(repo_root: Path) -> str | None:
    """Return the checked-out branch name, or None when detached.

    ``symbolic-ref`` also answers on an unborn branch, where ``rev-parse``
    would fail for lack of a HEAD commit.
    """
    result = run_git(["symbolic-ref", "--quiet", "--short", "HEAD"], repo_root=repo_root, check=False)
    if not result.ok:
        logger.debug("HEAD is not a symbolic ref in %s", repo_root)
        return None
    return result.stdout.strip() or None


def head_commit(repo_root: Path) -> CommitInfo:
    """Return metadata of HEAD, degrading to ``unknown`` fields."""
    result = run_git(
        ["log", "-1", f"--format={_LOG_FORMAT}", "HEAD"],
        repo_root=repo_root,
        check=False,
    )
    if not result.ok:
        logger.warning("could not read HEAD commit in %s: %s", repo_root, result.stderr.strip())
        return CommitInfo()
    return parse_log_line(result.stdout)


def parse_log_line(line: str) -> CommitInfo:
    """Parse one ``git log`` line produced with the internal format."""
    parts = line.rstrip("\n").split(_LOG_FIELD_SEP)
    parts += [""] * (4 - len(parts))
    sha, name, email, subject = (p.strip() or UNKNOWN for p in parts[:4])
    return CommitInfo(sha=sha, author_name=name, author_email=email, subject=subject)
