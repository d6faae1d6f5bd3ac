"""Append-only audit log of merges into the production branch."""

from __future__ import annotations

import enum
import fcntl
import logging
import os
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from repohooks.config import RepoHooksConfig
from repohooks.git.state import UNKNOWN, CommitInfo, current_branch, head_commit

logger = logging.getLogger(__name__)

RULE = "=" * 40
HEADLINE = "MERGE INTO MAIN BRANCH DETECTED"
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

_FIELD_LABELS = (
    ("timestamp", "Date"),
    ("author", "Author"),
    ("commit_hash", "Commit Hash"),
    ("commit_message", "Commit Message"),
    ("branch", "Branch"),
    ("repository", "Repository"),
)


class LogOutcome(str, enum.Enum):
    """Terminal states of one logger invocation."""

    SKIPPED = "skipped"
    DONE = "done"
    DONE_WITH_WARNING = "done_with_warning"


@dataclass(frozen=True)
class MergeRecord:
    """One audit entry. Written once, never rewritten."""

    timestamp: str
    author_name: str
    author_email: str
    commit_hash: str
    commit_message: str
    branch: str
    repository: str

    @property
    def author(self) -> str:
        return f"{self.author_name} <{self.author_email}>"

    @classmethod
    def from_commit(
        cls,
        commit: CommitInfo,
        *,
        branch: str,
        repository: str,
        timestamp: datetime,
    ) -> MergeRecord:
        return cls(
            timestamp=timestamp.strftime(TIMESTAMP_FORMAT),
            author_name=commit.author_name,
            author_email=commit.author_email,
            commit_hash=commit.sha,
            commit_message=_single_line(commit.subject),
            branch=branch,
            repository=repository or UNKNOWN,
        )

    def render(self) -> str:
        """Render the fixed-layout text block, trailing blank line included."""
        values = {
            "timestamp": self.timestamp,
            "author": self.author,
            "commit_hash": self.commit_hash,
            "commit_message": self.commit_message,
            "branch": self.branch,
            "repository": self.repository,
        }
        lines = [RULE, HEADLINE]
        lines += [f"{label}: {values[key]}" for key, label in _FIELD_LABELS]
        lines += [RULE, "", ""]
        return "\n".join(lines)


@dataclass(frozen=True)
class MergeLogResult:
    """What a logger invocation did."""

    outcome: LogOutcome
    log_path: Path
    branch: str | None
    record: MergeRecord | None = None
    warning: str | None = None


class MergeEventLogger:
    """Records merges that land on the configured production branch."""

    def __init__(
        self,
        config: RepoHooksConfig,
        *,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.config = config
        self._clock = clock

    def log_merge(self, repo_root: Path) -> MergeLogResult:
        """Run one invocation; never raises for log write failures."""
        log_path = self.config.resolve_log_path(repo_root)

        branch = current_branch(repo_root)
        if branch != self.config.production_branch:
            logger.debug("branch %r is not %r; nothing to log", branch, self.config.production_branch)
            return MergeLogResult(outcome=LogOutcome.SKIPPED, log_path=log_path, branch=branch)

        record = MergeRecord.from_commit(
            head_commit(repo_root),
            branch=branch,
            repository=repo_root.resolve().name,
            timestamp=self._clock(),
        )

        try:
            append_record(log_path, record)
        except OSError as exc:
            warning = f"could not write merge log {log_path}: {exc}"
            logger.warning(warning)
            return MergeLogResult(
                outcome=LogOutcome.DONE_WITH_WARNING,
                log_path=log_path,
                branch=branch,
                record=record,
                warning=warning,
            )

        return MergeLogResult(outcome=LogOutcome.DONE, log_path=log_path, branch=branch, record=record)


def append_record(log_path: Path, record: MergeRecord) -> None:
    """Append ``record`` under an exclusive lock.

    The block is written through an ``O_APPEND`` descriptor while holding
    ``flock(LOCK_EX)``, so concurrent writers never interleave. A failed
    write truncates the file back to its size before the append.
    """
    log_path.parent.mkdir(parents=True, exist_ok=True)
    payload = record.render().encode("utf-8")
    fd = os.open(log_path, os.O_WRONLY | os.O_APPEND | os.O_CREAT, 0o644)
    try:
        fcntl.flock(fd, fcntl.LOCK_EX)
        try:
            start = os.fstat(fd).st_size
            try:
                view = memoryview(payload)
                while view:
                    written = os.write(fd, view)
                    view = view[written:]
                os.fsync(fd)
            except OSError:
                os.ftruncate(fd, start)
                raise
        finally:
            fcntl.flock(fd, fcntl.LOCK_UN)
    finally:
        os.close(fd)


def read_records(log_path: Path) -> list[MergeRecord]:
    """Parse all complete records from ``log_path`` (oldest first)."""
    if not log_path.exists():
        return []
    with open(log_path, encoding="utf-8") as handle:
        fcntl.flock(handle.fileno(), fcntl.LOCK_SH)
        text = handle.read()
    return parse_records(text)


def parse_records(text: str) -> list[MergeRecord]:
    """Parse rendered records; incomplete blocks are ignored."""
    labels = {label: key for key, label in _FIELD_LABELS}
    records: list[MergeRecord] = []
    current: dict[str, str] | None = None

    for line in text.splitlines():
        if line == HEADLINE:
            current = {}
            continue
        if current is None:
            continue
        if line == RULE:
            if set(current) == set(labels.values()):
                records.append(_record_from_fields(current))
            current = None
            continue
        label, sep, value = line.partition(": ")
        if sep and label in labels:
            current[labels[label]] = value

    return records


def _record_from_fields(fields: dict[str, str]) -> MergeRecord:
    name, _, email = fields["author"].rpartition(" <")
    return MergeRecord(
        timestamp=fields["timestamp"],
        author_name=name,
        author_email=email.removesuffix(">"),
        commit_hash=fields["commit_hash"],
        commit_message=fields["commit_message"],
        branch=fields["branch"],
        repository=fields["repository"],
    )


def _single_line(text: str) -> str:
    return " ".join(text.splitlines()).strip() or UNKNOWN
