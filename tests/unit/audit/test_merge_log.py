"""Tests for the merge audit log."""

from __future__ import annotations

import errno
import multiprocessing
import os
from datetime import datetime
from pathlib import Path

import pytest

from repohooks.audit.merge_log import (
    HEADLINE,
    RULE,
    LogOutcome,
    MergeEventLogger,
    MergeRecord,
    append_record,
    parse_records,
    read_records,
)
from repohooks.config import RepoHooksConfig
from repohooks.git.state import CommitInfo

FIXED_NOW = datetime(2024, 5, 17, 9, 30, 5)


def _clock() -> datetime:
    return FIXED_NOW


def _record(**overrides: str) -> MergeRecord:
    values = {
        "timestamp": "2024-05-17 09:30:05",
        "author_name": "Jane Doe",
        "author_email": "jane@x.com",
        "commit_hash": "0123456789abcdef0123456789abcdef01234567",
        "commit_message": "Release 1.0.0",
        "branch": "main",
        "repository": "project",
    }
    values.update(overrides)
    return MergeRecord(**values)


def _merge_feature(repo: Path, git, *, message: str) -> None:
    git(repo, "checkout", "-b", "feature/x")
    (repo / "feature.txt").write_text("feature\n", encoding="utf-8")
    git(repo, "add", "feature.txt")
    git(repo, "commit", "-m", "add feature")
    git(repo, "checkout", "main")
    git(repo, "merge", "--no-ff", "--no-edit", "feature/x", "-m", message)


def test_render_matches_fixed_layout() -> None:
    text = _record().render()

    assert text == (
        "========================================\n"
        "MERGE INTO MAIN BRANCH DETECTED\n"
        "Date: 2024-05-17 09:30:05\n"
        "Author: Jane Doe <jane@x.com>\n"
        "Commit Hash: 0123456789abcdef0123456789abcdef01234567\n"
        "Commit Message: Release 1.0.0\n"
        "Branch: main\n"
        "Repository: project\n"
        "========================================\n"
        "\n"
    )


def test_from_commit_uses_unknown_placeholders() -> None:
    record = MergeRecord.from_commit(CommitInfo(), branch="main", repository="project", timestamp=FIXED_NOW)

    assert record.author == "unknown <unknown>"
    assert record.commit_hash == "unknown"
    assert record.commit_message == "unknown"
    assert record.timestamp == "2024-05-17 09:30:05"


def test_append_creates_parent_directories(tmp_path: Path) -> None:
    log_path = tmp_path / "a" / "b" / "merge-log.txt"

    append_record(log_path, _record())
    append_record(log_path, _record(commit_message="Hotfix 1.0.1"))

    assert [r.commit_message for r in read_records(log_path)] == ["Release 1.0.0", "Hotfix 1.0.1"]


def test_parse_ignores_truncated_trailing_block() -> None:
    complete = _record().render()
    truncated = f"{RULE}\n{HEADLINE}\nDate: 2024-05-17 10:00:00\nAuthor: X <x@y>\n"

    records = parse_records(complete + truncated)

    assert records == [_record()]


def test_read_records_missing_file(tmp_path: Path) -> None:
    assert read_records(tmp_path / "nope.txt") == []


def test_logs_merge_into_main(git_repo: Path, git) -> None:
    _merge_feature(git_repo, git, message="Release 1.0.0")
    config = RepoHooksConfig()

    result = MergeEventLogger(config, clock=_clock).log_merge(git_repo)

    assert result.outcome is LogOutcome.DONE
    assert result.log_path == git_repo / ".git" / "logs" / "custom" / "merge-log.txt"
    records = read_records(result.log_path)
    assert records == [
        MergeRecord(
            timestamp="2024-05-17 09:30:05",
            author_name="Jane Doe",
            author_email="jane@x.com",
            commit_hash=git(git_repo, "rev-parse", "HEAD"),
            commit_message="Release 1.0.0",
            branch="main",
            repository=git_repo.resolve().name,
        )
    ]


def test_one_record_per_invocation(git_repo: Path, git) -> None:
    _merge_feature(git_repo, git, message="Release 1.0.0")
    logger = MergeEventLogger(RepoHooksConfig(), clock=_clock)

    logger.log_merge(git_repo)
    logger.log_merge(git_repo)

    log_path = RepoHooksConfig().resolve_log_path(git_repo)
    assert len(read_records(log_path)) == 2
    assert log_path.read_text(encoding="utf-8").count(HEADLINE) == 2


def test_skips_non_production_branch(git_repo: Path, git) -> None:
    git(git_repo, "checkout", "-b", "develop")
    git(git_repo, "checkout", "-b", "feature/x")
    (git_repo / "f.txt").write_text("f\n", encoding="utf-8")
    git(git_repo, "add", "f.txt")
    git(git_repo, "commit", "-m", "work")
    git(git_repo, "checkout", "develop")
    git(git_repo, "merge", "--no-ff", "--no-edit", "feature/x", "-m", "Merge feature/x")

    result = MergeEventLogger(RepoHooksConfig(), clock=_clock).log_merge(git_repo)

    assert result.outcome is LogOutcome.SKIPPED
    assert result.branch == "develop"
    assert not result.log_path.exists()


def test_skips_detached_head(git_repo: Path, git) -> None:
    git(git_repo, "checkout", "--detach")

    result = MergeEventLogger(RepoHooksConfig(), clock=_clock).log_merge(git_repo)

    assert result.outcome is LogOutcome.SKIPPED
    assert result.branch is None


def test_configured_production_branch_and_log_path(git_repo: Path, git, tmp_path: Path) -> None:
    git(git_repo, "checkout", "-b", "trunk")
    log_path = tmp_path / "audit" / "merges.txt"
    config = RepoHooksConfig(production_branch="trunk", log_path=str(log_path))

    result = MergeEventLogger(config, clock=_clock).log_merge(git_repo)

    assert result.outcome is LogOutcome.DONE
    assert read_records(log_path)[0].branch == "trunk"


def test_unborn_main_logs_unknown_commit(empty_repo: Path) -> None:
    result = MergeEventLogger(RepoHooksConfig(), clock=_clock).log_merge(empty_repo)

    assert result.outcome is LogOutcome.DONE
    record = read_records(result.log_path)[0]
    assert record.commit_hash == "unknown"
    assert record.author_name == "unknown"


def test_write_failure_is_a_warning(git_repo: Path, tmp_path: Path) -> None:
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("file in the way\n", encoding="utf-8")
    config = RepoHooksConfig(log_path=str(blocker / "merge-log.txt"))

    result = MergeEventLogger(config, clock=_clock).log_merge(git_repo)

    assert result.outcome is LogOutcome.DONE_WITH_WARNING
    assert result.record is not None
    assert "could not write merge log" in (result.warning or "")


def _append_many(log_path: str, writer: int, count: int) -> None:
    # Long messages make a torn write visible.
    for i in range(count):
        append_record(
            Path(log_path),
            _record(commit_message=f"writer-{writer}-record-{i} " + "x" * 4096),
        )


@pytest.mark.skipif("fork" not in multiprocessing.get_all_start_methods(), reason="requires fork")
def test_concurrent_appends_never_interleave(tmp_path: Path) -> None:
    log_path = tmp_path / "merge-log.txt"
    ctx = multiprocessing.get_context("fork")
    writers, per_writer = 6, 25

    processes = [ctx.Process(target=_append_many, args=(str(log_path), w, per_writer)) for w in range(writers)]
    for process in processes:
        process.start()
    for process in processes:
        process.join(timeout=60)
        assert process.exitcode == 0

    text = log_path.read_text(encoding="utf-8")
    records = read_records(log_path)
    assert len(records) == writers * per_writer
    assert text.count(HEADLINE) == writers * per_writer
    assert text == "".join(r.render() for r in records)
    for writer in range(writers):
        mine = [r.commit_message.split(" ")[0] for r in records if r.commit_message.startswith(f"writer-{writer}-")]
        assert mine == [f"writer-{writer}-record-{i}" for i in range(per_writer)]


def test_failed_append_leaves_log_unchanged(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    log_path = tmp_path / "merge-log.txt"
    append_record(log_path, _record())
    before = log_path.read_bytes()
    real_write = os.write
    calls: list[int] = []

    def _short_then_full(fd: int, data) -> int:
        calls.append(len(data))
        if len(calls) == 1:
            return real_write(fd, bytes(data[:60]))
        raise OSError(errno.ENOSPC, "No space left on device")

    monkeypatch.setattr("repohooks.audit.merge_log.os.write", _short_then_full)

    with pytest.raises(OSError, match="No space left"):
        append_record(log_path, _record(commit_message="Hotfix 1.0.1"))

    assert len(calls) == 2
    assert log_path.read_bytes() == before
    assert read_records(log_path) == [_record()]


def test_non_production_merge_keeps_existing_log_bytes(git_repo: Path, git) -> None:
    logger = MergeEventLogger(RepoHooksConfig(), clock=_clock)
    first = logger.log_merge(git_repo)
    assert first.outcome is LogOutcome.DONE
    before = first.log_path.read_bytes()

    git(git_repo, "checkout", "-b", "feature/x")
    git(git_repo, "checkout", "-b", "feature/x-part")
    (git_repo / "part.txt").write_text("part\n", encoding="utf-8")
    git(git_repo, "add", "part.txt")
    git(git_repo, "commit", "-m", "part")
    git(git_repo, "checkout", "feature/x")
    git(git_repo, "merge", "--no-ff", "--no-edit", "feature/x-part", "-m", "Merge part into feature/x")

    result = logger.log_merge(git_repo)

    assert result.outcome is LogOutcome.SKIPPED
    assert result.branch == "feature/x"
    assert first.log_path.read_bytes() == before
