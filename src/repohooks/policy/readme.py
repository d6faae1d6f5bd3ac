"""Directory README policy: every directory must document itself."""

from __future__ import annotations

import fnmatch
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator

    from repohooks.config import RepoHooksConfig

logger = logging.getLogger(__name__)

MISSING_README_REASON = "missing README"
HIDDEN_MARKER = "."


@dataclass(frozen=True)
class WorkingTreeNode:
    """A directory of the working tree and the entries it holds."""

    path: str
    files: frozenset[str]
    dirs: frozenset[str] = frozenset()


@dataclass(frozen=True, order=True)
class PolicyViolation:
    """Offending directory (repo-relative, ``.`` for the root) and reason."""

    path: str
    reason: str = MISSING_README_REASON


@dataclass(frozen=True)
class PolicyResult:
    """Outcome of one policy run."""

    violations: tuple[PolicyViolation, ...] = field(default_factory=tuple)
    checked: int = 0

    @property
    def passed(self) -> bool:
        return not self.violations

    @property
    def paths(self) -> list[str]:
        return [v.path for v in self.violations]


@dataclass(frozen=True)
class DirectoryFilter:
    """Decides which directories are outside the policy."""

    internal_dirs: frozenset[str] = frozenset({".git"})
    exclude_hidden: bool = True
    exclude_globs: tuple[str, ...] = ()

    @classmethod
    def from_config(cls, config: RepoHooksConfig) -> DirectoryFilter:
        return cls(
            internal_dirs=frozenset(config.internal_dirs),
            exclude_hidden=config.exclude_hidden,
            exclude_globs=tuple(config.exclude_globs),
        )

    def excludes(self, rel_path: str) -> bool:
        """True when ``rel_path`` or any ancestor segment is excluded.

        A glob without ``/`` matches a single segment at any depth
        (``node_modules`` prunes ``src/node_modules``); a glob with ``/`` is
        anchored at the repository root and matches the whole relative path.
        """
        if rel_path == ".":
            return False
        parts = PurePosixPath(rel_path).parts
        for part in parts:
            if part in self.internal_dirs:
                return True
            if self.exclude_hidden and part.startswith(HIDDEN_MARKER):
                return True
        for pattern in self.exclude_globs:
            if "/" in pattern:
                if fnmatch.fnmatchcase(rel_path, pattern):
                    return True
            elif any(fnmatch.fnmatchcase(part, pattern) for part in parts):
                return True
        return False


def iter_tree(repo_root: Path, dir_filter: DirectoryFilter) -> Iterator[WorkingTreeNode]:
    """Yield every non-excluded directory under ``repo_root``.

    Excluded directories are pruned, so their children are never visited.
    """
    root = repo_root.resolve()
    for dirpath, dirnames, filenames in os.walk(root, onerror=_log_walk_error):
        rel = Path(dirpath).relative_to(root).as_posix()
        dirnames[:] = [d for d in dirnames if not dir_filter.excludes(_join(rel, d))]
        yield WorkingTreeNode(path=rel, files=frozenset(filenames), dirs=frozenset(dirnames))


def has_readme(node: WorkingTreeNode, pattern: str) -> bool:
    """Case-insensitive match of ``pattern`` against the node's files."""
    lowered = pattern.lower()
    return any(fnmatch.fnmatchcase(name.lower(), lowered) for name in node.files)


def evaluate_nodes(nodes: Iterator[WorkingTreeNode] | list[WorkingTreeNode], pattern: str) -> PolicyResult:
    """Apply the README rule to already enumerated directories."""
    checked = 0
    violations: set[PolicyViolation] = set()
    for node in nodes:
        checked += 1
        if not has_readme(node, pattern):
            violations.add(PolicyViolation(path=node.path))
    return PolicyResult(violations=tuple(sorted(violations)), checked=checked)


def check_readme_policy(repo_root: Path, config: RepoHooksConfig) -> PolicyResult:
    """Check that every non-excluded directory contains a README file."""
    dir_filter = DirectoryFilter.from_config(config)
    result = evaluate_nodes(iter_tree(repo_root, dir_filter), config.readme_pattern)
    logger.debug(
        "readme policy: %d directories checked, %d violations",
        result.checked,
        len(result.violations),
    )
    return result


def _join(parent: str, name: str) -> str:
    return name if parent == "." else f"{parent}/{name}"


def _log_walk_error(exc: OSError) -> None:
    logger.warning("skipping unreadable directory: %s", exc)
