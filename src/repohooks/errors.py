"""Exception hierarchy shared by repohooks components."""

from __future__ import annotations


class RepoHooksError(RuntimeError):
    """Base class for tooling errors (as opposed to policy failures)."""


class ConfigError(RepoHooksError):
    """Raised when a configuration file is malformed or fails validation."""


class NotARepositoryError(RepoHooksError):
    """Raised when a path cannot be resolved to a git working tree."""
