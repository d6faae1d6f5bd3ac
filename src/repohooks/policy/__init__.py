"""Working-tree policy checks."""

from repohooks.policy.readme import (
    DirectoryFilter,
    PolicyResult,
    PolicyViolation,
    WorkingTreeNode,
    check_readme_policy,
)

__all__ = [
    "DirectoryFilter",
    "PolicyResult",
    "PolicyViolation",
    "WorkingTreeNode",
    "check_readme_policy",
]
