"""Hook runner: dispatch lifecycle events to their ordered checks."""

from __future__ import annotations

import enum
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from repohooks.audit.merge_log import LogOutcome, MergeEventLogger
from repohooks.config import RepoHooksConfig, load_config
from repohooks.policy.readme import check_readme_policy

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_TOOLING_ERROR = 1
EXIT_POLICY_FAILURE = 2


class HookEvent(str, enum.Enum):
    """Lifecycle points the runner answers to."""

    PRE_COMMIT = "pre-commit"
    POST_MERGE = "post-merge"

    @property
    def blocking(self) -> bool:
        """Whether a failing result aborts the triggering git operation."""
        return self is HookEvent.PRE_COMMIT

    @classmethod
    def parse(cls, value: str | HookEvent) -> HookEvent:
        if isinstance(value, HookEvent):
            return value
        try:
            return cls(value)
        except ValueError:
            known = ", ".join(e.value for e in cls)
            raise ValueError(f"unknown hook event {value!r} (expected one of: {known})") from None


@dataclass(frozen=True)
class CheckOutcome:
    """Result of a single check."""

    name: str
    passed: bool
    message: str
    details: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class HookResult:
    """Aggregate result of one hook invocation."""

    event: HookEvent
    repo_root: Path
    outcomes: list[CheckOutcome]

    @property
    def passed(self) -> bool:
        return all(o.passed for o in self.outcomes)

    @property
    def failure(self) -> CheckOutcome | None:
        return next((o for o in self.outcomes if not o.passed), None)

    @property
    def message(self) -> str:
        failure = self.failure
        if failure is not None:
            return failure.message
        return f"{self.event.value}: all checks passed"

    @property
    def exit_code(self) -> int:
        if self.passed or not self.event.blocking:
            return EXIT_OK
        return EXIT_POLICY_FAILURE

    def to_dict(self) -> dict[str, Any]:
        return {
            "event": self.event.value,
            "repo_root": str(self.repo_root),
            "status": "passed" if self.passed else "failed",
            "exit_code": self.exit_code,
            "message": self.message,
            "checks": [
                {
                    "name": o.name,
                    "passed": o.passed,
                    "message": o.message,
                    "details": list(o.details),
                    "warnings": list(o.warnings),
                }
                for o in self.outcomes
            ],
        }


Check = Callable[[Path, RepoHooksConfig], CheckOutcome]


def readme_policy_check(repo_root: Path, config: RepoHooksConfig) -> CheckOutcome:
    """Block when any directory lacks a README."""
    result = check_readme_policy(repo_root, config)
    if result.passed:
        return CheckOutcome(
            name="readme-policy",
            passed=True,
            message=f"All {result.checked} directories contain a README file",
        )
    return CheckOutcome(
        name="readme-policy",
        passed=False,
        message=f"{len(result.violations)} directories are missing a README file",
        details=result.paths,
    )


def merge_log_check(repo_root: Path, config: RepoHooksConfig) -> CheckOutcome:
    """Record the merge; never fails."""
    result = MergeEventLogger(config).log_merge(repo_root)
    if result.outcome is LogOutcome.SKIPPED:
        message = f"Branch {result.branch or '(detached)'} is not {config.production_branch}; merge not logged"
    else:
        message = f"Merge logged to {result.log_path}"
    return CheckOutcome(
        name="merge-log",
        passed=True,
        message=message,
        warnings=[result.warning] if result.warning else [],
    )


CHECKS: dict[HookEvent, tuple[tuple[str, Check], ...]] = {
    HookEvent.PRE_COMMIT: (("readme-policy", readme_policy_check),),
    HookEvent.POST_MERGE: (("merge-log", merge_log_check),),
}


def checks_for(event: str | HookEvent) -> list[str]:
    """Names of the checks registered for ``event``, in run order."""
    return [name for name, _ in CHECKS[HookEvent.parse(event)]]


def run_hook(
    event: str | HookEvent,
    repo_root: Path,
    config: RepoHooksConfig | None = None,
) -> HookResult:
    """Run the checks of ``event`` in order, stopping at the first failure."""
    hook_event = HookEvent.parse(event)
    resolved = repo_root.resolve()
    effective = config if config is not None else load_config(resolved)

    outcomes: list[CheckOutcome] = []
    for name, check in CHECKS[hook_event]:
        logger.debug("%s: running %s", hook_event.value, name)
        outcome = check(resolved, effective)
        outcomes.append(outcome)
        if not outcome.passed:
            logger.debug("%s: %s failed, skipping remaining checks", hook_event.value, name)
            break

    return HookResult(event=hook_event, repo_root=resolved, outcomes=outcomes)
