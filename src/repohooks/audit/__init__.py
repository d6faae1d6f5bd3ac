"""Audit logging of repository events."""

from repohooks.audit.merge_log import (
    LogOutcome,
    MergeEventLogger,
    MergeLogResult,
    MergeRecord,
    append_record,
    read_records,
)

__all__ = [
    "LogOutcome",
    "MergeEventLogger",
    "MergeLogResult",
    "MergeRecord",
    "append_record",
    "read_records",
]
