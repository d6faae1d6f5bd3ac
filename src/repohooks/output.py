"""Canonical JSON helpers for machine-readable command output."""

from __future__ import annotations

import json
from typing import Any


def canonical_dumps(obj: Any, *, indent: int | None = None) -> str:
    """Serialize a JSON-compatible object with stable key ordering."""
    return json.dumps(
        obj,
        sort_keys=True,
        indent=indent,
        separators=(",", ":") if indent is None else (",", ": "),
        ensure_ascii=False,
    )
