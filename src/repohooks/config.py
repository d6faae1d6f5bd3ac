"""Hook configuration loader.

Supports ``.repohooks.toml``, a ``[tool.repohooks]`` table in
``pyproject.toml``, or ``.repohooks.yaml`` at the repository root, plus
``REPOHOOKS_*`` environment overrides.
"""

from __future__ import annotations

import logging
import os
import tomllib
from collections.abc import Mapping
from dataclasses import asdict, dataclass, field, replace
from pathlib import Path
from typing import Any

import yaml
from jsonschema.validators import Draft202012Validator

from repohooks.errors import ConfigError

logger = logging.getLogger(__name__)

TOML_CONFIG_NAME = ".repohooks.toml"
YAML_CONFIG_NAME = ".repohooks.yaml"
PYPROJECT_NAME = "pyproject.toml"

DEFAULT_PRODUCTION_BRANCH = "main"
DEFAULT_LOG_PATH = ".git/logs/custom/merge-log.txt"
DEFAULT_README_PATTERN = "readme*"

ENV_OVERRIDES: dict[str, str] = {
    "REPOHOOKS_PRODUCTION_BRANCH": "production_branch",
    "REPOHOOKS_LOG_PATH": "log_path",
    "REPOHOOKS_README_PATTERN": "readme_pattern",
}

CONFIG_SCHEMA: dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "production_branch": {"type": "string", "minLength": 1},
        "log_path": {"type": "string", "minLength": 1},
        "readme_pattern": {"type": "string", "minLength": 1},
        "internal_dirs": {"type": "array", "items": {"type": "string", "minLength": 1}},
        "exclude_hidden": {"type": "boolean"},
        "exclude_globs": {"type": "array", "items": {"type": "string", "minLength": 1}},
    },
}


@dataclass(frozen=True)
class RepoHooksConfig:
    """Effective hook configuration for one repository."""

    production_branch: str = DEFAULT_PRODUCTION_BRANCH
    log_path: str = DEFAULT_LOG_PATH
    readme_pattern: str = DEFAULT_README_PATTERN
    internal_dirs: tuple[str, ...] = (".git",)
    exclude_hidden: bool = True
    exclude_globs: tuple[str, ...] = field(default_factory=tuple)
    source: str = "defaults"

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], *, source: str = "defaults") -> RepoHooksConfig:
        """Validate a raw mapping and build a config from it."""
        errors = validate_config_data(data)
        if errors:
            raise ConfigError(
                f"Invalid repohooks config in {source}:\n" + "\n".join(f"  - {msg}" for msg in errors)
            )
        values: dict[str, Any] = dict(data)
        for key in ("internal_dirs", "exclude_globs"):
            if key in values:
                values[key] = tuple(values[key])
        return cls(**values, source=source)

    def resolve_log_path(self, repo_root: Path) -> Path:
        """Return the audit log location, anchored at ``repo_root`` when relative."""
        path = Path(self.log_path).expanduser()
        if path.is_absolute():
            return path
        return repo_root / path

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["internal_dirs"] = list(self.internal_dirs)
        payload["exclude_globs"] = list(self.exclude_globs)
        return payload


def validate_config_data(data: Any) -> list[str]:
    """Return human readable schema errors for ``data`` (empty when valid)."""
    validator = Draft202012Validator(CONFIG_SCHEMA)
    return [
        f"{'.'.join(str(p) for p in e.path)}: {e.message}" if e.path else e.message
        for e in sorted(validator.iter_errors(data), key=lambda e: list(e.path))
    ]


def load_config(repo_root: Path, env: Mapping[str, str] | None = None) -> RepoHooksConfig:
    """Load configuration for ``repo_root``.

    Priority order (first found wins for file sources):
    1. .repohooks.toml
    2. [tool.repohooks] in pyproject.toml
    3. .repohooks.yaml

    Environment overrides are applied on top of whichever source was used.

    Raises:
        ConfigError: If a config file is malformed or invalid
    """
    config = _load_file_config(repo_root) or RepoHooksConfig()
    return apply_env_overrides(config, os.environ if env is None else env)


def apply_env_overrides(config: RepoHooksConfig, env: Mapping[str, str]) -> RepoHooksConfig:
    """Apply non-empty ``REPOHOOKS_*`` variables to ``config``."""
    changes = {attr: env[var] for var, attr in ENV_OVERRIDES.items() if env.get(var, "").strip()}
    if not changes:
        return config
    logger.debug("environment overrides: %s", sorted(changes))
    return replace(config, **changes)


def _load_file_config(repo_root: Path) -> RepoHooksConfig | None:
    toml_path = repo_root / TOML_CONFIG_NAME
    if toml_path.is_file():
        return RepoHooksConfig.from_dict(_read_toml(toml_path), source=str(toml_path))

    pyproject = repo_root / PYPROJECT_NAME
    if pyproject.is_file():
        table = _read_toml(pyproject).get("tool", {}).get("repohooks")
        if table is not None:
            return RepoHooksConfig.from_dict(table, source=f"{pyproject} [tool.repohooks]")

    yaml_path = repo_root / YAML_CONFIG_NAME
    if yaml_path.is_file():
        try:
            data = yaml.safe_load(yaml_path.read_text(encoding="utf-8"))
        except yaml.YAMLError as exc:
            raise ConfigError(f"Malformed YAML config at {yaml_path}: {exc}") from exc
        return RepoHooksConfig.from_dict(data or {}, source=str(yaml_path))

    return None


def _read_toml(path: Path) -> dict[str, Any]:
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Malformed TOML config at {path}: {e}") from e
