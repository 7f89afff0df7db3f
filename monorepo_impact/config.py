from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any
import os
import yaml


CONFIG_FILE_NAME = ".monorepo-impact.yml"

DEFAULT_CONFIG = {
    "base_branch": "main",
    "commit_ref": "HEAD~1",
    "include_untracked": True,
    "exclude_patterns": [],
    "build_files": [
        "pyproject.toml",
        "setup.py",
        "build.gradle",
        "build.gradle.kts",
        "package.json",
        "Cargo.toml",
        "BUILD",
        "BUILD.bazel",
    ],
}

TRUTHY = {"1", "true", "yes", "on"}
FALSY = {"0", "false", "no", "off"}


@dataclass
class ImpactConfig:
    base_branch: str
    commit_ref: str
    include_untracked: bool
    exclude_patterns: list[str] = field(default_factory=list)
    build_files: list[str] = field(default_factory=list)
    units: list[Any] = field(default_factory=list)


def load_env_file(path: Path) -> None:
    """Load simple KEY=VALUE pairs from a .env file without overriding existing env."""
    if not path.exists() or not path.is_file():
        return

    for raw in path.read_text(errors="ignore").splitlines():
        line = raw.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip().strip('"').strip("'")
        if key and key not in os.environ:
            os.environ[key] = value


def _parse_bool(value: Any, name: str) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in TRUTHY:
        return True
    if text in FALSY:
        return False
    raise ValueError(f"Invalid boolean for {name}: '{value}' (expected true/false)")


def _string_list(data: dict[str, Any], key: str) -> list[str]:
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValueError(f"'{key}' must be a list")
    return [str(x) for x in value]


def load_config(root: Path, path: str | None = None) -> ImpactConfig:
    """Load settings from YAML, then apply MONOREPO_* environment overrides.

    An explicit ``path`` must exist; the default file in ``root`` is optional.
    """
    if path:
        config_path = Path(path)
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
    else:
        config_path = Path(root) / CONFIG_FILE_NAME

    data: dict[str, Any] = {}
    if config_path.exists():
        data = yaml.safe_load(config_path.read_text()) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Config file {config_path} must contain a mapping")

    build_files = list(DEFAULT_CONFIG["build_files"])
    if "build_files" in data:
        build_files = _string_list(data, "build_files")

    units = data.get("units") or []
    if not isinstance(units, list):
        raise ValueError("'units' must be a list")

    cfg = ImpactConfig(
        base_branch=str(data.get("base_branch") or DEFAULT_CONFIG["base_branch"]),
        commit_ref=str(data.get("commit_ref") or DEFAULT_CONFIG["commit_ref"]),
        include_untracked=_parse_bool(
            data.get("include_untracked", DEFAULT_CONFIG["include_untracked"]),
            "include_untracked",
        ),
        exclude_patterns=list(DEFAULT_CONFIG["exclude_patterns"]) + _string_list(data, "exclude_patterns"),
        build_files=build_files,
        units=units,
    )

    env_branch = (os.getenv("MONOREPO_BASE_BRANCH") or "").strip()
    if env_branch:
        cfg.base_branch = env_branch
    env_ref = (os.getenv("MONOREPO_COMMIT_REF") or "").strip()
    if env_ref:
        cfg.commit_ref = env_ref
    env_untracked = (os.getenv("MONOREPO_INCLUDE_UNTRACKED") or "").strip()
    if env_untracked:
        cfg.include_untracked = _parse_bool(env_untracked, "MONOREPO_INCLUDE_UNTRACKED")

    return cfg
