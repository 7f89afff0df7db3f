from __future__ import annotations

from typing import Iterable
import logging

from monorepo_impact.detectors import compile_patterns, is_excluded
from monorepo_impact.workspace import Workspace

logger = logging.getLogger(__name__)


def unit_prefixes(workspace: Workspace) -> list[tuple[str, str]]:
    """(directory prefix, unit path) pairs, longest prefix first.

    Each prefix ends with '/' so 'apps/app1/' never matches 'apps/app10/...'.
    """
    pairs = []
    for unit in workspace.subunits():
        rel = workspace.relative_dir(unit)
        if not rel:
            # a unit sharing the root directory can never out-rank the root unit
            continue
        pairs.append((rel + "/", unit.path))
    return sorted(pairs, key=lambda p: len(p[0]), reverse=True)


def map_changed_files_to_units(workspace: Workspace, changed_files: Iterable[str]) -> dict[str, list[str]]:
    """Assign every changed file to the deepest unit whose directory contains it.

    Files outside every subunit directory belong to the root unit.
    """
    files = sorted(set(changed_files))
    if not files:
        return {}

    prefixes = unit_prefixes(workspace)
    root_path = workspace.root_unit.path

    out: dict[str, list[str]] = {}
    for file in files:
        owner = root_path
        for prefix, unit_path in prefixes:
            if file.startswith(prefix):
                owner = unit_path
                break
        out.setdefault(owner, []).append(file)
    return out


def find_units_with_changed_files(workspace: Workspace, changed_files: Iterable[str]) -> set[str]:
    return set(map_changed_files_to_units(workspace, changed_files).keys())


def apply_unit_excludes(workspace: Workspace, changed_files_map: dict[str, list[str]]) -> dict[str, list[str]]:
    """Drop files matching their owning unit's exclude patterns.

    Patterns are matched against the path relative to the unit directory, so
    'generated/.*' on a unit in 'api/' matches 'api/generated/Client.py'.
    """
    out: dict[str, list[str]] = {}
    for unit_path, files in changed_files_map.items():
        unit = workspace.find_unit(unit_path)
        patterns = compile_patterns(unit.exclude_patterns if unit else [])
        if not patterns:
            out[unit_path] = list(files)
            continue

        rel = workspace.relative_dir(unit)
        prefix = f"{rel}/" if rel else ""
        kept = []
        for file in files:
            local = file[len(prefix):] if prefix and file.startswith(prefix) else file
            if not is_excluded(local, patterns):
                kept.append(file)

        removed = len(files) - len(kept)
        if removed:
            logger.debug("[%s] Per-unit excludes removed %d file(s)", unit_path, removed)
        out[unit_path] = kept
    return out
