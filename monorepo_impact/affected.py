from __future__ import annotations

import logging

from monorepo_impact.models import UnitMetadata
from monorepo_impact.workspace import ROOT_PATH, Workspace

logger = logging.getLogger(__name__)


def changed_closure(metadata_map: dict[str, UnitMetadata]) -> dict[str, bool]:
    """has_changes() for every node in one pass over the graph."""
    memo: dict[int, bool] = {}

    def visit(node: UnitMetadata, active: set[int]) -> bool:
        key = id(node)
        if key in memo:
            return memo[key]
        if key in active:
            return False
        active.add(key)
        result = node.has_direct_changes()
        for dep in node.dependencies:
            if visit(dep, active):
                result = True
        active.discard(key)
        memo[key] = result
        return result

    return {path: visit(node, set()) for path, node in metadata_map.items()}


def compute_affected_units(metadata_map: dict[str, UnitMetadata], workspace: Workspace) -> set[str]:
    """Paths of units changed directly or through a dependency.

    The root unit and units without a build file are left out, since
    neither has anything to build.
    """
    closure = changed_closure(metadata_map)
    affected = set()
    for path, changed in closure.items():
        if not changed or path == ROOT_PATH:
            continue
        unit = workspace.find_unit(path)
        if unit is None or not unit.has_build_file:
            logger.debug("Excluding %s from affected units: no build file found", path)
            continue
        affected.add(path)
    return affected


def affected_via(metadata: UnitMetadata) -> list[str]:
    """Direct dependencies through which ``metadata`` is affected."""
    return sorted(dep.path for dep in metadata.dependencies if dep.has_changes())
