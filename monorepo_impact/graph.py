from __future__ import annotations

import logging

from monorepo_impact.models import UnitMetadata
from monorepo_impact.workspace import BuildUnit, Workspace

logger = logging.getLogger(__name__)


class DependencyCycleError(ValueError):
    pass


class _MetadataBuilder:
    def __init__(self, workspace: Workspace, changed_files_map: dict[str, list[str]]):
        self.workspace = workspace
        self.changed_files_map = changed_files_map
        self.cache: dict[str, UnitMetadata] = {}
        self.in_progress: list[str] = []

    def build(self, unit: BuildUnit) -> UnitMetadata:
        cached = self.cache.get(unit.path)
        if cached is not None:
            return cached

        if unit.path in self.in_progress:
            cycle = self.in_progress[self.in_progress.index(unit.path):] + [unit.path]
            raise DependencyCycleError(
                f"Dependency cycle between units: {' -> '.join(cycle)}. "
                "Remove one of these dependencies."
            )

        self.in_progress.append(unit.path)
        try:
            dependencies = []
            for dep_path in unit.dependency_paths():
                dep_unit = self.workspace.find_unit(dep_path)
                if dep_unit is None:
                    logger.debug("Unit %s depends on unknown unit %s; ignoring", unit.path, dep_path)
                    continue
                dependencies.append(self.build(dep_unit))
        finally:
            self.in_progress.pop()

        metadata = UnitMetadata(
            name=unit.name,
            path=unit.path,
            dependencies=tuple(dependencies),
            changed_files=tuple(self.changed_files_map.get(unit.path, ())),
        )
        self.cache[unit.path] = metadata
        return metadata


def build_metadata_map(
    workspace: Workspace,
    changed_files_map: dict[str, list[str]] | None = None,
) -> dict[str, UnitMetadata]:
    """Build one UnitMetadata per unit, with dependencies as nested nodes.

    Memoized by unit path, so a unit shared by several dependents is the
    same object in every dependency list.
    """
    builder = _MetadataBuilder(workspace, changed_files_map or {})
    for unit in workspace.all_units():
        builder.build(unit)
    return {unit.path: builder.cache[unit.path] for unit in workspace.all_units()}


def build_unit_metadata(
    workspace: Workspace,
    unit_path: str,
    changed_files_map: dict[str, list[str]] | None = None,
) -> UnitMetadata:
    changed_files_map = changed_files_map or {}
    metadata = build_metadata_map(workspace, changed_files_map).get(unit_path)
    if metadata is not None:
        return metadata
    return UnitMetadata(
        name=unit_path.rsplit(":", 1)[-1],
        path=unit_path,
        changed_files=tuple(changed_files_map.get(unit_path, ())),
    )
