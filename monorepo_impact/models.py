from __future__ import annotations

from dataclasses import dataclass, asdict
from typing import Any


@dataclass(frozen=True, eq=False)
class UnitMetadata:
    """One node of the unit dependency graph.

    Nodes compare by identity: a unit reached through several dependents is
    the same instance everywhere in the graph.
    """

    name: str
    path: str
    dependencies: tuple["UnitMetadata", ...] = ()
    changed_files: tuple[str, ...] = ()

    def has_direct_changes(self) -> bool:
        return len(self.changed_files) > 0

    def has_changes(self) -> bool:
        """True if this unit or any dependency, transitively, has changed files."""
        seen: set[int] = set()
        stack: list[UnitMetadata] = [self]
        while stack:
            node = stack.pop()
            if id(node) in seen:
                continue
            seen.add(id(node))
            if node.changed_files:
                return True
            stack.extend(node.dependencies)
        return False

    def __repr__(self) -> str:
        return (
            f"UnitMetadata(name={self.name!r}, path={self.path!r}, "
            f"dependencies={len(self.dependencies)}, changed_files={len(self.changed_files)} files)"
        )


@dataclass(frozen=True)
class ChangeSummary:
    total_units: int
    changed_units: int
    affected_units: int
    total_changed_files: int
    changed_paths: list[str]
    affected_paths: list[str]

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    def __str__(self) -> str:
        return "\n".join(
            [
                "Change Summary:",
                f"  Total Units: {self.total_units}",
                f"  Changed Units (direct): {self.changed_units}",
                f"  Affected Units (including dependents): {self.affected_units}",
                f"  Total Changed Files: {self.total_changed_files}",
                f"  Direct Changes: {', '.join(self.changed_paths)}",
                f"  All Affected: {', '.join(self.affected_paths)}",
            ]
        )


@dataclass(frozen=True)
class ChangedUnits:
    units: list[UnitMetadata]

    def affected(self) -> list[UnitMetadata]:
        return [u for u in self.units if u.has_changes()]

    def affected_names(self) -> list[str]:
        return [u.name for u in self.affected()]

    def affected_paths(self) -> list[str]:
        return [u.path for u in self.affected()]

    def affected_count(self) -> int:
        return len(self.affected())

    def all_paths(self) -> list[str]:
        return [u.path for u in self.units]

    def find(self, name_or_path: str) -> UnitMetadata | None:
        for unit in self.units:
            if unit.name == name_or_path or unit.path == name_or_path:
                return unit
        return None

    def with_direct_changes(self) -> list[UnitMetadata]:
        return [u for u in self.units if u.has_direct_changes()]

    def affected_with_prefix(self, prefix: str) -> list[UnitMetadata]:
        return [u for u in self.units if u.path.startswith(prefix) and u.has_changes()]

    def changed_file_counts(self) -> dict[str, int]:
        return {u.path: len(u.changed_files) for u in self.affected()}

    def all_changed_files(self) -> set[str]:
        out: set[str] = set()
        for unit in self.units:
            out.update(unit.changed_files)
        return out

    def total_changed_files(self) -> int:
        return sum(len(u.changed_files) for u in self.units)

    def has_any_changes(self) -> bool:
        return any(u.has_changes() for u in self.units)

    def dependents_of(self, name_or_path: str) -> list[UnitMetadata]:
        """Units depending on ``name_or_path``, directly or transitively."""
        return [u for u in self.units if _depends_on(u, name_or_path)]

    def summary(self) -> ChangeSummary:
        direct = self.with_direct_changes()
        affected = self.affected()
        return ChangeSummary(
            total_units=len(self.units),
            changed_units=len(direct),
            affected_units=len(affected),
            total_changed_files=self.total_changed_files(),
            changed_paths=[u.path for u in direct],
            affected_paths=[u.path for u in affected],
        )


def _depends_on(unit: UnitMetadata, target: str) -> bool:
    seen: set[int] = {id(unit)}
    stack = list(unit.dependencies)
    while stack:
        dep = stack.pop()
        if id(dep) in seen:
            continue
        seen.add(id(dep))
        if dep.name == target or dep.path == target:
            return True
        stack.extend(dep.dependencies)
    return False
