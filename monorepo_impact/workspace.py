from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Union
import logging

logger = logging.getLogger(__name__)

ROOT_PATH = ":"


class UnitLayoutError(ValueError):
    pass


@dataclass(frozen=True)
class UnitDependency:
    path: str

    def target_unit_path(self) -> str | None:
        return self.path


@dataclass(frozen=True)
class PlatformDependency:
    """BOM-style dependency; constrains versions but still links two units."""

    path: str

    def target_unit_path(self) -> str | None:
        return self.path


@dataclass(frozen=True)
class ExternalDependency:
    coordinate: str

    def target_unit_path(self) -> str | None:
        return None


DependencySpec = Union[UnitDependency, PlatformDependency, ExternalDependency]


@dataclass(frozen=True)
class BuildUnit:
    path: str
    name: str
    directory: Path
    has_build_file: bool
    dependencies: tuple[DependencySpec, ...] = ()
    exclude_patterns: tuple[str, ...] = ()

    @property
    def is_root(self) -> bool:
        return self.path == ROOT_PATH

    def dependency_paths(self) -> list[str]:
        out: list[str] = []
        for dep in self.dependencies:
            target = dep.target_unit_path()
            if target and target not in out:
                out.append(target)
        return out


@dataclass
class Workspace:
    root: Path
    units: dict[str, BuildUnit] = field(default_factory=dict)

    @property
    def root_unit(self) -> BuildUnit:
        return self.units[ROOT_PATH]

    def find_unit(self, path: str) -> BuildUnit | None:
        return self.units.get(path)

    def all_units(self) -> list[BuildUnit]:
        return list(self.units.values())

    def subunits(self) -> list[BuildUnit]:
        return [u for u in self.units.values() if not u.is_root]

    def relative_dir(self, unit: BuildUnit) -> str:
        """Unit directory relative to the root, '/'-separated, '' for the root itself."""
        root = self.root.resolve()
        directory = unit.directory if unit.directory.is_absolute() else root / unit.directory
        try:
            rel = directory.resolve().relative_to(root)
        except ValueError as exc:
            raise UnitLayoutError(
                f"Unit '{unit.path}' has a directory ({directory}) that is not inside the "
                f"root directory ({root}). Move the unit under the root or fix its 'dir' setting."
            ) from exc
        rel_posix = rel.as_posix()
        return "" if rel_posix == "." else rel_posix


def parent_path(path: str) -> str:
    head = path.rsplit(":", 1)[0]
    return head or ROOT_PATH


def default_dir(path: str) -> str:
    return "/".join(s for s in path.split(":") if s) or "."


def parse_dependency(raw: Any) -> DependencySpec:
    if isinstance(raw, str):
        value = raw.strip()
        if value.startswith(":"):
            return UnitDependency(value)
        return ExternalDependency(value)

    if isinstance(raw, dict) and len(raw) == 1:
        kind, value = next(iter(raw.items()))
        value = str(value).strip()
        if kind == "unit":
            return UnitDependency(value)
        if kind == "platform":
            return PlatformDependency(value)
        if kind == "external":
            return ExternalDependency(value)

    raise ValueError(
        f"Invalid dependency entry: {raw!r} "
        "(expected ':path', or one of {unit: ...}, {platform: ...}, {external: ...})"
    )


def detect_build_file(directory: Path, build_files: list[str]) -> bool:
    return any((directory / name).is_file() for name in build_files)


def _unit_from_entry(root: Path, idx: int, raw: Any, build_files: list[str]) -> BuildUnit:
    if not isinstance(raw, dict):
        raise ValueError(f"Unit #{idx} must be an object")

    path = raw.get("path")
    if not path or not isinstance(path, str) or not path.startswith(":"):
        raise ValueError(f"Unit #{idx} missing required field 'path' (e.g. ':libs:core')")
    if path != ROOT_PATH:
        path = path.rstrip(":")

    dir_value = raw.get("dir")
    directory = Path(str(dir_value)) if dir_value else Path(default_dir(path))
    if not directory.is_absolute():
        directory = root / directory

    deps = raw.get("dependencies") or []
    if not isinstance(deps, list):
        raise ValueError(f"Unit '{path}': 'dependencies' must be a list")

    excludes = raw.get("exclude_patterns") or []
    if not isinstance(excludes, list):
        raise ValueError(f"Unit '{path}': 'exclude_patterns' must be a list")

    buildable = raw.get("buildable")
    has_build_file = bool(buildable) if buildable is not None else detect_build_file(directory, build_files)

    return BuildUnit(
        path=path,
        name=path.rsplit(":", 1)[-1] or root.name,
        directory=directory,
        has_build_file=has_build_file,
        dependencies=tuple(parse_dependency(d) for d in deps),
        exclude_patterns=tuple(str(x) for x in excludes),
    )


def load_workspace(root: Path, units_data: list[Any] | None, build_files: list[str]) -> Workspace:
    """Build the unit hierarchy from the ``units:`` configuration list.

    Ancestors that are not declared become hierarchy nodes without a build
    file, and the root unit ':' always exists.
    """
    root = Path(root)
    units: dict[str, BuildUnit] = {}

    for idx, raw in enumerate(units_data or [], start=1):
        unit = _unit_from_entry(root, idx, raw, build_files)
        if unit.path in units:
            raise ValueError(f"Unit '{unit.path}' is declared more than once")
        units[unit.path] = unit

    if ROOT_PATH not in units:
        units[ROOT_PATH] = BuildUnit(
            path=ROOT_PATH,
            name=root.name,
            directory=root,
            has_build_file=detect_build_file(root, build_files),
        )

    for path in list(units):
        ancestor = parent_path(path) if path != ROOT_PATH else ROOT_PATH
        while ancestor != ROOT_PATH and ancestor not in units:
            logger.debug("Adding hierarchy node %s for %s", ancestor, path)
            units[ancestor] = BuildUnit(
                path=ancestor,
                name=ancestor.rsplit(":", 1)[-1],
                directory=root / default_dir(ancestor),
                has_build_file=False,
            )
            ancestor = parent_path(ancestor)

    ordered = {ROOT_PATH: units.pop(ROOT_PATH)}
    ordered.update(sorted(units.items()))
    return Workspace(root=root, units=ordered)
