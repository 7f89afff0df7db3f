from __future__ import annotations

from pathlib import Path
from types import MappingProxyType
from typing import Mapping
import logging
import threading

from monorepo_impact.affected import compute_affected_units
from monorepo_impact.config import ImpactConfig
from monorepo_impact.detectors import (
    DetectionMode,
    detect_changed_files,
    detect_changed_files_from_ref,
    resolve_mode,
)
from monorepo_impact.graph import build_metadata_map
from monorepo_impact.mapper import apply_unit_excludes, map_changed_files_to_units
from monorepo_impact.models import ChangedUnits, UnitMetadata
from monorepo_impact.workspace import Workspace

logger = logging.getLogger(__name__)


class ImpactComputationError(RuntimeError):
    pass


class BuildSession:
    """Runs change detection at most once and holds the results.

    Concurrent callers of compute() race on a non-blocking lock acquire; the
    winner runs the pipeline and the others return immediately. The lock is
    never released, so the results are written exactly once per session.
    """

    def __init__(self, root: Path, config: ImpactConfig, workspace: Workspace):
        self.root = Path(root)
        self.config = config
        self.workspace = workspace
        self._guard = threading.Lock()
        self._computed = threading.Event()
        self.mode: DetectionMode | None = None
        self.commit_ref: str | None = None
        self.changed_files: frozenset[str] = frozenset()
        self.changed_files_map: Mapping[str, list[str]] = MappingProxyType({})
        self.metadata_map: Mapping[str, UnitMetadata] = MappingProxyType({})
        self.affected_units: frozenset[str] = frozenset()

    @property
    def computed(self) -> bool:
        return self._computed.is_set()

    def compute(self, base_branch: str | None = None, commit_ref: str | None = None) -> bool:
        """Run the pipeline unless another call already claimed it.

        Returns True for the call that performed the computation. Conflicting
        modes are rejected before the guard is claimed or git is queried.
        """
        mode = resolve_mode(base_branch, commit_ref)
        if not self._guard.acquire(blocking=False):
            logger.debug("Change detection already claimed for this session; skipping")
            return False

        try:
            self._run(mode, base_branch or self.config.base_branch, commit_ref)
        except Exception as exc:
            raise ImpactComputationError(f"Failed to compute affected units: {exc}") from exc

        self._computed.set()
        return True

    def _run(self, mode: DetectionMode, base_branch: str, commit_ref: str | None) -> None:
        cfg = self.config
        if mode is DetectionMode.REF:
            logger.info("Computing affected units since ref %s", commit_ref)
            changed = detect_changed_files_from_ref(self.root, commit_ref, cfg.exclude_patterns)
        else:
            logger.info("Computing affected units against base branch %s", base_branch)
            logger.info("Include untracked: %s", cfg.include_untracked)
            changed = detect_changed_files(
                self.root,
                base_branch,
                include_untracked=cfg.include_untracked,
                exclude_patterns=cfg.exclude_patterns,
            )

        files_map = apply_unit_excludes(self.workspace, map_changed_files_to_units(self.workspace, changed))
        metadata_map = build_metadata_map(self.workspace, files_map)
        affected = compute_affected_units(metadata_map, self.workspace)

        self.mode = mode
        self.commit_ref = commit_ref
        self.changed_files = frozenset(changed)
        self.changed_files_map = MappingProxyType({k: v for k, v in files_map.items() if v})
        self.metadata_map = MappingProxyType(metadata_map)
        self.affected_units = frozenset(affected)

        logger.info("Changed files count: %d", len(changed))
        logger.info(
            "All affected units (including dependents): %s",
            ", ".join(sorted(affected)) or "none",
        )

    def wait(self, timeout: float | None = None) -> bool:
        return self._computed.wait(timeout)

    def require_computed(self) -> None:
        if not self.computed:
            raise RuntimeError(
                "Affected units have not been computed for this session. "
                "Possible causes: compute() was never called or it failed. "
                "Re-run with --verbose for more details."
            )

    def changed_units(self) -> ChangedUnits:
        self.require_computed()
        return ChangedUnits(list(self.metadata_map.values()))
