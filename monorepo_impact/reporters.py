from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping
import json

from monorepo_impact import __version__
from monorepo_impact.affected import affected_via
from monorepo_impact.models import ChangeSummary, UnitMetadata
from monorepo_impact.workspace import Workspace


FILE_DISPLAY_LIMIT = 50


def _display_files(workspace: Workspace, unit_path: str, files: list[str]) -> list[str]:
    unit = workspace.find_unit(unit_path)
    rel = workspace.relative_dir(unit) if unit else ""
    prefix = f"{rel}/" if rel else ""
    out = []
    for f in files:
        out.append(f[len(prefix):] if prefix and f.startswith(prefix) else f)
    return sorted(out)


def build_text_report(
    header: str,
    affected: set[str] | frozenset[str],
    changed_files_map: Mapping[str, list[str]],
    metadata_map: Mapping[str, UnitMetadata],
    workspace: Workspace,
) -> str:
    if not affected:
        return "No units have changed."

    directly_changed = sorted(p for p in changed_files_map if p in affected)
    transitive = sorted(p for p in affected if p not in changed_files_map)

    lines = [header]
    for unit_path in directly_changed:
        lines.extend(["", f"  {unit_path}"])
        files = _display_files(workspace, unit_path, changed_files_map[unit_path])
        lines.extend(f"    - {f}" for f in files[:FILE_DISPLAY_LIMIT])
        if len(files) > FILE_DISPLAY_LIMIT:
            lines.append(f"    ... and {len(files) - FILE_DISPLAY_LIMIT} more")

    if transitive:
        lines.append("")
        width = max(len(p) for p in transitive)
        for unit_path in transitive:
            metadata = metadata_map.get(unit_path)
            via = ", ".join(affected_via(metadata)) if metadata else ""
            annotation = f"  (affected via {via})" if via else ""
            lines.append(f"  {unit_path.ljust(width)}{annotation}".rstrip())

    return "\n".join(lines)


def _report_summary(
    affected: set[str] | frozenset[str],
    changed_files_map: Mapping[str, list[str]],
    metadata_map: Mapping[str, UnitMetadata],
) -> ChangeSummary:
    affected_paths = sorted(affected)
    changed_paths = [p for p in affected_paths if p in metadata_map and metadata_map[p].has_direct_changes()]
    return ChangeSummary(
        total_units=len(metadata_map),
        changed_units=len(changed_paths),
        affected_units=len(affected_paths),
        total_changed_files=sum(len(files) for files in changed_files_map.values()),
        changed_paths=changed_paths,
        affected_paths=affected_paths,
    )


def build_json_report(
    affected: set[str] | frozenset[str],
    changed_files_map: Mapping[str, list[str]],
    metadata_map: Mapping[str, UnitMetadata],
    mode: str,
    reference: str | None,
) -> dict[str, Any]:
    return {
        "generated_at": datetime.now(timezone.utc).isoformat(),
        "tool": {"name": "monorepo-impact", "version": __version__},
        "mode": mode,
        "reference": reference,
        "summary": _report_summary(affected, changed_files_map, metadata_map).to_dict(),
        "affected_units": sorted(affected),
        "changed_files": {k: sorted(v) for k, v in sorted(changed_files_map.items())},
        "affected_via": {
            path: affected_via(metadata_map[path])
            for path in sorted(affected)
            if path in metadata_map and path not in changed_files_map
        },
    }


def write_json_report(report: dict[str, Any], path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(report, indent=2))


def write_unit_list(path: Path, affected: set[str] | frozenset[str]) -> None:
    """One unit path per line; an empty file when nothing changed."""
    units = sorted(affected)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("".join(f"{u}\n" for u in units))
