from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Iterable
import logging
import re

from monorepo_impact.baseline import baseline_candidates, resolve_baseline_ref
from monorepo_impact.git_scope import GitRepository

logger = logging.getLogger(__name__)

PREVIEW_LIMIT = 5


class ModeConflictError(ValueError):
    pass


class DetectionMode(str, Enum):
    BRANCH = "branch"
    REF = "ref"


def resolve_mode(base_branch: str | None, commit_ref: str | None) -> DetectionMode:
    if base_branch and commit_ref:
        raise ModeConflictError(
            f"Cannot compare against base branch '{base_branch}' and commit ref '{commit_ref}' "
            "in the same run. Pass either --base-branch or --ref, not both."
        )
    if commit_ref:
        return DetectionMode.REF
    return DetectionMode.BRANCH


def normalize_path(path: str) -> str:
    p = path.rstrip("\r\n").replace("\\", "/")
    while p.startswith("./"):
        p = p[2:]
    return p


def normalize_paths(paths: Iterable[str]) -> set[str]:
    out = set()
    for path in paths:
        p = normalize_path(path)
        if p.strip():
            out.add(p)
    return out


def compile_patterns(patterns: Iterable[str] | None) -> list[re.Pattern[str]]:
    compiled: list[re.Pattern[str]] = []
    for pattern in patterns or []:
        p = str(pattern).strip()
        if not p:
            continue
        try:
            compiled.append(re.compile(p))
        except re.error as exc:
            raise ValueError(f"Invalid exclude pattern '{p}': {exc}") from exc
    return compiled


def is_excluded(path: str, patterns: list[re.Pattern[str]]) -> bool:
    return any(pattern.fullmatch(path) for pattern in patterns)


def apply_exclude_patterns(files: Iterable[str], exclude_patterns: Iterable[str] | None) -> set[str]:
    compiled = compile_patterns(exclude_patterns)
    files = set(files)
    if not compiled:
        return files
    kept = {f for f in files if not is_excluded(f, compiled)}
    if len(kept) != len(files):
        logger.debug("Global exclude patterns removed %d file(s)", len(files) - len(kept))
    return kept


def _log_collected(changed: set[str]) -> None:
    logger.info("Total changed files detected: %d", len(changed))
    if changed:
        preview = sorted(changed)[:PREVIEW_LIMIT]
        suffix = "..." if len(changed) > PREVIEW_LIMIT else ""
        logger.info("Changed files: %s%s", ", ".join(preview), suffix)


def changed_files_since_base_branch(repo: GitRepository, base_branch: str) -> set[str]:
    resolved = resolve_baseline_ref(repo, base_branch)
    if resolved is None:
        logger.warning(
            "Could not resolve base branch '%s' (tried %s); skipping branch comparison. "
            "Check that base_branch is set correctly in your configuration.",
            base_branch,
            ", ".join(baseline_candidates(base_branch)),
        )
        return set()
    return normalize_paths(repo.diff_branch(resolved))


def detect_changed_files(
    root: Path,
    base_branch: str,
    include_untracked: bool = True,
    exclude_patterns: list[str] | None = None,
) -> set[str]:
    """Union of branch, working tree, staged and (optionally) untracked changes."""
    repo = GitRepository(root)
    if not repo.is_repository():
        logger.warning("Not a git repository: %s", root)
        return set()

    changed: set[str] = set()

    branch_changes = changed_files_since_base_branch(repo, base_branch)
    logger.info("Files from branch comparison: %d", len(branch_changes))
    changed.update(branch_changes)

    working_tree = normalize_paths(repo.working_tree_changes())
    logger.info("Working tree changes: %d", len(working_tree))
    changed.update(working_tree)

    staged = normalize_paths(repo.staged_files())
    logger.info("Staged files: %d", len(staged))
    changed.update(staged)

    if include_untracked:
        untracked = normalize_paths(repo.untracked_files())
        logger.info("Untracked files: %d", len(untracked))
        changed.update(untracked)

    _log_collected(changed)
    return apply_exclude_patterns(changed, exclude_patterns)


def detect_changed_files_from_ref(
    root: Path,
    commit_ref: str,
    exclude_patterns: list[str] | None = None,
) -> set[str]:
    """Two-point diff between ``commit_ref`` and HEAD.

    Working tree, staged and untracked files are ignored: this mode is meant
    for clean checkouts such as CI. An unknown ref raises InvalidRefError.
    """
    repo = GitRepository(root)
    if not repo.is_repository():
        logger.warning("Not a git repository: %s", root)
        return set()

    changed = normalize_paths(repo.diff_from_ref(commit_ref))
    logger.info("Files changed since %s: %d", commit_ref, len(changed))
    _log_collected(changed)
    return apply_exclude_patterns(changed, exclude_patterns)
