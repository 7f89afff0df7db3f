from __future__ import annotations

import logging

from monorepo_impact.git_scope import GitRepository

logger = logging.getLogger(__name__)

DEFAULT_REMOTE = "origin"


def baseline_candidates(base_branch: str, remote: str = DEFAULT_REMOTE) -> list[str]:
    """Refs probed for ``base_branch``, in preference order."""
    prefix = f"{remote}/"
    if base_branch.startswith(prefix):
        return [base_branch]
    return [f"{prefix}{base_branch}", base_branch]


def resolve_baseline_ref(
    repo: GitRepository,
    base_branch: str,
    remote: str = DEFAULT_REMOTE,
) -> str | None:
    """Resolve ``base_branch`` to an existing ref, or None.

    An already remote-qualified name is accepted only if it exists. Otherwise
    the remote-tracking ref is preferred over the local branch of the same name.
    """
    for candidate in baseline_candidates(base_branch, remote):
        if repo.ref_exists(candidate):
            logger.debug("Resolved base branch '%s' to '%s'", base_branch, candidate)
            return candidate
        logger.debug("Base branch candidate '%s' does not exist", candidate)
    return None
