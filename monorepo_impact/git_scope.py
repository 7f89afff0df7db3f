from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
import logging
import subprocess

logger = logging.getLogger(__name__)


class GitScopeError(RuntimeError):
    pass


class InvalidRefError(GitScopeError):
    pass


@dataclass(frozen=True)
class GitCommandResult:
    success: bool
    output: list[str] = field(default_factory=list)
    exit_code: int = 0
    error_output: str = ""


def run_git(directory: Path, *args: str) -> GitCommandResult:
    """Run a read-only git query in ``directory``.

    A non-zero exit is reported through the result, never raised; callers
    decide whether the failure was expected.
    """
    cmd = ["git", "-c", "core.quotepath=off", *args]

    try:
        # communicate() drains stdout and stderr before waiting on the process
        proc = subprocess.run(
            cmd,
            cwd=str(directory),
            capture_output=True,
            text=True,
            check=False,
        )
    except FileNotFoundError as exc:
        raise GitScopeError("git is not installed or not available in PATH") from exc

    if proc.returncode != 0:
        stderr = (proc.stderr or "").strip()
        return GitCommandResult(
            success=False,
            output=[],
            exit_code=proc.returncode,
            error_output=stderr,
        )

    out = []
    for line in (proc.stdout or "").splitlines():
        p = line.rstrip("\r")
        if p.strip():
            out.append(p)
    return GitCommandResult(success=True, output=out, exit_code=proc.returncode)


def run_git_for_output(directory: Path, *args: str) -> list[str]:
    result = run_git(directory, *args)
    if not result.success:
        logger.warning(
            "git %s failed with exit code %s: %s",
            " ".join(args),
            result.exit_code,
            result.error_output or "no error output",
        )
        return []
    return result.output


def find_git_root(start: Path) -> Path | None:
    current = start.resolve()
    for candidate in [current, *current.parents]:
        if (candidate / ".git").exists():
            return candidate
    return None


class GitRepository:
    """Semantic git queries scoped to one working copy.

    Every query returns an empty list when ``root`` is not inside a git
    working copy, so callers can treat "no repository" as "no changes".
    Paths are returned relative to ``root``; when ``root`` is a subdirectory
    of the working copy, files outside it are left out.
    """

    def __init__(self, root: Path):
        self.root = Path(root)
        self.git_dir = find_git_root(self.root)
        self.prefix = ""
        if self.git_dir is not None:
            rel = self.root.resolve().relative_to(self.git_dir).as_posix()
            self.prefix = "" if rel == "." else f"{rel}/"
            if self.prefix:
                logger.info("Workspace root is %s inside repository %s", rel, self.git_dir)

    def is_repository(self) -> bool:
        return self.git_dir is not None

    def _rebase(self, paths: list[str]) -> list[str]:
        if not self.prefix:
            return paths
        out = [p[len(self.prefix):] for p in paths if p.startswith(self.prefix)]
        if len(out) != len(paths):
            logger.debug("Ignored %d file(s) outside %s", len(paths) - len(out), self.prefix)
        return out

    def ref_exists(self, ref: str) -> bool:
        if self.git_dir is None:
            return False
        result = run_git(self.git_dir, "rev-parse", "--verify", "--quiet", f"{ref}^{{commit}}")
        if not result.success:
            logger.debug("Ref '%s' not found (exit code %s)", ref, result.exit_code)
        return result.success

    def diff_branch(self, resolved_ref: str) -> list[str]:
        """Files changed between the merge base of ``resolved_ref`` and HEAD."""
        if self.git_dir is None:
            return []
        return self._rebase(run_git_for_output(self.git_dir, "diff", "--name-only", f"{resolved_ref}...HEAD"))

    def diff_from_ref(self, commit_ref: str) -> list[str]:
        """Files changed between ``commit_ref`` and HEAD (two-point diff)."""
        if self.git_dir is None:
            return []
        result = run_git(self.git_dir, "diff", "--name-only", commit_ref, "HEAD")
        if not result.success:
            raise InvalidRefError(
                f"Commit ref '{commit_ref}' does not exist in this repository. "
                "Check the value passed to --ref or set MONOREPO_COMMIT_REF / commit_ref "
                "to an existing commit, tag or branch."
            )
        return self._rebase(result.output)

    def working_tree_changes(self) -> list[str]:
        if self.git_dir is None:
            return []
        return self._rebase(run_git_for_output(self.git_dir, "diff", "--name-only", "HEAD"))

    def staged_files(self) -> list[str]:
        if self.git_dir is None:
            return []
        return self._rebase(run_git_for_output(self.git_dir, "diff", "--name-only", "--cached"))

    def untracked_files(self) -> list[str]:
        if self.git_dir is None:
            return []
        return self._rebase(run_git_for_output(self.git_dir, "ls-files", "--others", "--exclude-standard"))
