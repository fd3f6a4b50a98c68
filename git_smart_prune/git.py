"""Thin wrappers around git CLI commands."""

from __future__ import annotations

import logging
import shutil
import subprocess
from pathlib import Path
from typing import Iterable, Protocol, Sequence

from .exceptions import (
    BranchDeletionError,
    GitCommandError,
    RemoteNotFoundError,
    SyncConflictError,
    SyncError,
    ValidationError,
)

logger = logging.getLogger(__name__)

_BRANCH_MARKERS = "*+"


class RepositoryClient(Protocol):
    """Git capabilities needed to discover and clean up repositories."""

    def is_repository(self, path: Path) -> bool:
        ...

    def checkout(self, path: Path, branch: str) -> None:
        ...

    def pull(self, path: Path) -> None:
        """Raise a SyncError subclass when the pull fails."""
        ...

    def list_merged_branches(self, path: Path, main_branch: str) -> list[str]:
        ...

    def list_squash_merged_branches(
        self,
        path: Path,
        main_branch: str,
        already_merged: Sequence[str],
    ) -> list[str]:
        ...

    def delete_branch(self, path: Path, branch: str, *, force: bool = False) -> None:
        """Raise BranchDeletionError when git refuses to delete the branch."""
        ...


def require_git() -> None:
    if shutil.which("git") is None:
        raise ValidationError("Required binary not found in PATH: git")


def run_git(
    args: Iterable[str],
    *,
    cwd: Path,
    raise_on_error: bool = True,
) -> subprocess.CompletedProcess[str]:
    """Execute a git command and optionally raise on failure."""

    cmd = ["git", *args]
    logger.debug("Running command: %s (cwd=%s)", " ".join(cmd), cwd)
    proc = subprocess.run(
        cmd,
        cwd=str(cwd),
        capture_output=True,
        text=True,
        check=False,
    )
    if raise_on_error and proc.returncode != 0:
        raise GitCommandError(cmd, proc.returncode, stdout=proc.stdout, stderr=proc.stderr)
    return proc


def parse_branch_list(output: str, *, exclude: str | None = None) -> list[str]:
    """Turn `git branch` output into bare branch names, keeping git's order."""

    names: list[str] = []
    for raw in output.splitlines():
        name = raw.strip().lstrip(_BRANCH_MARKERS).strip()
        if not name or name == exclude or name.startswith("("):
            continue
        names.append(name)
    return names


class GitClient:
    """RepositoryClient backed by the git binary."""

    def is_repository(self, path: Path) -> bool:
        if not path.is_dir():
            return False
        proc = run_git(["rev-parse"], cwd=path, raise_on_error=False)
        return proc.returncode == 0

    def checkout(self, path: Path, branch: str) -> None:
        run_git(["checkout", branch], cwd=path)

    def pull(self, path: Path) -> None:
        proc = run_git(["pull"], cwd=path, raise_on_error=False)
        if proc.returncode == 0:
            return
        logger.debug("git pull in %s exited with %s: %s", path, proc.returncode, proc.stderr.strip())
        if proc.returncode == 1:
            raise RemoteNotFoundError()
        if proc.returncode == 128:
            raise SyncConflictError()
        details = proc.stderr.strip() or f"exit status {proc.returncode}"
        raise SyncError(f"failed to pull latest changes: {details}")

    def list_merged_branches(self, path: Path, main_branch: str) -> list[str]:
        proc = run_git(["branch", "--merged", main_branch], cwd=path)
        return parse_branch_list(proc.stdout, exclude=main_branch)

    def list_squash_merged_branches(
        self,
        path: Path,
        main_branch: str,
        already_merged: Sequence[str],
    ) -> list[str]:
        """Best-effort detection of branches that were squash-merged into main.

        Each candidate's tree is committed on top of its merge-base with main as
        a dangling commit; `git cherry` reports it with a leading "-" when an
        equivalent patch already exists upstream. Heuristic, not exact.
        """

        skip = set(already_merged)
        proc = run_git(["for-each-ref", "refs/heads/", "--format=%(refname:short)"], cwd=path)
        squashed: list[str] = []
        for raw in proc.stdout.splitlines():
            branch = raw.strip()
            # branches merged directly never show up as patch-equivalent here
            if not branch or branch == main_branch or branch in skip:
                continue
            base = run_git(["merge-base", main_branch, branch], cwd=path).stdout.strip()
            tree = run_git(["rev-parse", f"{branch}^{{tree}}"], cwd=path).stdout.strip()
            dangling = run_git(
                ["commit-tree", tree, "-p", base, "-m", "Temp commit"],
                cwd=path,
            ).stdout.strip()
            cherry = run_git(["cherry", main_branch, dangling], cwd=path).stdout
            if cherry.startswith("-"):
                squashed.append(branch)
        return squashed

    def delete_branch(self, path: Path, branch: str, *, force: bool = False) -> None:
        command = ["branch", "--delete"]
        if force:
            command.append("--force")
        command.extend(["--", branch])
        proc = run_git(command, cwd=path, raise_on_error=False)
        if proc.returncode != 0:
            details = proc.stderr.strip() or proc.stdout.strip() or "Unknown git error."
            raise BranchDeletionError(branch, details)
