"""Custom exception hierarchy for git-smart-prune."""

from __future__ import annotations


class PruneError(RuntimeError):
    """Base error for all custom exceptions."""


class ValidationError(PruneError):
    """Raised when configuration or user input is invalid."""


class GitCommandError(PruneError):
    """Raised when a git invocation fails."""

    def __init__(
        self,
        command: list[str],
        returncode: int,
        *,
        stdout: str | None = None,
        stderr: str | None = None,
    ):
        self.command = command
        self.returncode = returncode
        self.stdout = stdout or ""
        self.stderr = stderr or ""
        message = f"git command failed (exit {returncode}): {' '.join(command)}"
        details = self.stderr.strip() or self.stdout.strip()
        if details:
            message = f"{message}: {details}"
        super().__init__(message)


class DiscoveryError(PruneError):
    """Raised when the root path cannot be scanned for repositories."""


class PermitAcquisitionError(PruneError):
    """Raised when a concurrency permit can no longer be acquired."""


class MainBranchUnresolved(PruneError):
    """Raised when neither main nor master could be checked out."""

    def __init__(self) -> None:
        super().__init__("the main branch has not been checked out locally")


class SyncError(PruneError):
    """Raised when pulling from the remote fails."""


class RemoteNotFoundError(SyncError):
    """Raised when the repository has no reachable remote to pull from."""

    def __init__(self) -> None:
        super().__init__("remote repository not found")


class SyncConflictError(SyncError):
    """Raised when local and remote changes conflict."""

    def __init__(self) -> None:
        super().__init__("there is a conflict between remote and local changes")


class BranchDeletionError(PruneError):
    """Raised when a single branch could not be deleted."""

    def __init__(self, branch: str, details: str):
        self.branch = branch
        self.details = details
        super().__init__(f"failed to delete branch {branch}: {details}")


__all__ = [
    "PruneError",
    "ValidationError",
    "GitCommandError",
    "DiscoveryError",
    "PermitAcquisitionError",
    "MainBranchUnresolved",
    "SyncError",
    "RemoteNotFoundError",
    "SyncConflictError",
    "BranchDeletionError",
]
