"""Per-repository cleanup procedure."""

from __future__ import annotations

import logging
import queue
import threading
from dataclasses import dataclass
from typing import Iterable

from .exceptions import BranchDeletionError, GitCommandError, MainBranchUnresolved, PruneError
from .git import RepositoryClient
from .limiter import ConcurrencyLimiter
from .models import Completed, Event, Repository, RunConfig

logger = logging.getLogger(__name__)

MAIN_BRANCH_CANDIDATES = ("main", "master")


@dataclass
class CleanupResult:
    branches: list[str]
    errors: list[Exception]


def resolve_main_branch(client: RepositoryClient, repository: Repository) -> str:
    for candidate in MAIN_BRANCH_CANDIDATES:
        try:
            client.checkout(repository.path, candidate)
        except GitCommandError as exc:
            logger.debug("Could not check out %s in %s: %s", candidate, repository.name, exc)
            continue
        return candidate
    raise MainBranchUnresolved()


def cleanup_repository(
    client: RepositoryClient,
    repository: Repository,
    config: RunConfig,
    result: CleanupResult | None = None,
) -> CleanupResult:
    """Delete the branches of one repository that are already merged into main.

    Failures that stop the whole repository (main branch, pull, merge listing)
    come back as the single error of the result. A failed deletion is recorded
    and the remaining branches are still attempted. Progress is accumulated in
    ``result`` when one is passed, so it survives an unexpected exception.
    """

    if result is None:
        result = CleanupResult(branches=[], errors=[])
    try:
        main_branch = resolve_main_branch(client, repository)
        # up to date first, so merge status reflects the remote
        client.pull(repository.path)
        merged = client.list_merged_branches(repository.path, main_branch)
    except PruneError as exc:
        result.errors.append(exc)
        return result

    _delete_branches(client, repository, config, main_branch, merged, force=False, result=result)

    if config.include_squashed:
        try:
            squashed = client.list_squash_merged_branches(repository.path, main_branch, merged)
        except PruneError as exc:
            logger.warning("Squash-merge detection failed for %s: %s", repository.name, exc)
            result.errors.append(exc)
        else:
            _delete_branches(client, repository, config, main_branch, squashed, force=True, result=result)
    return result


def _delete_branches(
    client: RepositoryClient,
    repository: Repository,
    config: RunConfig,
    main_branch: str,
    branches: Iterable[str],
    *,
    force: bool,
    result: CleanupResult,
) -> None:
    for branch in branches:
        if branch == main_branch or branch in config.protected_branches:
            continue
        if config.dry_run:
            result.branches.append(branch)
            continue
        try:
            client.delete_branch(repository.path, branch, force=force)
        except (BranchDeletionError, OSError) as exc:
            logger.info("%s: %s", repository.name, exc)
            result.errors.append(exc)
        else:
            result.branches.append(branch)


class Worker:
    """Run the cleanup for a dispatched repository and report back."""

    def __init__(
        self,
        client: RepositoryClient,
        config: RunConfig,
        inbox: queue.Queue[Event],
        limiter: ConcurrencyLimiter,
    ):
        self._client = client
        self._config = config
        self._inbox = inbox
        self._limiter = limiter

    def start(self, index: int, repository: Repository) -> threading.Thread:
        thread = threading.Thread(
            target=self.run,
            args=(index, repository),
            name=f"git-smart-prune-{repository.name}",
            daemon=True,
        )
        thread.start()
        return thread

    def run(self, index: int, repository: Repository) -> None:
        result = CleanupResult(branches=[], errors=[])
        try:
            cleanup_repository(self._client, repository, self._config, result)
        except Exception as exc:
            logger.exception("Unexpected failure while processing %s", repository.name)
            result.errors.append(exc)
        try:
            self._inbox.put(Completed(index, tuple(result.branches), tuple(result.errors)))
        finally:
            self._limiter.release()
