"""Locate the repositories a run should process."""

from __future__ import annotations

import logging
from pathlib import Path

from .exceptions import DiscoveryError
from .git import RepositoryClient
from .models import Repository

logger = logging.getLogger(__name__)


def discover_repositories(root: Path, client: RepositoryClient) -> list[Repository]:
    """Return the repository at ``root`` or the repositories directly beneath it.

    An empty list means nothing was found and is not an error. Children are
    returned in name order.
    """

    root = root.expanduser().absolute()
    if client.is_repository(root):
        logger.debug("%s is a repository", root)
        return [Repository(root_path=root.parent, name=root.name)]
    try:
        children = sorted(root.iterdir(), key=lambda child: child.name)
    except OSError as exc:
        raise DiscoveryError(f"Unable to read directory {root}: {exc.strerror or exc}") from exc
    repositories = [
        Repository(root_path=root, name=child.name)
        for child in children
        if child.is_dir() and not child.is_symlink() and client.is_repository(child)
    ]
    logger.debug("Discovered %d repositories under %s", len(repositories), root)
    return repositories
