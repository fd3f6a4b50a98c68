"""Admit discovered repositories one permit at a time."""

from __future__ import annotations

import logging
import queue
import threading
from typing import Sequence

from .exceptions import PermitAcquisitionError
from .limiter import ConcurrencyLimiter
from .models import Event, Fatal, Repository, Started

logger = logging.getLogger(__name__)


class Dispatcher:
    """Emit a Started event per repository, in order, once a permit is held.

    The permit is handed to the worker for that repository, which releases it
    after reporting completion. The dispatcher does not wait for completions.
    """

    def __init__(self, limiter: ConcurrencyLimiter, inbox: queue.Queue[Event]):
        self._limiter = limiter
        self._inbox = inbox
        self._thread: threading.Thread | None = None

    def start(self, repositories: Sequence[Repository]) -> threading.Thread:
        thread = threading.Thread(
            target=self.dispatch,
            args=(tuple(repositories),),
            name="git-smart-prune-dispatcher",
            daemon=True,
        )
        self._thread = thread
        thread.start()
        return thread

    def join(self, timeout: float | None = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout)

    def dispatch(self, repositories: Sequence[Repository]) -> None:
        for index, repository in enumerate(repositories):
            try:
                self._limiter.acquire()
            except PermitAcquisitionError as exc:
                logger.debug("Stopped dispatching at %s: %s", repository.name, exc)
                self._inbox.put(Fatal(exc))
                return
            logger.debug("Dispatching %s (%d/%d)", repository.name, index + 1, len(repositories))
            self._inbox.put(Started(index, repository))
