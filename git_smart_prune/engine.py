"""High-level orchestration for a cleanup run."""

from __future__ import annotations

import logging
import queue
import threading

from .aggregator import SnapshotCallback, StateAggregator
from .discovery import discover_repositories
from .dispatcher import Dispatcher
from .exceptions import DiscoveryError
from .git import RepositoryClient
from .limiter import ConcurrencyLimiter
from .models import Discovered, Event, Fatal, RunConfig, Snapshot
from .worker import Worker

logger = logging.getLogger(__name__)


class CleanupEngine:
    """Discover repositories and clean them up with bounded concurrency.

    Discovery, the dispatcher and the workers run on background threads and
    only talk to the aggregator through the inbox. The aggregator loop runs on
    the thread that calls ``run``.
    """

    def __init__(
        self,
        config: RunConfig,
        client: RepositoryClient,
        *,
        on_update: SnapshotCallback | None = None,
        poll_interval: float = 0.1,
    ):
        self.config = config
        self.client = client
        self.inbox: queue.Queue[Event] = queue.Queue()
        self.limiter = ConcurrencyLimiter(config.concurrency)
        self.dispatcher = Dispatcher(self.limiter, self.inbox)
        self.worker = Worker(client, config, self.inbox, self.limiter)
        self.aggregator = StateAggregator(
            self.inbox,
            on_discovered=self.dispatcher.start,
            on_started=self.worker.start,
            on_update=on_update,
            poll_interval=poll_interval,
        )

    def run(self) -> Snapshot:
        threading.Thread(target=self._discover, name="git-smart-prune-discovery", daemon=True).start()
        try:
            snapshot = self.aggregator.run()
        finally:
            # no further dispatching once the loop is gone
            self.limiter.close()
        if snapshot.error is not None:
            logger.debug("Run aborted: %s", snapshot.error)
        return snapshot

    def cancel(self) -> None:
        """Stop accepting work. Git processes already running are left alone."""

        logger.debug("Cancelling run")
        self.aggregator.stop()
        self.limiter.close()

    def _discover(self) -> None:
        try:
            repositories = discover_repositories(self.config.root_path, self.client)
        except DiscoveryError as exc:
            self.inbox.put(Fatal(exc))
            return
        except OSError as exc:
            self.inbox.put(Fatal(DiscoveryError(f"Unable to inspect {self.config.root_path}: {exc}")))
            return
        self.inbox.put(Discovered(tuple(repositories)))
