"""Single-owner event loop holding the progress of a run."""

from __future__ import annotations

import logging
import queue
import threading
from typing import Callable, Sequence

from .models import (
    Completed,
    Discovered,
    Event,
    Fatal,
    ProcessingState,
    ProgressRecord,
    Repository,
    Snapshot,
    Started,
)

logger = logging.getLogger(__name__)

SnapshotCallback = Callable[[Snapshot], None]


class StateAggregator:
    """Apply events from the inbox one at a time.

    This is the only code that mutates progress state, so that state needs no
    lock as long as ``apply`` and ``run`` are called from a single thread.
    Records are indexed by discovery position, never by arrival order.
    """

    def __init__(
        self,
        inbox: queue.Queue[Event],
        *,
        on_discovered: Callable[[Sequence[Repository]], None] | None = None,
        on_started: Callable[[int, Repository], None] | None = None,
        on_update: SnapshotCallback | None = None,
        poll_interval: float = 0.1,
    ):
        self._inbox = inbox
        self._on_discovered = on_discovered
        self._on_started = on_started
        self._on_update = on_update
        self._poll_interval = poll_interval
        self._repositories: tuple[Repository, ...] = ()
        self._records: dict[int, ProgressRecord] = {}
        self._error: Exception | None = None
        self._loaded = False
        self._stop = threading.Event()

    def snapshot(self) -> Snapshot:
        records = tuple(self._records[index] for index in range(len(self._repositories)))
        return Snapshot(
            repositories=self._repositories,
            records=records,
            error=self._error,
            loaded=self._loaded,
        )

    @property
    def finished(self) -> bool:
        if self._error is not None:
            return True
        return self._loaded and all(record.state.is_terminal for record in self._records.values())

    def stop(self) -> None:
        self._stop.set()

    def apply(self, event: Event) -> None:
        if isinstance(event, Discovered):
            self._apply_discovered(event)
        elif isinstance(event, Started):
            self._transition(event.index, ProcessingState.IN_PROGRESS)
            if self._on_started is not None:
                self._on_started(event.index, event.repository)
        elif isinstance(event, Completed):
            self._apply_completed(event)
        elif isinstance(event, Fatal):
            logger.debug("Fatal error received: %s", event.error)
            if self._error is None:
                self._error = event.error
        else:
            raise TypeError(f"Unsupported event: {event!r}")

    def run(self) -> Snapshot:
        """Drain the inbox until the run is finished or ``stop`` is called."""

        self._publish()
        while not self.finished and not self._stop.is_set():
            try:
                event = self._inbox.get(timeout=self._poll_interval)
            except queue.Empty:
                continue
            self.apply(event)
            self._publish()
        return self.snapshot()

    def _apply_discovered(self, event: Discovered) -> None:
        if self._loaded:
            raise RuntimeError("Repositories were already discovered for this run")
        self._repositories = tuple(event.repositories)
        self._records = {index: ProgressRecord() for index in range(len(self._repositories))}
        self._loaded = True
        logger.debug("Loaded %d repositories", len(self._repositories))
        if self._repositories and self._on_discovered is not None:
            self._on_discovered(self._repositories)

    def _apply_completed(self, event: Completed) -> None:
        state = ProcessingState.FAILED if event.errors else ProcessingState.COMPLETED
        self._transition(
            event.index,
            state,
            deleted_branches=tuple(event.branches),
            errors=tuple(event.errors),
        )
        name = self._repositories[event.index].name
        if event.errors:
            logger.info("%s failed with %d error(s)", name, len(event.errors))
        else:
            logger.debug("%s completed, %d branch(es) removed", name, len(event.branches))

    def _transition(self, index: int, state: ProcessingState, **changes: tuple) -> None:
        current = self._records[index]
        allowed = {
            ProcessingState.IN_PROGRESS: (ProcessingState.PENDING,),
            ProcessingState.COMPLETED: (ProcessingState.IN_PROGRESS,),
            ProcessingState.FAILED: (ProcessingState.IN_PROGRESS,),
        }
        if current.state not in allowed.get(state, ()):
            raise RuntimeError(
                f"Invalid state change for repository {index}: {current.state.value} -> {state.value}"
            )
        self._records[index] = ProgressRecord(
            state=state,
            deleted_branches=changes.get("deleted_branches", current.deleted_branches),
            errors=changes.get("errors", current.errors),
        )

    def _publish(self) -> None:
        if self._on_update is not None:
            self._on_update(self.snapshot())
