"""Dataclasses shared across modules."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Union


@dataclass(frozen=True)
class Repository:
    """A git repository found during discovery."""

    root_path: Path
    name: str

    @property
    def path(self) -> Path:
        return self.root_path / self.name


class ProcessingState(Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (ProcessingState.COMPLETED, ProcessingState.FAILED)


@dataclass(frozen=True)
class ProgressRecord:
    """Progress of a single repository as seen by the aggregator."""

    state: ProcessingState = ProcessingState.PENDING
    deleted_branches: tuple[str, ...] = ()
    errors: tuple[Exception, ...] = ()


@dataclass(frozen=True)
class Discovered:
    repositories: tuple[Repository, ...]


@dataclass(frozen=True)
class Started:
    index: int
    repository: Repository


@dataclass(frozen=True)
class Completed:
    index: int
    branches: tuple[str, ...]
    errors: tuple[Exception, ...]


@dataclass(frozen=True)
class Fatal:
    error: Exception


Event = Union[Discovered, Started, Completed, Fatal]


@dataclass(frozen=True)
class Snapshot:
    """Point-in-time, read-only view of the run for presentation."""

    repositories: tuple[Repository, ...] = ()
    records: tuple[ProgressRecord, ...] = ()
    error: Exception | None = None
    loaded: bool = False

    @property
    def total(self) -> int:
        return len(self.repositories)

    @property
    def completed_count(self) -> int:
        return sum(1 for record in self.records if record.state is ProcessingState.COMPLETED)

    @property
    def failed_count(self) -> int:
        return sum(1 for record in self.records if record.state is ProcessingState.FAILED)

    @property
    def in_progress_count(self) -> int:
        return sum(1 for record in self.records if record.state is ProcessingState.IN_PROGRESS)

    @property
    def processed(self) -> int:
        return self.completed_count + self.failed_count

    @property
    def deleted_total(self) -> int:
        return sum(len(record.deleted_branches) for record in self.records)

    @property
    def finished(self) -> bool:
        if self.error is not None:
            return True
        return self.loaded and all(record.state.is_terminal for record in self.records)

    def entries(self) -> list[tuple[Repository, ProgressRecord]]:
        return list(zip(self.repositories, self.records))


@dataclass(frozen=True)
class RunConfig:
    """Settings for a single cleanup run."""

    root_path: Path
    protected_branches: frozenset[str] = field(default_factory=frozenset)
    concurrency: int = 1
    dry_run: bool = False
    include_squashed: bool = False
