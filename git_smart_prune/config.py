"""Configuration management."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Iterable

from rich.logging import RichHandler

from .exceptions import ValidationError
from .models import RunConfig

CONCURRENCY_ENV = "GIT_SMART_PRUNE_CONCURRENCY"
PROTECTED_ENV = "GIT_SMART_PRUNE_PROTECTED"
DEFAULT_CONCURRENCY = 1


def configure_logging(verbose: bool, console=None) -> None:
    # WARNING by default so log lines do not interleave with the live view
    level = logging.DEBUG if verbose else logging.WARNING
    handler = RichHandler(console=console, show_path=False, markup=False)
    logging.basicConfig(level=level, format="%(message)s", handlers=[handler], force=True)


def get_default_concurrency() -> int:
    """Get the default concurrency from env or config."""
    raw = os.getenv(CONCURRENCY_ENV, "").strip()
    if not raw:
        return DEFAULT_CONCURRENCY
    try:
        return int(raw)
    except ValueError as exc:
        raise ValidationError(f"{CONCURRENCY_ENV} must be an integer, got {raw!r}.") from exc


def get_env_protected_branches() -> list[str]:
    """Get extra protected branches from environment."""
    raw = os.getenv(PROTECTED_ENV, "")
    return [name.strip() for name in raw.split(",") if name.strip()]


def load_config(
    path: Path,
    *,
    protected: Iterable[str] = (),
    concurrency: int | None = None,
    dry_run: bool = False,
    include_squashed: bool = False,
) -> RunConfig:
    resolved_concurrency = get_default_concurrency() if concurrency is None else concurrency
    if resolved_concurrency < 1:
        raise ValidationError(f"Concurrency must be at least 1, got {resolved_concurrency}.")
    protected_branches = {name.strip() for name in protected if name and name.strip()}
    protected_branches.update(get_env_protected_branches())
    return RunConfig(
        root_path=path.expanduser().absolute(),
        protected_branches=frozenset(protected_branches),
        concurrency=resolved_concurrency,
        dry_run=dry_run,
        include_squashed=include_squashed,
    )
