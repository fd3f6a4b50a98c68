"""Bounded, first-come-first-served permit pool."""

from __future__ import annotations

import threading
from collections import deque

from .exceptions import PermitAcquisitionError, ValidationError


class ConcurrencyLimiter:
    """Counting semaphore that hands out permits in request order.

    ``threading.Semaphore`` wakes an arbitrary waiter; here each caller queues a
    ticket and only the ticket at the head may take a free permit, so no caller
    can be overtaken indefinitely. ``close`` fails current and future waiters.
    """

    def __init__(self, capacity: int):
        if capacity < 1:
            raise ValidationError(f"Concurrency must be at least 1, got {capacity}.")
        self._capacity = capacity
        self._available = capacity
        self._waiters: deque[object] = deque()
        self._closed = False
        self._cond = threading.Condition()

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def available(self) -> int:
        with self._cond:
            return self._available

    @property
    def closed(self) -> bool:
        with self._cond:
            return self._closed

    def acquire(self) -> None:
        ticket = object()
        with self._cond:
            if self._closed:
                raise PermitAcquisitionError("concurrency limiter is closed")
            self._waiters.append(ticket)
            try:
                while not self._closed and (self._waiters[0] is not ticket or self._available == 0):
                    self._cond.wait()
                if self._closed:
                    raise PermitAcquisitionError("concurrency limiter was closed while waiting for a permit")
                self._available -= 1
            finally:
                self._waiters.remove(ticket)
                # the next ticket may now be at the head with a permit free
                self._cond.notify_all()

    def release(self) -> None:
        with self._cond:
            if self._available >= self._capacity:
                raise ValueError("ConcurrencyLimiter released too many times")
            self._available += 1
            self._cond.notify_all()

    def close(self) -> None:
        with self._cond:
            self._closed = True
            self._cond.notify_all()
