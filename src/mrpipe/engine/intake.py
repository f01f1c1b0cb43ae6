# src/mrpipe/engine/intake.py
"""Bounded row intake with backpressure and close semantics.

Every step of a running pipeline reads from one RowIntake. Producers are the
caller thread (for the entry step) or the upstream step's thread.

Thread Safety Model:
    - put_row(): producer thread, blocks while the intake is full
    - get(): the owning step's thread, blocks until a row or end-of-input
    - finished(): producer signals end-of-input; queued rows still drain
    - abort(): any thread; queued rows are discarded and every waiter wakes

Invariants:
    - len(queue) <= max_pending
    - put_row() never succeeds after finished() or abort()
    - get() returns None exactly when no more rows will arrive
"""

from __future__ import annotations

from collections import deque
from threading import Condition, Lock

from mrpipe.contracts.errors import IntakeClosedError
from mrpipe.contracts.schema import Row, RowSchema


class RowIntake:
    """Thread-safe bounded FIFO of (schema, row) pairs.

    Usage:
        intake = RowIntake("input", max_pending=100)

        # Producer
        intake.put_row(schema, row)  # May block on backpressure
        intake.finished()

        # Consumer
        while (item := intake.get()) is not None:
            schema, row = item
    """

    def __init__(self, step_name: str, max_pending: int = 100) -> None:
        """Initialize intake.

        Args:
            step_name: Name of the step that consumes this intake
            max_pending: Maximum queued rows before put_row() blocks
        """
        if max_pending < 1:
            raise ValueError(f"max_pending must be >= 1, got {max_pending}")

        self._step_name = step_name
        self._max_pending = max_pending

        self._lock = Lock()
        self._not_full = Condition(self._lock)
        self._not_empty = Condition(self._lock)

        self._queue: deque[tuple[RowSchema, Row]] = deque()
        self._finished = False
        self._aborted = False

        self._total_received = 0
        self._max_observed_pending = 0

    @property
    def step_name(self) -> str:
        return self._step_name

    def put_row(self, schema: RowSchema, row: Row) -> None:
        """Queue one row for the step.

        Blocks while the intake is full.

        Raises:
            IntakeClosedError: If end-of-input was signalled or the pipeline
                aborted (including while blocked)
        """
        with self._not_full:
            while len(self._queue) >= self._max_pending and not self._closed_locked():
                self._not_full.wait()
            if self._closed_locked():
                reason = "aborted" if self._aborted else "closed"
                raise IntakeClosedError(f"Intake of step '{self._step_name}' is {reason}")
            self._queue.append((schema, row))
            self._total_received += 1
            if len(self._queue) > self._max_observed_pending:
                self._max_observed_pending = len(self._queue)
            self._not_empty.notify()

    def get(self) -> tuple[RowSchema, Row] | None:
        """Take the next row, blocking until one is available.

        Returns:
            (schema, row), or None once end-of-input is reached or the
            intake was aborted
        """
        with self._not_empty:
            while not self._queue and not self._finished and not self._aborted:
                self._not_empty.wait()
            if self._aborted or not self._queue:
                return None
            item = self._queue.popleft()
            self._not_full.notify()
            return item

    def finished(self) -> None:
        """Signal end-of-input. Idempotent."""
        with self._lock:
            self._finished = True
            self._not_empty.notify_all()
            self._not_full.notify_all()

    def abort(self) -> None:
        """Discard queued rows and wake every waiter. Idempotent."""
        with self._lock:
            self._aborted = True
            self._queue.clear()
            self._not_empty.notify_all()
            self._not_full.notify_all()

    def _closed_locked(self) -> bool:
        return self._finished or self._aborted

    @property
    def is_closed(self) -> bool:
        with self._lock:
            return self._closed_locked()

    @property
    def pending_count(self) -> int:
        with self._lock:
            return len(self._queue)

    @property
    def total_received(self) -> int:
        with self._lock:
            return self._total_received

    @property
    def max_observed_pending(self) -> int:
        with self._lock:
            return self._max_observed_pending

    @property
    def max_pending(self) -> int:
        return self._max_pending
