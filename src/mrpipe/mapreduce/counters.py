"""Task counters shared by the injector and the output collector."""

from __future__ import annotations

from threading import Lock
from typing import TYPE_CHECKING

from mrpipe.contracts.enums import TaskCounter

if TYPE_CHECKING:
    from mrpipe.contracts.protocols import Reporter


class TaskCounters:
    """Monotonic counters, safe to increment from any thread.

    INPUT_RECORDS is incremented on the caller thread; the output counters on
    the exit step's thread. If a reporter is attached every increment is
    mirrored to it (the reporter must be thread-safe).
    """

    def __init__(self, reporter: Reporter | None = None) -> None:
        self._lock = Lock()
        self._counts: dict[TaskCounter, int] = dict.fromkeys(TaskCounter, 0)
        self._reporter = reporter

    def increment(self, counter: TaskCounter, amount: int = 1) -> None:
        if amount < 0:
            raise ValueError(f"Counters only increase, got {amount} for {counter}")
        with self._lock:
            self._counts[counter] += amount
        if self._reporter is not None:
            self._reporter.increment_counter(counter, amount)

    def get(self, counter: TaskCounter) -> int:
        with self._lock:
            return self._counts[counter]

    def snapshot(self) -> dict[str, int]:
        with self._lock:
            return {str(counter): count for counter, count in self._counts.items()}

    @property
    def input_records(self) -> int:
        return self.get(TaskCounter.INPUT_RECORDS)

    @property
    def output_records(self) -> int:
        return self.get(TaskCounter.OUTPUT_RECORDS)
