# src/mrpipe/mapreduce/local.py
"""In-process job runner for trying pipelines without a cluster.

Plays the batch framework's part: one map task over all records, an optional
combine task over the map output grouped by key, a sort, and one reduce task
per job over the sorted groups. Used by ``mrpipe run`` and by the end-to-end
tests. Not a distributed runtime: no splits, partitions or retries.
"""

from __future__ import annotations

import itertools
import threading
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

from mrpipe.contracts.enums import TaskRole
from mrpipe.core.config import JobContextKeys
from mrpipe.core.logging import get_logger
from mrpipe.mapreduce.adapter import TaskAdapter

if TYPE_CHECKING:
    from mrpipe.contracts.protocols import TypeConverter
    from mrpipe.engine.loader import PipelineLoader

logger = get_logger(__name__)

KeyValue = tuple[Any, Any]


class ListSink:
    """ResultSink that keeps collected pairs in memory."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._pairs: list[KeyValue] = []

    def collect(self, key: Any, value: Any) -> None:
        with self._lock:
            self._pairs.append((key, value))

    @property
    def pairs(self) -> list[KeyValue]:
        with self._lock:
            return list(self._pairs)


@dataclass
class LocalJobResult:
    """Output pairs of the last phase and counters of every phase that ran."""

    output: list[KeyValue]
    counters: dict[TaskRole, dict[str, int]] = field(default_factory=dict)


def read_text_records(path: Path) -> Iterator[KeyValue]:
    """Text input records: (byte offset of the line, line without newline)."""
    offset = 0
    with path.open("rb") as f:
        for raw in f:
            yield offset, raw.rstrip(b"\r\n").decode("utf-8")
            offset += len(raw)


def _sort_key(pair: KeyValue) -> tuple[bool, str, Any]:
    key = pair[0]
    return (key is None, type(key).__name__, key if key is not None else 0)


def group_by_key(pairs: Iterable[KeyValue]) -> Iterator[tuple[Any, list[Any]]]:
    """Sort pairs by key and yield (key, values) groups, like the shuffle."""
    for key, group in itertools.groupby(sorted(pairs, key=_sort_key), key=lambda pair: pair[0]):
        yield key, [value for _, value in group]


class LocalJobRunner:
    """Runs the configured roles of a job context in one process.

    Usage:
        runner = LocalJobRunner(load_job_context(Path("job.yaml")))
        result = runner.run(read_text_records(Path("input.txt")))
    """

    def __init__(
        self,
        job_context: Mapping[str, Any],
        *,
        loader: PipelineLoader | None = None,
        key_converter: TypeConverter | None = None,
        value_converter: TypeConverter | None = None,
    ) -> None:
        self._job_context = job_context
        self._loader = loader
        self._key_converter = key_converter
        self._value_converter = value_converter

    def has_role(self, role: TaskRole) -> bool:
        definition = self._job_context.get(JobContextKeys.definition(role))
        return bool(definition and str(definition).strip())

    def _adapter(self, role: TaskRole, sink: ListSink) -> TaskAdapter:
        return TaskAdapter(
            sink,
            role,
            key_converter=self._key_converter,
            value_converter=self._value_converter,
            loader=self._loader,
        )

    def run_task(self, role: TaskRole, records: Iterable[KeyValue]) -> tuple[list[KeyValue], dict[str, int]]:
        """Run one task of ``role`` over ungrouped records."""
        sink = ListSink()
        with self._adapter(role, sink) as adapter:
            adapter.configure(self._job_context)
            for key, value in records:
                adapter.process_record(key, value)
        return sink.pairs, adapter.counters.snapshot()

    def run_grouped_task(self, role: TaskRole, groups: Iterable[tuple[Any, list[Any]]]) -> tuple[list[KeyValue], dict[str, int]]:
        """Run one task of ``role`` over key-grouped records."""
        sink = ListSink()
        with self._adapter(role, sink) as adapter:
            adapter.configure(self._job_context)
            for key, values in groups:
                adapter.process_group(key, values)
        return sink.pairs, adapter.counters.snapshot()

    def run(self, records: Iterable[KeyValue]) -> LocalJobResult:
        """Map, then combine and reduce when they are configured.

        Raises:
            PipelineLoadError: If the job has no map pipeline
        """
        result = LocalJobResult(output=[])

        output, result.counters[TaskRole.MAP] = self.run_task(TaskRole.MAP, records)
        logger.info("map phase finished", records=len(output))

        if self.has_role(TaskRole.COMBINE):
            output, result.counters[TaskRole.COMBINE] = self.run_grouped_task(TaskRole.COMBINE, group_by_key(output))
            logger.info("combine phase finished", records=len(output))

        if self.has_role(TaskRole.REDUCE):
            output, result.counters[TaskRole.REDUCE] = self.run_grouped_task(TaskRole.REDUCE, group_by_key(output))
            logger.info("reduce phase finished", records=len(output))

        result.output = output
        return result
