# src/mrpipe/mapreduce/collector.py
"""Output collector: pipeline rows back into framework key/value pairs.

Attached as a row listener to the pipeline's exit step, so it runs on that
step's thread, not on the task's caller thread. It must never raise into the
engine: any failure is stored in a single first-error slot that the task
adapter reads from the caller thread (process_record, close,
get_exception).

Thread Safety:
    - row_emitted(): exit step thread only
    - exception: any thread; set once under a lock (compare-and-set)
    - counters: TaskCounters is thread-safe
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from typing import TYPE_CHECKING

from mrpipe.contracts.enums import TaskCounter
from mrpipe.core.logging import get_logger
from mrpipe.core.ordinals import KeyValueOrdinals, OrdinalCache, resolve_output_ordinals
from mrpipe.mapreduce.converters import OutputTypeConverter

if TYPE_CHECKING:
    import structlog

    from mrpipe.contracts.protocols import ResultSink
    from mrpipe.contracts.schema import Row, RowSchema
    from mrpipe.mapreduce.counters import TaskCounters


class OutputCollector:
    """Forwards "outKey"/"outValue" of every emitted row to the result sink.

    A missing column or a null value is forwarded as None and counted in
    OUT_RECORD_WITH_NULL_KEY / OUT_RECORD_WITH_NULL_VALUE. Non-null values
    are converted to the job's declared output types when given.

    After the first error, further rows are dropped: the task is going to
    fail and partial output would only mislead. ``on_error`` is called once,
    with the first error, so the owner can stop the pipeline.
    """

    def __init__(
        self,
        sink: ResultSink,
        counters: TaskCounters,
        *,
        key_type: type | None = None,
        value_type: type | None = None,
        debug: bool = False,
        logger: structlog.stdlib.BoundLogger | None = None,
        resolver: Callable[[RowSchema | None], KeyValueOrdinals] = resolve_output_ordinals,
        on_error: Callable[[BaseException], None] | None = None,
    ) -> None:
        self._sink = sink
        self._counters = counters
        self._key_converter = OutputTypeConverter(key_type) if key_type is not None else None
        self._value_converter = OutputTypeConverter(value_type) if value_type is not None else None
        self._debug = debug
        self._log = logger or get_logger(__name__)
        self._ordinals = OrdinalCache(resolver)
        self._on_error = on_error

        self._exception: BaseException | None = None
        self._exception_lock = threading.Lock()
        self._dropped = 0

    def row_emitted(self, schema: RowSchema, row: Row) -> None:
        if self.exception is not None:
            self._dropped += 1
            return
        try:
            self._collect(schema, row)
        except Exception as e:
            if self.set_exception(e):
                self._log.error("output collection failed", error=str(e), error_type=type(e).__name__)
                if self._on_error is not None:
                    self._on_error(e)

    def _collect(self, schema: RowSchema, row: Row) -> None:
        ordinals = self._ordinals.get(schema)
        key = row[ordinals.key] if ordinals.has_key else None
        value = row[ordinals.value] if ordinals.has_value else None

        if key is None:
            self._counters.increment(TaskCounter.OUT_RECORD_WITH_NULL_KEY)
        elif self._key_converter is not None:
            key = self._key_converter.convert(key)

        if value is None:
            self._counters.increment(TaskCounter.OUT_RECORD_WITH_NULL_VALUE)
        elif self._value_converter is not None:
            value = self._value_converter.convert(value)

        if self._debug:
            self._log.debug("collecting output record", key=key, value=value)
        self._sink.collect(key, value)
        self._counters.increment(TaskCounter.OUTPUT_RECORDS)

    def set_exception(self, error: BaseException) -> bool:
        """Record ``error`` if no error was recorded yet.

        Returns:
            True if this call recorded the error
        """
        with self._exception_lock:
            if self._exception is not None:
                return False
            self._exception = error
            return True

    @property
    def exception(self) -> BaseException | None:
        with self._exception_lock:
            return self._exception

    @property
    def output_records(self) -> int:
        return self._counters.get(TaskCounter.OUTPUT_RECORDS)

    @property
    def null_key_records(self) -> int:
        return self._counters.get(TaskCounter.OUT_RECORD_WITH_NULL_KEY)

    @property
    def null_value_records(self) -> int:
        return self._counters.get(TaskCounter.OUT_RECORD_WITH_NULL_VALUE)

    @property
    def dropped_records(self) -> int:
        return self._dropped
