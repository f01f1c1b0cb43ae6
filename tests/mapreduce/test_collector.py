# tests/mapreduce/test_collector.py
"""Tests for OutputCollector.

The collector runs on the exit step's thread and must never raise into the
engine; these tests call row_emitted() directly.
"""

from __future__ import annotations

import pytest

from mrpipe.contracts.enums import TaskCounter
from mrpipe.contracts.errors import ConversionError
from mrpipe.contracts.protocols import RowListener
from mrpipe.contracts.schema import RowSchema
from mrpipe.core.ordinals import KeyValueOrdinals, resolve_output_ordinals
from mrpipe.mapreduce.collector import OutputCollector
from mrpipe.mapreduce.counters import TaskCounters
from tests.conftest import RecordingReporter, RecordingSink

OUT = RowSchema.of("word", "outKey", "outValue")


class TestOutputCollector:
    """Tests for forwarding, null handling and conversion."""

    def test_is_row_listener(self, sink: RecordingSink) -> None:
        assert isinstance(OutputCollector(sink, TaskCounters()), RowListener)

    def test_forwards_out_key_and_value(self, sink: RecordingSink) -> None:
        collector = OutputCollector(sink, TaskCounters())

        collector.row_emitted(OUT, ("ignored", "the", 1))
        collector.row_emitted(OUT, ("ignored", "cat", 2))

        assert sink.pairs == [("the", 1), ("cat", 2)]
        assert collector.output_records == 2
        assert collector.exception is None

    def test_case_insensitive_output_names(self, sink: RecordingSink) -> None:
        collector = OutputCollector(sink, TaskCounters())

        collector.row_emitted(RowSchema.of("OUTVALUE", "outkey"), (9, "k"))

        assert sink.pairs == [("k", 9)]

    def test_null_key_and_value_counted_and_forwarded(self, sink: RecordingSink) -> None:
        counters = TaskCounters()
        collector = OutputCollector(sink, counters)

        collector.row_emitted(OUT, ("x", None, 1))
        collector.row_emitted(OUT, ("x", "k", None))
        collector.row_emitted(OUT, ("x", None, None))

        assert sink.pairs == [(None, 1), ("k", None), (None, None)]
        assert collector.null_key_records == 2
        assert collector.null_value_records == 2
        assert collector.output_records == 3

    def test_missing_columns_count_as_null(self, sink: RecordingSink) -> None:
        collector = OutputCollector(sink, TaskCounters())

        collector.row_emitted(RowSchema.of("outKey"), ("k",))

        assert sink.pairs == [("k", None)]
        assert collector.null_value_records == 1
        assert collector.null_key_records == 0

    def test_converts_to_output_types(self, sink: RecordingSink) -> None:
        collector = OutputCollector(sink, TaskCounters(), key_type=str, value_type=int)

        collector.row_emitted(OUT, ("x", 42, "7"))

        assert sink.pairs == [("42", 7)]

    def test_null_not_converted(self, sink: RecordingSink) -> None:
        collector = OutputCollector(sink, TaskCounters(), key_type=str, value_type=int)

        collector.row_emitted(OUT, ("x", None, None))

        assert sink.pairs == [(None, None)]

    def test_ordinals_resolved_once_per_schema(self, sink: RecordingSink) -> None:
        calls = 0

        def counting(schema: RowSchema | None) -> KeyValueOrdinals:
            nonlocal calls
            calls += 1
            return resolve_output_ordinals(schema)

        collector = OutputCollector(sink, TaskCounters(), resolver=counting)
        for i in range(10):
            collector.row_emitted(OUT, ("x", f"k{i}", i))

        assert calls == 1
        assert len(sink.pairs) == 10

    def test_counters_mirrored_to_reporter(self, sink: RecordingSink) -> None:
        reporter = RecordingReporter()
        collector = OutputCollector(sink, TaskCounters(reporter))

        collector.row_emitted(OUT, ("x", None, 1))

        assert reporter.total(TaskCounter.OUTPUT_RECORDS) == 1
        assert reporter.total(TaskCounter.OUT_RECORD_WITH_NULL_KEY) == 1


class TestOutputCollectorErrors:
    """Tests for the first-error slot."""

    def test_sink_error_recorded_not_raised(self) -> None:
        sink = RecordingSink(fail_on=2)
        collector = OutputCollector(sink, TaskCounters())

        collector.row_emitted(OUT, ("x", "a", 1))
        collector.row_emitted(OUT, ("x", "b", 2))

        assert isinstance(collector.exception, OSError)
        assert sink.pairs == [("a", 1)]
        assert collector.output_records == 1

    def test_rows_after_error_are_dropped(self) -> None:
        sink = RecordingSink(fail_on=1)
        collector = OutputCollector(sink, TaskCounters())

        for i in range(4):
            collector.row_emitted(OUT, ("x", "k", i))

        assert collector.dropped_records == 3
        assert "record 1" in str(collector.exception)

    def test_conversion_error_recorded(self, sink: RecordingSink) -> None:
        collector = OutputCollector(sink, TaskCounters(), value_type=int)

        collector.row_emitted(OUT, ("x", "k", "lots"))

        assert isinstance(collector.exception, ConversionError)
        assert sink.pairs == []

    def test_first_error_wins(self, sink: RecordingSink) -> None:
        collector = OutputCollector(sink, TaskCounters())
        first = RuntimeError("first")

        assert collector.set_exception(first) is True
        assert collector.set_exception(RuntimeError("second")) is False
        assert collector.exception is first

    def test_unsupported_output_type(self, sink: RecordingSink) -> None:
        with pytest.raises(ValueError, match="Unsupported output type"):
            OutputCollector(sink, TaskCounters(), key_type=list)

    def test_on_error_called_once_with_first_error(self) -> None:
        sink = RecordingSink(fail_on=1)
        reported: list[BaseException] = []
        collector = OutputCollector(sink, TaskCounters(), on_error=reported.append)

        for i in range(3):
            collector.row_emitted(OUT, ("x", "k", i))

        assert reported == [collector.exception]
        assert isinstance(reported[0], OSError)
