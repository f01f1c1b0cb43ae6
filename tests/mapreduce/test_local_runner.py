# tests/mapreduce/test_local_runner.py
"""Tests for the in-process job runner."""

from __future__ import annotations

from pathlib import Path

import pytest

from mrpipe.contracts.enums import TaskRole
from mrpipe.contracts.errors import PipelineExecutionError, PipelineLoadError
from mrpipe.engine.loader import PipelineLoader
from mrpipe.mapreduce.local import ListSink, LocalJobRunner, group_by_key, read_text_records
from tests.conftest import EXPLODING, WORDCOUNT_MAP, WORDCOUNT_REDUCE, job_context


class TestHelpers:
    """Tests for input reading and grouping."""

    def test_read_text_records_keys_are_byte_offsets(self, tmp_path: Path) -> None:
        path = tmp_path / "input.txt"
        path.write_bytes("héllo\r\nworld\n\nend".encode())

        records = list(read_text_records(path))

        assert records == [(0, "héllo"), (8, "world"), (14, ""), (15, "end")]

    def test_group_by_key_sorts_and_groups(self) -> None:
        pairs = [("b", 1), ("a", 2), ("b", 3), (None, 4), ("a", 5)]

        assert list(group_by_key(pairs)) == [("a", [2, 5]), ("b", [1, 3]), (None, [4])]

    def test_list_sink(self) -> None:
        sink = ListSink()
        sink.collect("k", 1)

        assert sink.pairs == [("k", 1)]


class TestLocalJobRunner:
    """Tests for running map, combine and reduce in one process."""

    def test_wordcount(self, loader: PipelineLoader) -> None:
        context = job_context(
            map_definition=WORDCOUNT_MAP,
            combine_definition=WORDCOUNT_REDUCE,
            reduce_definition=WORDCOUNT_REDUCE,
            output_value_class="int",
        )
        records = [(0, "the cat"), (8, "The dog"), (16, "")]

        result = LocalJobRunner(context, loader=loader).run(records)

        assert result.output == [("cat", 1), ("dog", 1), ("the", 2)]
        assert set(result.counters) == {TaskRole.MAP, TaskRole.COMBINE, TaskRole.REDUCE}
        assert result.counters[TaskRole.MAP]["input_records"] == 3
        assert result.counters[TaskRole.MAP]["output_records"] == 4
        assert result.counters[TaskRole.COMBINE]["input_records"] == 4
        assert result.counters[TaskRole.REDUCE]["output_records"] == 3

    def test_map_only(self, loader: PipelineLoader) -> None:
        runner = LocalJobRunner(job_context(map_definition=WORDCOUNT_MAP), loader=loader)

        result = runner.run([(0, "a b")])

        assert result.output == [("a", "1"), ("b", "1")]
        assert list(result.counters) == [TaskRole.MAP]
        assert not runner.has_role(TaskRole.REDUCE)

    def test_missing_map_definition(self, loader: PipelineLoader) -> None:
        runner = LocalJobRunner(job_context(reduce_definition=WORDCOUNT_REDUCE), loader=loader)

        with pytest.raises(PipelineLoadError, match="for map"):
            runner.run([(0, "a")])

    def test_pipeline_failure_propagates(self, loader: PipelineLoader) -> None:
        runner = LocalJobRunner(job_context(map_definition=EXPLODING), loader=loader)

        with pytest.raises(PipelineExecutionError, match="boom"):
            runner.run([(0, "a")])
