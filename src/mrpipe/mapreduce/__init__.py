"""Adapter layer running pipelines as map, combine and reduce tasks."""

from mrpipe.mapreduce.adapter import PipelineCombiner, PipelineMapper, PipelineReducer, TaskAdapter
from mrpipe.mapreduce.collector import OutputCollector
from mrpipe.mapreduce.converters import ColumnCoercer, OutputTypeConverter, coerce_value
from mrpipe.mapreduce.counters import TaskCounters
from mrpipe.mapreduce.injector import RowInjector
from mrpipe.mapreduce.local import ListSink, LocalJobResult, LocalJobRunner, group_by_key, read_text_records

__all__ = [
    "ColumnCoercer",
    "ListSink",
    "LocalJobResult",
    "LocalJobRunner",
    "OutputCollector",
    "OutputTypeConverter",
    "PipelineCombiner",
    "PipelineMapper",
    "PipelineReducer",
    "RowInjector",
    "TaskAdapter",
    "TaskCounters",
    "coerce_value",
    "group_by_key",
    "read_text_records",
]
