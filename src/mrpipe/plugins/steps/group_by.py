# src/mrpipe/plugins/steps/group_by.py
"""Group-by step: aggregate rows sharing the same group columns.

Stateful. Groups are held until end-of-input and emitted by flush() in the
order their first row arrived. Input does not need to be sorted, which
matters for combiners that see keys in arrival order.

Null values are ignored by every aggregate except ``count_rows``.

Example definition:
    - name: total
      plugin: group_by
      options:
        group: [key]
        aggregates:
          - {field: value, function: sum, output: outValue}
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Any, Literal

from pydantic import Field

from mrpipe.contracts.enums import ColumnType
from mrpipe.contracts.schema import ColumnMeta, Row, RowSchema
from mrpipe.plugins.base import BaseStep
from mrpipe.plugins.config_base import StepConfig

AggregateFunction = Literal["sum", "count", "count_rows", "min", "max", "first", "last", "concat"]


class AggregateSpec(StepConfig):
    field: str
    function: AggregateFunction
    output: str
    separator: str = ","  # concat only


class GroupByConfig(StepConfig):
    group: list[str] = Field(default_factory=list)
    aggregates: list[AggregateSpec] = Field(min_length=1)


@dataclass
class _Accumulator:
    """Running state of one aggregate within one group."""

    function: str
    separator: str
    value: Any = None
    count: int = 0
    pieces: list[str] = field(default_factory=list)

    def add(self, value: Any) -> None:
        if self.function == "count_rows":
            self.count += 1
            return
        if value is None:
            return
        self.count += 1
        if self.function == "concat":
            self.pieces.append(str(value))
        elif self.function == "first":
            if self.count == 1:
                self.value = value
        elif self.function == "last":
            self.value = value
        elif self.function != "count":
            combine = _COMBINERS[self.function]
            self.value = value if self.count == 1 else combine(self.value, value)

    def result(self) -> Any:
        if self.function in ("count", "count_rows"):
            return self.count
        if self.function == "concat":
            return self.separator.join(self.pieces)
        return self.value


_COMBINERS: dict[str, Callable[[Any, Any], Any]] = {
    "sum": lambda a, b: a + b,
    "min": min,
    "max": max,
}


class GroupByStep(BaseStep):
    """Aggregate rows by group columns, emitting one row per group at flush."""

    name = "group_by"
    config_class = GroupByConfig
    config: GroupByConfig

    def __init__(self, step_name: str, options: dict[str, Any]) -> None:
        super().__init__(step_name, options)
        self._groups: dict[tuple[Any, ...], list[_Accumulator]] = {}
        self._plan: tuple[RowSchema, tuple[int, ...], tuple[int, ...]] | None = None

    def _positions(self, schema: RowSchema) -> tuple[tuple[int, ...], tuple[int, ...]]:
        if self._plan is not None and self._plan[0] is schema:
            return self._plan[1], self._plan[2]
        group_positions = tuple(self._require(schema, name) for name in self.config.group)
        aggregate_positions = tuple(self._require(schema, spec.field) for spec in self.config.aggregates)
        self._plan = (schema, group_positions, aggregate_positions)
        return group_positions, aggregate_positions

    def _require(self, schema: RowSchema, name: str) -> int:
        index = schema.index_of(name)
        if index < 0:
            raise ValueError(f"Step '{self.step_name}' needs missing column '{name}'")
        return index

    def output_schema(self, input_schema: RowSchema) -> RowSchema:
        group_positions, aggregate_positions = self._positions(input_schema)
        columns = [input_schema.column(i) for i in group_positions]
        for spec, position in zip(self.config.aggregates, aggregate_positions, strict=True):
            columns.append(ColumnMeta(spec.output, _aggregate_type(spec.function, input_schema.column(position))))
        return RowSchema(tuple(columns))

    def process(self, schema: RowSchema, row: Row) -> Iterable[Row]:
        group_positions, aggregate_positions = self._positions(schema)
        group_key = tuple(row[i] for i in group_positions)
        accumulators = self._groups.get(group_key)
        if accumulators is None:
            accumulators = [_Accumulator(spec.function, spec.separator) for spec in self.config.aggregates]
            self._groups[group_key] = accumulators
        for accumulator, position in zip(accumulators, aggregate_positions, strict=True):
            accumulator.add(row[position])
        return ()

    def flush(self) -> Iterable[Row]:
        groups, self._groups = self._groups, {}
        for group_key, accumulators in groups.items():
            yield (*group_key, *(accumulator.result() for accumulator in accumulators))


def _aggregate_type(function: str, source: ColumnMeta) -> ColumnType:
    if function in ("count", "count_rows"):
        return ColumnType.INTEGER
    if function == "concat":
        return ColumnType.STRING
    return source.column_type
