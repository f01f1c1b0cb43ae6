"""Column-shaping steps: passthrough, rename, select and constant.

All of them are stateless and emit exactly one row per input row.
"""

from collections.abc import Iterable
from typing import Any

from pydantic import Field

from mrpipe.contracts.enums import ColumnType
from mrpipe.contracts.schema import ColumnMeta, Row, RowSchema
from mrpipe.plugins.base import BaseStep
from mrpipe.plugins.config_base import StepConfig


class PassThroughStep(BaseStep):
    """Emit rows unchanged. Typically used as a named output step."""

    name = "passthrough"

    def output_schema(self, input_schema: RowSchema) -> RowSchema:
        return input_schema

    def process(self, schema: RowSchema, row: Row) -> Iterable[Row]:
        return (row,)


class RenameConfig(StepConfig):
    mapping: dict[str, str] = Field(min_length=1)
    strict: bool = True


class RenameStep(BaseStep):
    """Rename columns; values and positions are untouched.

    Config options:
        mapping: Dict of old name -> new name
        strict: If True (default), a missing source column is an error
    """

    name = "rename"
    config_class = RenameConfig
    config: RenameConfig

    def output_schema(self, input_schema: RowSchema) -> RowSchema:
        names = set(input_schema.field_names)
        missing = [old for old in self.config.mapping if old not in names]
        if missing and self.config.strict:
            raise ValueError(f"Step '{self.step_name}' cannot rename missing columns: {missing}")
        return RowSchema(tuple(column.renamed(self.config.mapping.get(column.name, column.name)) for column in input_schema))

    def process(self, schema: RowSchema, row: Row) -> Iterable[Row]:
        return (row,)


class SelectConfig(StepConfig):
    fields: list[str] = Field(min_length=1)


class SelectStep(BaseStep):
    """Keep only the listed columns, in the listed order."""

    name = "select"
    config_class = SelectConfig
    config: SelectConfig

    def __init__(self, step_name: str, options: dict[str, Any]) -> None:
        super().__init__(step_name, options)
        # input schema id -> (schema, positions to keep)
        self._positions: dict[int, tuple[RowSchema, tuple[int, ...]]] = {}

    def _positions_for(self, schema: RowSchema) -> tuple[int, ...]:
        cached = self._positions.get(id(schema))
        if cached is not None and cached[0] is schema:
            return cached[1]
        positions = []
        for field_name in self.config.fields:
            index = schema.index_of(field_name)
            if index < 0:
                raise ValueError(f"Step '{self.step_name}' cannot select missing column '{field_name}'")
            positions.append(index)
        self._positions[id(schema)] = (schema, tuple(positions))
        return tuple(positions)

    def output_schema(self, input_schema: RowSchema) -> RowSchema:
        return RowSchema(tuple(input_schema.column(i) for i in self._positions_for(input_schema)))

    def process(self, schema: RowSchema, row: Row) -> Iterable[Row]:
        return (tuple(row[i] for i in self._positions_for(schema)),)


class ConstantColumn(StepConfig):
    name: str
    type: ColumnType = ColumnType.ANY
    value: Any = None


class ConstantConfig(StepConfig):
    columns: list[ConstantColumn] = Field(min_length=1)


class ConstantStep(BaseStep):
    """Append columns holding fixed values.

    Example:
        - name: one
          plugin: constant
          options:
            columns:
              - {name: outValue, type: integer, value: 1}
    """

    name = "constant"
    config_class = ConstantConfig
    config: ConstantConfig

    def __init__(self, step_name: str, options: dict[str, Any]) -> None:
        super().__init__(step_name, options)
        self._metas = tuple(ColumnMeta(column.name, column.type) for column in self.config.columns)
        self._values = tuple(column.value for column in self.config.columns)

    def output_schema(self, input_schema: RowSchema) -> RowSchema:
        return input_schema.with_columns(self._metas)

    def process(self, schema: RowSchema, row: Row) -> Iterable[Row]:
        return ((*row, *self._values),)
