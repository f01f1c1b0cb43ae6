"""Injector step: the entry point rows are pushed into from outside.

Declares the schema of injected rows. Rows pass through unchanged.

Example definition:
    - name: input
      plugin: injector
      options:
        fields:
          - {name: key, type: integer}
          - {name: value, type: string}
"""

from collections.abc import Iterable

from pydantic import Field

from mrpipe.contracts.schema import Row, RowSchema
from mrpipe.plugins.base import BaseStep
from mrpipe.plugins.config_base import ColumnSpec, StepConfig


class InjectorConfig(StepConfig):
    fields: list[ColumnSpec] = Field(min_length=1)


class InjectorStep(BaseStep):
    """Receives injected rows shaped by the declared fields."""

    name = "injector"
    config_class = InjectorConfig
    config: InjectorConfig

    def __init__(self, step_name: str, options: dict) -> None:
        super().__init__(step_name, options)
        self.declared_schema = RowSchema(tuple(spec.to_meta() for spec in self.config.fields))

    def output_schema(self, input_schema: RowSchema) -> RowSchema:
        return input_schema

    def process(self, schema: RowSchema, row: Row) -> Iterable[Row]:
        if len(row) != len(schema):
            raise ValueError(f"Row has {len(row)} values but schema has {len(schema)} columns")
        return (row,)
