"""Split step: one output row per piece of a delimited string column."""

from collections.abc import Iterable

from pydantic import Field

from mrpipe.contracts.enums import ColumnType
from mrpipe.contracts.schema import ColumnMeta, Row, RowSchema
from mrpipe.plugins.base import BaseStep
from mrpipe.plugins.config_base import StepConfig


class SplitConfig(StepConfig):
    field: str
    separator: str | None = Field(default=None, min_length=1)  # None splits on runs of whitespace
    output: str | None = None  # Rename the split column
    lowercase: bool = False
    keep_empty: bool = False


class SplitStep(BaseStep):
    """Split a string column into multiple rows.

    Each piece replaces the column's value in a copy of the row. A null value
    produces no rows.

    Config options:
        field: Column to split
        separator: Delimiter (default: whitespace)
        output: New name for the split column (default: unchanged)
        lowercase: Lowercase each piece
        keep_empty: Keep empty pieces produced by adjacent separators
    """

    name = "split"
    config_class = SplitConfig
    config: SplitConfig

    def output_schema(self, input_schema: RowSchema) -> RowSchema:
        index = input_schema.index_of(self.config.field)
        if index < 0:
            raise ValueError(f"Step '{self.step_name}' cannot split missing column '{self.config.field}'")
        columns = list(input_schema.columns)
        columns[index] = ColumnMeta(self.config.output or self.config.field, ColumnType.STRING)
        return RowSchema(tuple(columns))

    def process(self, schema: RowSchema, row: Row) -> Iterable[Row]:
        index = schema.index_of(self.config.field)
        value = row[index]
        if value is None:
            return
        text = value.decode("utf-8") if isinstance(value, bytes) else str(value)
        for piece in text.split(self.config.separator):
            if not piece and not self.config.keep_empty:
                continue
            if self.config.lowercase:
                piece = piece.lower()
            yield (*row[:index], piece, *row[index + 1 :])
