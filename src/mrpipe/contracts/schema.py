# src/mrpipe/contracts/schema.py
"""Row schemas describing the positional shape of pipeline rows.

A RowSchema is an ordered, immutable sequence of ColumnMeta. Rows are plain
tuples whose length equals the schema's column count; a column's position in
the schema is its ordinal in the row.

Schemas are produced by pipeline steps and queried from the pipeline. The
adapter never owns them; it only caches what it resolved against them.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from typing import Any

from mrpipe.contracts.enums import ColumnType

# A positionally-addressed pipeline row
Row = tuple[Any, ...]


@dataclass(frozen=True, slots=True)
class ColumnMeta:
    """Name and declared type of one column."""

    name: str
    column_type: ColumnType = ColumnType.ANY

    def renamed(self, name: str) -> ColumnMeta:
        return ColumnMeta(name=name, column_type=self.column_type)


@dataclass(frozen=True, slots=True)
class RowSchema:
    """Ordered column descriptors for the rows of one pipeline step.

    Attributes:
        columns: Columns in row order
    """

    columns: tuple[ColumnMeta, ...]

    @classmethod
    def of(cls, *columns: tuple[str, ColumnType] | str) -> RowSchema:
        """Build a schema from names or (name, type) pairs.

        Example:
            RowSchema.of("key", ("value", ColumnType.INTEGER))
        """
        metas = []
        for column in columns:
            if isinstance(column, str):
                metas.append(ColumnMeta(column))
            else:
                name, column_type = column
                metas.append(ColumnMeta(name, column_type))
        return cls(tuple(metas))

    @property
    def field_names(self) -> tuple[str, ...]:
        return tuple(column.name for column in self.columns)

    def __len__(self) -> int:
        return len(self.columns)

    def __iter__(self) -> Iterator[ColumnMeta]:
        return iter(self.columns)

    def column(self, ordinal: int) -> ColumnMeta:
        """Column at ``ordinal``.

        Raises:
            IndexError: If ordinal is outside the schema
        """
        if ordinal < 0:
            raise IndexError(f"Negative ordinal {ordinal} does not address a column")
        return self.columns[ordinal]

    def index_of(self, name: str) -> int:
        """Exact-name lookup used by steps; -1 when absent."""
        for index, column in enumerate(self.columns):
            if column.name == name:
                return index
        return -1

    def with_columns(self, columns: Iterable[ColumnMeta]) -> RowSchema:
        """Return a new schema with ``columns`` appended."""
        return RowSchema((*self.columns, *columns))
