"""Protocols at the seams between the adapter, the engine and the framework.

These are used for type checking; nothing here is enforced at runtime
except where ``runtime_checkable`` is used by tests.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from mrpipe.contracts.enums import TaskCounter
    from mrpipe.contracts.schema import ColumnMeta, Row, RowSchema


@runtime_checkable
class TypeConverter(Protocol):
    """Pluggable per-side value converter used during row injection."""

    def convert(self, column: ColumnMeta, raw: Any) -> Any:
        """Convert ``raw`` to the declared type of ``column``.

        Raises:
            ConversionError: If the value cannot be converted
        """
        ...


@runtime_checkable
class RowListener(Protocol):
    """Receives every row a pipeline step emits.

    Called on the step's own thread, never on the caller's.
    """

    def row_emitted(self, schema: RowSchema, row: Row) -> None: ...


@runtime_checkable
class ResultSink(Protocol):
    """The batch framework's output collector for one task."""

    def collect(self, key: Any, value: Any) -> None: ...


class Reporter(Protocol):
    """Optional progress/status channel back to the batch framework."""

    def set_status(self, message: str) -> None: ...

    def increment_counter(self, counter: TaskCounter, amount: int) -> None: ...
