# src/mrpipe/mapreduce/injector.py
"""Injection of framework records into a pipeline's intake.

Each record becomes one row sized to the intake step's schema. The key and
value land at the ordinals of the "key" and "value" columns; every other
position stays None. A side whose column is absent (ordinal -1) is skipped
without error, which narrow entry schemas rely on.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from mrpipe.contracts.enums import TaskCounter
from mrpipe.core.logging import get_logger
from mrpipe.core.ordinals import KeyValueOrdinals, OrdinalCache, resolve_input_ordinals

if TYPE_CHECKING:
    import structlog

    from mrpipe.contracts.protocols import Reporter, TypeConverter
    from mrpipe.contracts.schema import Row, RowSchema
    from mrpipe.engine.intake import RowIntake
    from mrpipe.mapreduce.counters import TaskCounters


class RowInjector:
    """Builds input rows and pushes them into a pipeline intake.

    Used from the caller thread only. Ordinals are resolved once per schema
    instance and cached for the injector's lifetime.

    Usage:
        injector = RowInjector(counters)
        injector.inject(key, value, pipeline.input_schema("input"), intake)
    """

    def __init__(
        self,
        counters: TaskCounters,
        *,
        debug: bool = False,
        logger: structlog.stdlib.BoundLogger | None = None,
        reporter: Reporter | None = None,
        resolver: Callable[[RowSchema | None], KeyValueOrdinals] = resolve_input_ordinals,
    ) -> None:
        self._counters = counters
        self._debug = debug
        self._log = logger or get_logger(__name__)
        self._reporter = reporter
        self._ordinals = OrdinalCache(resolver)

    def ordinals_for(self, schema: RowSchema) -> KeyValueOrdinals:
        return self._ordinals.get(schema)

    def inject(
        self,
        key: Any,
        value: Any,
        schema: RowSchema,
        intake: RowIntake,
        key_converter: TypeConverter | None = None,
        value_converter: TypeConverter | None = None,
    ) -> Row:
        """Build one row from ``key`` and ``value`` and push it.

        Blocks while the intake is full.

        Returns:
            The row that was pushed

        Raises:
            ConversionError: If a converter rejects its value
            IntakeClosedError: If the intake no longer accepts rows
        """
        ordinals = self._ordinals.get(schema)
        values: list[Any] = [None] * len(schema)
        if ordinals.has_key:
            values[ordinals.key] = _convert(key_converter, schema, ordinals.key, key)
        if ordinals.has_value:
            values[ordinals.value] = _convert(value_converter, schema, ordinals.value, value)
        row = tuple(values)

        if self._debug:
            injected_key = row[ordinals.key] if ordinals.has_key else None
            injected_value = row[ordinals.value] if ordinals.has_value else None
            self._log.debug("injecting input record", key=injected_key, value=injected_value)
            if self._reporter is not None:
                self._reporter.set_status(f"Injecting input record [{injected_key}] - [{injected_value}]")

        intake.put_row(schema, row)
        self._counters.increment(TaskCounter.INPUT_RECORDS)
        return row


def _convert(converter: TypeConverter | None, schema: RowSchema, ordinal: int, raw: Any) -> Any:
    if converter is None:
        return raw
    return converter.convert(schema.column(ordinal), raw)
