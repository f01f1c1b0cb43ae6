# src/mrpipe/mapreduce/converters.py
"""Value conversion between framework records and pipeline columns.

Input side: ColumnCoercer implements the TypeConverter protocol and coerces a
raw record value to the declared type of the column it lands in.

Output side: OutputTypeConverter converts an emitted value to the Python type
the job declared for its output keys or values.

Null stays null on both sides. Failures raise ConversionError naming the
value and the target type.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from mrpipe.contracts.enums import ColumnType
from mrpipe.contracts.errors import ConversionError
from mrpipe.contracts.schema import ColumnMeta

_TRUE_STRINGS = frozenset({"true", "t", "yes", "y", "1"})
_FALSE_STRINGS = frozenset({"false", "f", "no", "n", "0"})


def _to_string(raw: Any) -> str:
    if isinstance(raw, bytes | bytearray):
        return bytes(raw).decode("utf-8")
    return str(raw)


def _to_integer(raw: Any) -> int:
    if isinstance(raw, bool):
        return int(raw)
    if isinstance(raw, float):
        if not raw.is_integer():
            raise ValueError("has a fractional part")
        return int(raw)
    if isinstance(raw, bytes | bytearray):
        raw = bytes(raw).decode("utf-8")
    if isinstance(raw, str):
        return int(raw.strip())
    return int(raw)


def _to_number(raw: Any) -> float:
    if isinstance(raw, bytes | bytearray):
        raw = bytes(raw).decode("utf-8")
    if isinstance(raw, str):
        raw = raw.strip()
    return float(raw)


def _to_boolean(raw: Any) -> bool:
    if isinstance(raw, bool):
        return raw
    if isinstance(raw, int | float):
        return raw != 0
    text = _to_string(raw).strip().lower()
    if text in _TRUE_STRINGS:
        return True
    if text in _FALSE_STRINGS:
        return False
    raise ValueError("is not a recognized boolean")


def _to_binary(raw: Any) -> bytes:
    if isinstance(raw, bytes | bytearray):
        return bytes(raw)
    return str(raw).encode("utf-8")


_COERCIONS: dict[ColumnType, Callable[[Any], Any]] = {
    ColumnType.STRING: _to_string,
    ColumnType.INTEGER: _to_integer,
    ColumnType.NUMBER: _to_number,
    ColumnType.BOOLEAN: _to_boolean,
    ColumnType.BINARY: _to_binary,
}


def coerce_value(column_type: ColumnType, raw: Any) -> Any:
    """Coerce ``raw`` to ``column_type``. ANY and None pass through.

    Raises:
        ConversionError: If the value cannot be represented as the type
    """
    if raw is None or column_type is ColumnType.ANY:
        return raw
    try:
        return _COERCIONS[column_type](raw)
    except (ValueError, TypeError, UnicodeDecodeError) as e:
        raise ConversionError(f"Cannot convert {raw!r} ({type(raw).__name__}) to {column_type}: {e}") from e


class ColumnCoercer:
    """TypeConverter that coerces to the target column's declared type."""

    def convert(self, column: ColumnMeta, raw: Any) -> Any:
        return coerce_value(column.column_type, raw)


_PYTHON_TYPES: dict[type, ColumnType] = {
    str: ColumnType.STRING,
    int: ColumnType.INTEGER,
    float: ColumnType.NUMBER,
    bool: ColumnType.BOOLEAN,
    bytes: ColumnType.BINARY,
}


class OutputTypeConverter:
    """Converts emitted values to a declared output Python type."""

    def __init__(self, target: type) -> None:
        if target not in _PYTHON_TYPES:
            raise ValueError(f"Unsupported output type {target.__name__}")
        self.target = target
        self._column_type = _PYTHON_TYPES[target]

    def convert(self, value: Any) -> Any:
        # Exact type check: bool is an int subclass but not an int output
        if type(value) is self.target:
            return value
        return coerce_value(self._column_type, value)

    def __repr__(self) -> str:
        return f"OutputTypeConverter({self.target.__name__})"
