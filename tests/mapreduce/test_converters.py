# tests/mapreduce/test_converters.py
"""Tests for input coercion and output type conversion."""

from __future__ import annotations

from typing import Any

import pytest

from mrpipe.contracts.enums import ColumnType
from mrpipe.contracts.errors import ConversionError
from mrpipe.contracts.protocols import TypeConverter
from mrpipe.contracts.schema import ColumnMeta
from mrpipe.mapreduce.converters import ColumnCoercer, OutputTypeConverter, coerce_value


class TestCoerceValue:
    """Tests for coerce_value()."""

    @pytest.mark.parametrize(
        ("column_type", "raw", "expected"),
        [
            (ColumnType.STRING, 42, "42"),
            (ColumnType.STRING, b"caf\xc3\xa9", "café"),
            (ColumnType.INTEGER, " 17 ", 17),
            (ColumnType.INTEGER, 3.0, 3),
            (ColumnType.INTEGER, True, 1),
            (ColumnType.INTEGER, b"8", 8),
            (ColumnType.NUMBER, "2.5", 2.5),
            (ColumnType.NUMBER, 2, 2.0),
            (ColumnType.BOOLEAN, "Yes", True),
            (ColumnType.BOOLEAN, "0", False),
            (ColumnType.BOOLEAN, 0, False),
            (ColumnType.BINARY, "ab", b"ab"),
            (ColumnType.BINARY, bytearray(b"ab"), b"ab"),
        ],
    )
    def test_conversions(self, column_type: ColumnType, raw: Any, expected: Any) -> None:
        result = coerce_value(column_type, raw)

        assert result == expected
        assert type(result) is type(expected)

    @pytest.mark.parametrize("column_type", list(ColumnType))
    def test_none_passes_through(self, column_type: ColumnType) -> None:
        assert coerce_value(column_type, None) is None

    def test_any_passes_through_unchanged(self) -> None:
        value = object()

        assert coerce_value(ColumnType.ANY, value) is value

    @pytest.mark.parametrize(
        ("column_type", "raw"),
        [
            (ColumnType.INTEGER, "seven"),
            (ColumnType.INTEGER, 2.5),
            (ColumnType.NUMBER, "abc"),
            (ColumnType.BOOLEAN, "maybe"),
            (ColumnType.STRING, b"\xff\xfe"),
        ],
    )
    def test_failures_raise_conversion_error(self, column_type: ColumnType, raw: Any) -> None:
        with pytest.raises(ConversionError, match=f"to {column_type}"):
            coerce_value(column_type, raw)


class TestColumnCoercer:
    """Tests for ColumnCoercer."""

    def test_is_type_converter(self) -> None:
        assert isinstance(ColumnCoercer(), TypeConverter)

    def test_uses_column_type(self) -> None:
        coercer = ColumnCoercer()

        assert coercer.convert(ColumnMeta("key", ColumnType.INTEGER), "12") == 12
        assert coercer.convert(ColumnMeta("value"), "12") == "12"


class TestOutputTypeConverter:
    """Tests for OutputTypeConverter."""

    def test_exact_type_returned_as_is(self) -> None:
        value = "word"

        assert OutputTypeConverter(str).convert(value) is value

    def test_converts_to_target(self) -> None:
        assert OutputTypeConverter(str).convert(3) == "3"
        assert OutputTypeConverter(int).convert("3") == 3
        assert OutputTypeConverter(bytes).convert("x") == b"x"

    def test_bool_is_not_an_int_output(self) -> None:
        result = OutputTypeConverter(int).convert(True)

        assert result == 1
        assert type(result) is int

    def test_failure(self) -> None:
        with pytest.raises(ConversionError):
            OutputTypeConverter(int).convert("many")

    def test_unsupported_target(self) -> None:
        with pytest.raises(ValueError, match="Unsupported output type dict"):
            OutputTypeConverter(dict)
