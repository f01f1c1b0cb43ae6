# src/mrpipe/core/ordinals.py
"""Resolution of logical key/value columns to positional ordinals.

Pipelines describe their rows with a RowSchema; the adapter only knows two
logical names per side ("key"/"value" going in, "outKey"/"outValue" coming
out). resolve_ordinals() finds their positions with a single case-insensitive
scan. An unmatched name yields -1 and is never an error: callers skip that
side.

Resolution is pure. Callers memoize it per schema instance with OrdinalCache
because a task sees the same schema object for every record.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import NamedTuple

from mrpipe.contracts.schema import RowSchema

UNRESOLVED = -1


class KeyValueNames(NamedTuple):
    """The two logical column names resolved together."""

    key: str
    value: str


INPUT_NAMES = KeyValueNames("key", "value")
OUTPUT_NAMES = KeyValueNames("outKey", "outValue")


class KeyValueOrdinals(NamedTuple):
    """Positions of the key and value columns; -1 when absent."""

    key: int = UNRESOLVED
    value: int = UNRESOLVED

    @property
    def has_key(self) -> bool:
        return self.key >= 0

    @property
    def has_value(self) -> bool:
        return self.value >= 0


def resolve_ordinals(schema: RowSchema | None, key_name: str, value_name: str) -> KeyValueOrdinals:
    """Locate ``key_name`` and ``value_name`` in ``schema``.

    Scans columns once, in order. Names match case-insensitively; the first
    matching column wins for each side, and a column that matched the key is
    not also considered for the value. Scanning stops as soon as both are
    found.

    Args:
        schema: Schema to scan, or None
        key_name: Logical key column name
        value_name: Logical value column name

    Returns:
        KeyValueOrdinals, with -1 for any name not present
    """
    key_ordinal = UNRESOLVED
    value_ordinal = UNRESOLVED
    if schema is None:
        return KeyValueOrdinals(key_ordinal, value_ordinal)

    wanted_key = key_name.casefold()
    wanted_value = value_name.casefold()
    for index, name in enumerate(schema.field_names):
        folded = name.casefold()
        if key_ordinal < 0 and folded == wanted_key:
            key_ordinal = index
        elif value_ordinal < 0 and folded == wanted_value:
            value_ordinal = index
        if key_ordinal >= 0 and value_ordinal >= 0:
            break
    return KeyValueOrdinals(key_ordinal, value_ordinal)


def resolve_input_ordinals(schema: RowSchema | None) -> KeyValueOrdinals:
    """Ordinals of the pipeline's "key"/"value" input columns."""
    return resolve_ordinals(schema, *INPUT_NAMES)


def resolve_output_ordinals(schema: RowSchema | None) -> KeyValueOrdinals:
    """Ordinals of the pipeline's "outKey"/"outValue" output columns."""
    return resolve_ordinals(schema, *OUTPUT_NAMES)


class OrdinalCache:
    """Memoizes a resolver by schema identity.

    Entries hold a reference to their schema so an id() is never reused by a
    different schema while its entry is alive. Not thread-safe; each cache is
    used from exactly one thread (the caller thread for injection, the exit
    step's thread for collection).

    Usage:
        cache = OrdinalCache(resolve_input_ordinals)
        ordinals = cache.get(schema)  # resolver runs once per schema
    """

    def __init__(self, resolver: Callable[[RowSchema | None], KeyValueOrdinals]) -> None:
        self._resolver = resolver
        self._entries: dict[int, tuple[RowSchema | None, KeyValueOrdinals]] = {}

    def get(self, schema: RowSchema | None) -> KeyValueOrdinals:
        entry = self._entries.get(id(schema))
        if entry is not None and entry[0] is schema:
            return entry[1]
        ordinals = self._resolver(schema)
        self._entries[id(schema)] = (schema, ordinals)
        return ordinals

    def __len__(self) -> int:
        return len(self._entries)

    def clear(self) -> None:
        self._entries.clear()
