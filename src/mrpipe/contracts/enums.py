"""Roles, lifecycle states, counters and column types shared across subsystems."""

import logging
from enum import StrEnum


class TaskRole(StrEnum):
    """Phase of a batch job that a task instance performs.

    Exactly one pipeline definition is consulted per role.
    """

    MAP = "map"
    COMBINE = "combine"
    REDUCE = "reduce"


class TaskState(StrEnum):
    """Lifecycle state of a TaskAdapter.

    Transitions are one-way: UNCONFIGURED -> CONFIGURED -> RUNNING -> CLOSED.
    """

    UNCONFIGURED = "unconfigured"
    CONFIGURED = "configured"
    RUNNING = "running"
    CLOSED = "closed"


class TaskCounter(StrEnum):
    """Counters reported by a task to the batch framework."""

    INPUT_RECORDS = "input_records"
    OUTPUT_RECORDS = "output_records"
    OUT_RECORD_WITH_NULL_KEY = "out_record_with_null_key"
    OUT_RECORD_WITH_NULL_VALUE = "out_record_with_null_value"


class ColumnType(StrEnum):
    """Declared type of a row schema column."""

    STRING = "string"
    INTEGER = "integer"
    NUMBER = "number"
    BOOLEAN = "boolean"
    BINARY = "binary"
    ANY = "any"


class PipelineLogLevel(StrEnum):
    """Pipeline verbosity names accepted in the job context.

    Values are the names as they appear in configuration; ``stdlib_level``
    gives the matching :mod:`logging` level.
    """

    NOTHING = "NOTHING"
    ERROR = "ERROR"
    MINIMAL = "MINIMAL"
    BASIC = "BASIC"
    DETAILED = "DETAILED"
    DEBUG = "DEBUG"
    ROWLEVEL = "ROWLEVEL"

    @property
    def stdlib_level(self) -> int:
        return _STDLIB_LEVELS[self]


_STDLIB_LEVELS: dict[PipelineLogLevel, int] = {
    PipelineLogLevel.NOTHING: logging.CRITICAL + 10,
    PipelineLogLevel.ERROR: logging.ERROR,
    PipelineLogLevel.MINIMAL: logging.WARNING,
    PipelineLogLevel.BASIC: logging.INFO,
    PipelineLogLevel.DETAILED: logging.INFO,
    PipelineLogLevel.DEBUG: logging.DEBUG,
    PipelineLogLevel.ROWLEVEL: logging.DEBUG,
}
