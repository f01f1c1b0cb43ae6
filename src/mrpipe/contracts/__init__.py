"""Shared contracts for cross-boundary data types.

This package is a LEAF MODULE with no outbound dependencies to core/engine.

Import patterns:
    from mrpipe.contracts import TaskRole, RowSchema, ConfigurationError
"""

from mrpipe.contracts.enums import (
    ColumnType,
    PipelineLogLevel,
    TaskCounter,
    TaskRole,
    TaskState,
)
from mrpipe.contracts.errors import (
    ConfigurationError,
    ConversionError,
    IntakeClosedError,
    MrPipeError,
    PipelineDefinitionError,
    PipelineExecutionError,
    PipelineLoadError,
    StepConfigError,
    TaskStateError,
    UnknownStepError,
    VariableContextError,
)
from mrpipe.contracts.protocols import Reporter, ResultSink, RowListener, TypeConverter
from mrpipe.contracts.schema import ColumnMeta, Row, RowSchema

__all__ = [
    "ColumnMeta",
    "ColumnType",
    "ConfigurationError",
    "ConversionError",
    "IntakeClosedError",
    "MrPipeError",
    "PipelineDefinitionError",
    "PipelineExecutionError",
    "PipelineLoadError",
    "PipelineLogLevel",
    "Reporter",
    "ResultSink",
    "Row",
    "RowListener",
    "RowSchema",
    "StepConfigError",
    "TaskCounter",
    "TaskRole",
    "TaskState",
    "TaskStateError",
    "TypeConverter",
    "UnknownStepError",
    "VariableContextError",
]
