"""Exception hierarchy for mrpipe.

Every error raised by the adapter or the engine derives from MrPipeError so
the batch framework can tell pipeline failures apart from its own.

Categories:
- Configuration errors: fatal at configure time, never retried
- Pipeline load errors: fatal, carry the role and the underlying cause
- Per-record errors: raised to the per-record call, framework decides
- Asynchronous errors: recorded on pipeline threads, surfaced at close
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from mrpipe.contracts.enums import TaskRole, TaskState


class MrPipeError(Exception):
    """Base class for all mrpipe errors."""


# =============================================================================
# Configuration
# =============================================================================


class ConfigurationError(MrPipeError):
    """Raised when the task configuration is missing or invalid.

    Examples: role never declared, unknown log level or output type name.
    """


class VariableContextError(ConfigurationError):
    """Raised when the serialized variable context cannot be parsed.

    A partially parsed context is never accepted.
    """


class TaskStateError(MrPipeError):
    """Raised when an adapter operation is called in the wrong lifecycle state."""

    def __init__(self, operation: str, state: TaskState) -> None:
        self.operation = operation
        self.state = state
        super().__init__(f"Cannot {operation} while task is {state}")


# =============================================================================
# Pipeline construction
# =============================================================================


class PipelineDefinitionError(MrPipeError):
    """Raised when a serialized pipeline definition is malformed."""


class UnknownStepError(MrPipeError):
    """Raised when a step name or step plugin cannot be found."""


class StepConfigError(PipelineDefinitionError):
    """Raised when a step's options fail validation."""


class PipelineLoadError(MrPipeError):
    """Raised when the pipeline for a role cannot be instantiated.

    Always chained to the underlying cause (``raise ... from``). There is no
    fallback to another role's definition.
    """

    def __init__(self, role: TaskRole, reason: str) -> None:
        self.role = role
        super().__init__(f"Error loading pipeline for {role}: {reason}")


# =============================================================================
# Per-record
# =============================================================================


class ConversionError(MrPipeError):
    """Raised when a value cannot be converted to its target type."""


class IntakeClosedError(MrPipeError):
    """Raised when a row is pushed into an intake that has been closed.

    Also raised to blocked producers when the pipeline aborts.
    """


# =============================================================================
# Asynchronous
# =============================================================================


class PipelineExecutionError(MrPipeError):
    """Terminal task failure caused by an error recorded on a pipeline thread.

    The recorded exception is available as ``__cause__``.
    """
