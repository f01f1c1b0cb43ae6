# src/mrpipe/plugins/base.py
"""Base class for pipeline step plugins.

Every step plugin MUST subclass BaseStep: plugin discovery checks
issubclass() and the engine relies on the lifecycle below.

Lifecycle (all hooks called on the step's own thread):
    output_schema(input_schema) -> process(...)* -> flush() -> close()

- output_schema: called once per distinct input schema; the engine caches
  the result by schema identity.
- process: called for every input row; returns zero or more output rows,
  all shaped by output_schema(schema).
- flush: called once at end-of-input; stateful steps emit what they hold.
- close: resource teardown. Called even when the step failed.
"""

from abc import ABC, abstractmethod
from collections.abc import Iterable
from typing import Any, ClassVar

from mrpipe.contracts.schema import Row, RowSchema
from mrpipe.plugins.config_base import StepConfig


class BaseStep(ABC):
    """Base class for all steps.

    Subclasses set ``name`` (the plugin name used in definitions) and
    ``config_class``; options are validated before __init__ returns.

    Attributes:
        step_name: Name of this step instance within its pipeline
        config: Validated options
        declared_schema: Schema of rows that may be injected into this step,
            or None if the step cannot be a pipeline's intake
    """

    name: ClassVar[str]
    plugin_version: ClassVar[str] = "1.0.0"
    config_class: ClassVar[type[StepConfig]] = StepConfig

    declared_schema: RowSchema | None = None

    def __init__(self, step_name: str, options: dict[str, Any]) -> None:
        self.step_name = step_name
        self.config = self.config_class.from_dict(options)

    @abstractmethod
    def output_schema(self, input_schema: RowSchema) -> RowSchema:
        """Shape of the rows this step emits for rows of ``input_schema``.

        Raises:
            ValueError: If the input lacks columns the step needs
        """

    @abstractmethod
    def process(self, schema: RowSchema, row: Row) -> Iterable[Row]:
        """Process one row and return the rows to emit."""

    def flush(self) -> Iterable[Row]:
        """Emit buffered rows at end-of-input. Stateless steps emit nothing."""
        return ()

    def close(self) -> None:  # noqa: B027 - optional hook
        """Release resources."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}(step_name={self.step_name!r})"
