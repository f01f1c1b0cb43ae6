# src/mrpipe/plugins/config_base.py
"""Base classes for typed step options.

Step plugins declare a StepConfig subclass; options from the pipeline
definition are validated strictly (unknown options rejected).

Example usage:
    class SplitConfig(StepConfig):
        field: str
        separator: str | None = None

    cfg = SplitConfig.from_dict(options)
"""

from typing import Any, Self

from pydantic import BaseModel, ValidationError

from mrpipe.contracts.enums import ColumnType
from mrpipe.contracts.errors import StepConfigError
from mrpipe.contracts.schema import ColumnMeta


class StepConfig(BaseModel):
    """Base class for typed step configurations."""

    model_config = {"extra": "forbid", "frozen": True}

    @classmethod
    def from_dict(cls, config: dict[str, Any]) -> Self:
        """Create config from dict with clear error on validation failure.

        Raises:
            StepConfigError: If configuration is invalid.
        """
        if not isinstance(config, dict):
            raise StepConfigError(f"Invalid configuration for {cls.__name__}: options must be a mapping, got {type(config).__name__}.")
        try:
            return cls.model_validate(config)
        except ValidationError as e:
            raise StepConfigError(f"Invalid configuration for {cls.__name__}: {e}") from e


class ColumnSpec(BaseModel):
    """A column declared in step options: ``{name: key, type: integer}``."""

    model_config = {"extra": "forbid", "frozen": True}

    name: str
    type: ColumnType = ColumnType.ANY

    def to_meta(self) -> ColumnMeta:
        return ColumnMeta(self.name, self.type)
