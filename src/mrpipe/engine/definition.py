"""Serialized pipeline definitions.

A definition is a YAML document describing a linear chain of named steps.
Each step feeds the next one; any step can be observed by row listeners.

Example:
    name: wordcount-map
    buffer_size: 200
    steps:
      - name: input
        plugin: injector
        options:
          fields: [{name: key, type: integer}, {name: value, type: string}]
      - name: words
        plugin: split
        options: {field: value, output: outKey}
      - name: output
        plugin: passthrough
"""

from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from mrpipe.contracts.errors import PipelineDefinitionError


class StepDefinition(BaseModel):
    """One named step and the plugin that implements it."""

    model_config = {"extra": "forbid", "frozen": True}

    name: str = Field(min_length=1, description="Step name, unique within the pipeline")
    plugin: str = Field(min_length=1, description="Registered step plugin name")
    options: dict[str, Any] = Field(default_factory=dict, description="Plugin options")


class PipelineDefinition(BaseModel):
    """Validated pipeline definition."""

    model_config = {"extra": "forbid", "frozen": True}

    name: str = "pipeline"
    description: str | None = None
    buffer_size: int = Field(default=100, gt=0, description="Rows queued per step before producers block")
    steps: list[StepDefinition] = Field(min_length=1)

    @field_validator("steps")
    @classmethod
    def validate_unique_step_names(cls, v: list[StepDefinition]) -> list[StepDefinition]:
        names = [step.name for step in v]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise ValueError(f"Duplicate step names: {duplicates}")
        return v

    @property
    def step_names(self) -> list[str]:
        return [step.name for step in self.steps]

    @classmethod
    def parse(cls, text: str) -> "PipelineDefinition":
        """Parse a serialized definition.

        Raises:
            PipelineDefinitionError: If the text is not valid YAML or does not
                describe a valid pipeline
        """
        try:
            loaded = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise PipelineDefinitionError(f"Pipeline definition is not valid YAML: {e}") from e
        if not isinstance(loaded, dict):
            raise PipelineDefinitionError(f"Pipeline definition must be a mapping, got {type(loaded).__name__}")
        try:
            return cls.model_validate(loaded)
        except ValidationError as e:
            raise PipelineDefinitionError(f"Invalid pipeline definition: {e}") from e

    def to_yaml(self) -> str:
        return yaml.safe_dump(self.model_dump(mode="json", exclude_none=True), sort_keys=False)
