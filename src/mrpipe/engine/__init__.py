"""Dataflow engine: pipeline definitions, running pipelines and the role loader."""

from mrpipe.engine.definition import PipelineDefinition, StepDefinition
from mrpipe.engine.intake import RowIntake
from mrpipe.engine.loader import PipelineLoader, create_pipeline, default_plugin_manager
from mrpipe.engine.pipeline import Pipeline, StepError

__all__ = [
    "Pipeline",
    "PipelineDefinition",
    "PipelineLoader",
    "RowIntake",
    "StepDefinition",
    "StepError",
    "create_pipeline",
    "default_plugin_manager",
]
