# src/mrpipe/engine/loader.py
"""Selection and instantiation of the pipeline for a task's role.

A job carries three independently serialized definitions (map, combine,
reduce). A task parses exactly one of them, picked by its role from an
enum-indexed table; the other two are never read, so a malformed definition
for another role cannot affect this task.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING

from mrpipe.contracts.enums import PipelineLogLevel, TaskRole
from mrpipe.contracts.errors import ConfigurationError, MrPipeError, PipelineLoadError
from mrpipe.core.logging import get_logger
from mrpipe.engine.definition import PipelineDefinition
from mrpipe.engine.pipeline import Pipeline
from mrpipe.plugins.manager import PluginManager

if TYPE_CHECKING:
    import structlog

_default_manager: PluginManager | None = None


def default_plugin_manager() -> PluginManager:
    """Plugin manager with the built-in steps registered (singleton)."""
    global _default_manager

    if _default_manager is None:
        manager = PluginManager()
        manager.register_builtin_plugins()
        _default_manager = manager
    return _default_manager


class PipelineLoader:
    """Creates the running pipeline for a role.

    Usage:
        loader = PipelineLoader()
        pipeline = loader.create_pipeline(TaskRole.REDUCE, settings.definitions)
    """

    def __init__(
        self,
        manager: PluginManager | None = None,
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        self._manager = manager or default_plugin_manager()
        self._log = logger or get_logger(__name__)

    def create_pipeline(
        self,
        role: TaskRole | None,
        definitions: Mapping[TaskRole, str | None],
        *,
        variables: Mapping[str, str] | None = None,
        log_level: PipelineLogLevel | None = None,
    ) -> Pipeline:
        """Parse and instantiate the definition for ``role``.

        Args:
            role: The task's role; must be declared
            definitions: Serialized definition per role
            variables: Variable context for ${NAME} expansion
            log_level: Pipeline verbosity

        Returns:
            A pipeline ready for listeners and start()

        Raises:
            ConfigurationError: If role is None (nothing is parsed)
            PipelineLoadError: If the role has no definition, or it cannot be
                parsed or instantiated (chained to the cause)
        """
        if role is None:
            raise ConfigurationError(
                "Map, combine or reduce role has not been declared. Pass role= to the task adapter or call set_role() before configure()."
            )

        text = definitions.get(role)
        if text is None or not text.strip():
            raise PipelineLoadError(role, "no pipeline definition configured")

        self._log.debug("creating pipeline", role=str(role))
        try:
            definition = PipelineDefinition.parse(text)
            pipeline = Pipeline.build(definition, self._manager, variables=variables, log_level=log_level)
        except (MrPipeError, ValueError) as e:
            raise PipelineLoadError(role, str(e)) from e

        self._log.debug("pipeline created", role=str(role), pipeline=pipeline.name, steps=pipeline.step_names)
        return pipeline


def create_pipeline(
    role: TaskRole | None,
    map_definition: str | None,
    combine_definition: str | None,
    reduce_definition: str | None,
    *,
    manager: PluginManager | None = None,
    variables: Mapping[str, str] | None = None,
) -> Pipeline:
    """Create the pipeline for ``role`` from the three per-role definitions."""
    definitions = {
        TaskRole.MAP: map_definition,
        TaskRole.COMBINE: combine_definition,
        TaskRole.REDUCE: reduce_definition,
    }
    return PipelineLoader(manager).create_pipeline(role, definitions, variables=variables)
