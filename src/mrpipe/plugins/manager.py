# src/mrpipe/plugins/manager.py
"""Plugin manager for step discovery, registration and instantiation.

Uses pluggy for hook-based plugin registration.
"""

from typing import Any

import pluggy

from mrpipe.contracts.errors import UnknownStepError
from mrpipe.plugins.base import BaseStep
from mrpipe.plugins.hookspecs import PROJECT_NAME, MrPipeStepSpec


class PluginManager:
    """Manages step plugin discovery, registration, and lookup.

    Usage:
        manager = PluginManager()
        manager.register_builtin_plugins()

        step = manager.create_step("split", "split-words", {"field": "value"})
    """

    def __init__(self) -> None:
        self._pm = pluggy.PluginManager(PROJECT_NAME)
        self._pm.add_hookspecs(MrPipeStepSpec)

        # Name -> class, for duplicate detection and lookup
        self._steps: dict[str, type[BaseStep]] = {}

    def register_builtin_plugins(self) -> None:
        """Register the step plugins shipped with mrpipe."""
        from mrpipe.plugins.steps import BUILTIN_STEPS

        if not self._pm.is_registered(BUILTIN_STEPS):
            self.register(BUILTIN_STEPS)

    def register(self, plugin: Any) -> None:
        """Register a plugin.

        Args:
            plugin: Object (or class/module) implementing hook methods

        Raises:
            ValueError: If it provides a step name that is already registered
        """
        self._pm.register(plugin)
        try:
            self._refresh_caches()
        except ValueError:
            self._pm.unregister(plugin)
            raise

    def _refresh_caches(self) -> None:
        new_steps: dict[str, type[BaseStep]] = {}
        for steps in self._pm.hook.mrpipe_get_steps():
            for cls in steps:
                name = cls.name
                if name in new_steps:
                    raise ValueError(f"Duplicate step plugin name: '{name}'. Already registered by {new_steps[name].__name__}")
                new_steps[name] = cls
        self._steps = new_steps

    def get_steps(self) -> list[type[BaseStep]]:
        """Get all registered step plugins."""
        return list(self._steps.values())

    def get_step_by_name(self, name: str) -> type[BaseStep]:
        """Get step plugin by name.

        Raises:
            UnknownStepError: If no plugin has that name
        """
        try:
            return self._steps[name]
        except KeyError:
            known = ", ".join(sorted(self._steps)) or "none registered"
            raise UnknownStepError(f"Unknown step plugin '{name}'. Available: {known}") from None

    def create_step(self, plugin_name: str, step_name: str, options: dict[str, Any]) -> BaseStep:
        """Instantiate a step plugin with validated options.

        Raises:
            UnknownStepError: If the plugin is not registered
            StepConfigError: If the options are invalid
        """
        step_cls = self.get_step_by_name(plugin_name)
        return step_cls(step_name, options)
