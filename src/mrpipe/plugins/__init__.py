"""Step plugin system: hook specifications, base classes and the manager."""

from mrpipe.plugins.base import BaseStep
from mrpipe.plugins.config_base import ColumnSpec, StepConfig
from mrpipe.plugins.hookspecs import hookimpl
from mrpipe.plugins.manager import PluginManager

__all__ = [
    "BaseStep",
    "ColumnSpec",
    "PluginManager",
    "StepConfig",
    "hookimpl",
]
