# src/mrpipe/plugins/hookspecs.py
"""pluggy hook specifications for mrpipe step plugins.

Usage (implementing a plugin):
    from mrpipe.plugins.hookspecs import hookimpl

    class MyStepsPlugin:
        @hookimpl  # NOT @hookspec - that's for defining specs
        def mrpipe_get_steps(self):
            return [MyStep]
"""

from typing import TYPE_CHECKING

import pluggy

if TYPE_CHECKING:
    from mrpipe.plugins.base import BaseStep

PROJECT_NAME = "mrpipe"

hookspec = pluggy.HookspecMarker(PROJECT_NAME)

hookimpl = pluggy.HookimplMarker(PROJECT_NAME)


class MrPipeStepSpec:
    """Hook specifications for step plugins."""

    @hookspec
    def mrpipe_get_steps(self) -> list[type["BaseStep"]]:  # type: ignore[empty-body]
        """Return step plugin classes.

        Returns:
            List of BaseStep subclasses (not instances)
        """
