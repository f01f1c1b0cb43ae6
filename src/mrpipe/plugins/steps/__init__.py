"""Built-in step plugins."""

from mrpipe.plugins.base import BaseStep
from mrpipe.plugins.hookspecs import hookimpl
from mrpipe.plugins.steps.fields import ConstantStep, PassThroughStep, RenameStep, SelectStep
from mrpipe.plugins.steps.group_by import GroupByStep
from mrpipe.plugins.steps.injector import InjectorStep
from mrpipe.plugins.steps.split import SplitStep


class BuiltinStepsPlugin:
    """Registers the steps shipped with mrpipe."""

    @hookimpl
    def mrpipe_get_steps(self) -> list[type[BaseStep]]:
        return [
            InjectorStep,
            PassThroughStep,
            RenameStep,
            SelectStep,
            ConstantStep,
            SplitStep,
            GroupByStep,
        ]


BUILTIN_STEPS = BuiltinStepsPlugin()

__all__ = [
    "BUILTIN_STEPS",
    "BuiltinStepsPlugin",
    "ConstantStep",
    "GroupByStep",
    "InjectorStep",
    "PassThroughStep",
    "RenameStep",
    "SelectStep",
    "SplitStep",
]
