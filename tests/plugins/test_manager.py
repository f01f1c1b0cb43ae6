# tests/plugins/test_manager.py
"""Tests for plugin manager."""

from __future__ import annotations

from collections.abc import Iterable

import pytest

from mrpipe.contracts.errors import StepConfigError, UnknownStepError
from mrpipe.contracts.schema import Row, RowSchema
from mrpipe.plugins.base import BaseStep
from mrpipe.plugins.hookspecs import hookimpl
from mrpipe.plugins.manager import PluginManager
from mrpipe.plugins.steps import SplitStep

BUILTIN_NAMES = {"injector", "passthrough", "rename", "select", "constant", "split", "group_by"}


class EchoStep(BaseStep):
    """Test step that passes rows through."""

    name = "echo"

    def output_schema(self, input_schema: RowSchema) -> RowSchema:
        return input_schema

    def process(self, schema: RowSchema, row: Row) -> Iterable[Row]:
        return (row,)


class ImpostorSplit(EchoStep):
    name = "split"


class TestPluginManager:
    """Tests for PluginManager."""

    def test_builtin_steps_registered(self) -> None:
        manager = PluginManager()
        manager.register_builtin_plugins()

        assert {cls.name for cls in manager.get_steps()} == BUILTIN_NAMES

    def test_register_builtins_is_idempotent(self) -> None:
        manager = PluginManager()
        manager.register_builtin_plugins()
        manager.register_builtin_plugins()

        assert len(manager.get_steps()) == len(BUILTIN_NAMES)

    def test_register_plugin(self) -> None:
        class MyPlugin:
            @hookimpl
            def mrpipe_get_steps(self) -> list[type[BaseStep]]:
                return [EchoStep]

        manager = PluginManager()
        manager.register(MyPlugin())

        assert manager.get_step_by_name("echo") is EchoStep

    def test_duplicate_name_rejected_and_unregistered(self) -> None:
        class Impostor:
            @hookimpl
            def mrpipe_get_steps(self) -> list[type[BaseStep]]:
                return [ImpostorSplit]

        manager = PluginManager()
        manager.register_builtin_plugins()

        with pytest.raises(ValueError, match="Duplicate step plugin name: 'split'"):
            manager.register(Impostor())

        assert manager.get_step_by_name("split") is SplitStep

    def test_unknown_step(self) -> None:
        manager = PluginManager()
        manager.register_builtin_plugins()

        with pytest.raises(UnknownStepError, match="Available: constant, group_by"):
            manager.get_step_by_name("nope")

    def test_unknown_step_with_nothing_registered(self) -> None:
        with pytest.raises(UnknownStepError, match="none registered"):
            PluginManager().get_step_by_name("split")

    def test_create_step_validates_options(self) -> None:
        manager = PluginManager()
        manager.register_builtin_plugins()

        step = manager.create_step("split", "words", {"field": "value"})

        assert isinstance(step, SplitStep)
        assert step.step_name == "words"
        assert step.config.field == "value"
        with pytest.raises(StepConfigError, match="SplitConfig"):
            manager.create_step("split", "words", {"field": "value", "bogus": 1})

    def test_options_must_be_mapping(self) -> None:
        manager = PluginManager()
        manager.register_builtin_plugins()

        with pytest.raises(StepConfigError, match="must be a mapping"):
            manager.create_step("split", "words", ["field"])  # type: ignore[arg-type]
