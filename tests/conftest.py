# tests/conftest.py
"""Shared test fixtures and helpers.

Pipeline Definitions:
- WORDCOUNT_MAP: split lines into (outKey=word, outValue=1)
- WORDCOUNT_REDUCE: sum values per key (also used as the combiner)
- GATED: injector -> gate -> output, for backpressure tests
- EXPLODING: injector -> boom -> output, for step failure tests

Test Steps (registered by TestStepsPlugin, see plugin_manager fixture):
- GateStep: blocks every row until its ``gate`` event is set
- ExplodingStep: raises RuntimeError on the configured row

Hypothesis Configuration:
- "ci" profile: Fast tests for CI (100 examples) - default
- "nightly" profile: Thorough tests (1000 examples)
- "debug" profile: Minimal tests with verbose output (10 examples)

Set profile via environment variable:
    HYPOTHESIS_PROFILE=nightly pytest tests/property/
"""

from __future__ import annotations

import os
import threading
import time
from collections.abc import Callable, Iterable
from typing import Any

import pytest
from hypothesis import Phase, Verbosity, settings

from mrpipe.contracts.enums import TaskCounter
from mrpipe.contracts.schema import Row, RowSchema
from mrpipe.engine.loader import PipelineLoader
from mrpipe.plugins.base import BaseStep
from mrpipe.plugins.config_base import StepConfig
from mrpipe.plugins.hookspecs import hookimpl
from mrpipe.plugins.manager import PluginManager

# =============================================================================
# Pipeline definitions
# =============================================================================

WORDCOUNT_MAP = """\
name: wordcount-map
steps:
  - name: input
    plugin: injector
    options:
      fields:
        - {name: key, type: integer}
        - {name: value, type: string}
  - name: words
    plugin: split
    options: {field: value, output: outKey, lowercase: true}
  - name: one
    plugin: constant
    options:
      columns:
        - {name: outValue, type: integer, value: 1}
  - name: output
    plugin: passthrough
"""

WORDCOUNT_REDUCE = """\
name: wordcount-reduce
steps:
  - name: input
    plugin: injector
    options:
      fields:
        - {name: key, type: string}
        - {name: value, type: integer}
  - name: total
    plugin: group_by
    options:
      group: [key]
      aggregates:
        - {field: value, function: sum, output: outValue}
  - name: output
    plugin: rename
    options:
      mapping: {key: outKey}
"""

# Map-side identity: key -> outKey, value -> outValue
IDENTITY = """\
name: identity
steps:
  - name: input
    plugin: injector
    options:
      fields: [{name: key}, {name: value}]
  - name: output
    plugin: rename
    options:
      mapping: {key: outKey, value: outValue}
"""

GATED = """\
name: gated
buffer_size: 1
steps:
  - name: input
    plugin: injector
    options:
      fields: [{name: key}, {name: value}]
  - name: gate
    plugin: gate
  - name: output
    plugin: rename
    options:
      mapping: {key: outKey, value: outValue}
"""

EXPLODING = """\
name: exploding
steps:
  - name: input
    plugin: injector
    options:
      fields: [{name: key}, {name: value}]
  - name: boom
    plugin: explode
    options: {on_row: 1}
  - name: output
    plugin: rename
    options:
      mapping: {key: outKey, value: outValue}
"""


def job_context(
    *,
    map_definition: str | None = None,
    combine_definition: str | None = None,
    reduce_definition: str | None = None,
    **extra: str,
) -> dict[str, str]:
    """Job context with input/output step names set for every given role."""
    context: dict[str, str] = {}
    for prefix, definition in (
        ("pipeline-map", map_definition),
        ("pipeline-combiner", combine_definition),
        ("pipeline-reduce", reduce_definition),
    ):
        if definition is not None:
            context[f"{prefix}-definition"] = definition
            context[f"{prefix}-input-stepname"] = "input"
            context[f"{prefix}-output-stepname"] = "output"
    context.update({key.replace("_", "-"): value for key, value in extra.items()})
    return context


def wait_for(predicate: Callable[[], bool], timeout: float = 5.0) -> bool:
    """Poll ``predicate`` until it holds or ``timeout`` elapses."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.005)
    return predicate()


# =============================================================================
# Test doubles
# =============================================================================


class RecordingSink:
    """ResultSink that records pairs, optionally failing on the Nth collect."""

    def __init__(self, fail_on: int | None = None) -> None:
        self.pairs: list[tuple[Any, Any]] = []
        self._fail_on = fail_on
        self._calls = 0

    def collect(self, key: Any, value: Any) -> None:
        self._calls += 1
        if self._fail_on is not None and self._calls >= self._fail_on:
            raise OSError(f"sink rejected record {self._calls}")
        self.pairs.append((key, value))


class RecordingReporter:
    """Reporter that records status messages and counter increments."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.statuses: list[str] = []
        self.increments: list[tuple[TaskCounter, int]] = []

    def set_status(self, message: str) -> None:
        with self._lock:
            self.statuses.append(message)

    def increment_counter(self, counter: TaskCounter, amount: int) -> None:
        with self._lock:
            self.increments.append((counter, amount))

    def total(self, counter: TaskCounter) -> int:
        with self._lock:
            return sum(amount for name, amount in self.increments if name is counter)


class GateStep(BaseStep):
    """Holds every row until ``gate`` is set, then passes it through."""

    name = "gate"

    def __init__(self, step_name: str, options: dict[str, Any]) -> None:
        super().__init__(step_name, options)
        self.gate = threading.Event()
        self.entered = threading.Event()

    def output_schema(self, input_schema: RowSchema) -> RowSchema:
        return input_schema

    def process(self, schema: RowSchema, row: Row) -> Iterable[Row]:
        self.entered.set()
        self.gate.wait()
        return (row,)


class ExplodeConfig(StepConfig):
    on_row: int = 1


class ExplodingStep(BaseStep):
    """Passes rows through until row ``on_row`` (1-based), which raises."""

    name = "explode"
    config_class = ExplodeConfig
    config: ExplodeConfig

    def __init__(self, step_name: str, options: dict[str, Any]) -> None:
        super().__init__(step_name, options)
        self.seen = 0
        self.closed = False

    def output_schema(self, input_schema: RowSchema) -> RowSchema:
        return input_schema

    def process(self, schema: RowSchema, row: Row) -> Iterable[Row]:
        self.seen += 1
        if self.seen == self.config.on_row:
            raise RuntimeError(f"exploded on row {self.seen}")
        return (row,)

    def close(self) -> None:
        self.closed = True


class TestStepsPlugin:
    """Registers the test-only steps."""

    __test__ = False

    @hookimpl
    def mrpipe_get_steps(self) -> list[type[BaseStep]]:
        return [GateStep, ExplodingStep]


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def plugin_manager() -> PluginManager:
    """Plugin manager with the built-in and test steps registered."""
    manager = PluginManager()
    manager.register_builtin_plugins()
    manager.register(TestStepsPlugin())
    return manager


@pytest.fixture
def loader(plugin_manager: PluginManager) -> PipelineLoader:
    return PipelineLoader(plugin_manager)


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def reporter() -> RecordingReporter:
    return RecordingReporter()


# =============================================================================
# Hypothesis Configuration
# =============================================================================

# CI profile: Fast tests for continuous integration
settings.register_profile(
    "ci",
    max_examples=100,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,  # Disable deadline for CI (timing varies)
)

# Nightly profile: Thorough testing for scheduled runs
settings.register_profile(
    "nightly",
    max_examples=1000,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

# Debug profile: Minimal examples with verbose output for debugging
settings.register_profile(
    "debug",
    max_examples=10,
    verbosity=Verbosity.verbose,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

# Load profile from environment, default to "ci"
settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "ci"))
