# src/mrpipe/engine/pipeline.py
"""Running pipeline: a chain of steps, one thread per step.

Architecture:
    caller -> put_row() -> [RowIntake] -> step thread -> emit
                                                          |-> row listeners
                                                          '-> next step's [RowIntake]

Rows flow through bounded intakes, so a slow step pushes back on everything
upstream of it, ending at the caller's put_row().

Shutdown:
    The only normal shutdown path is end-of-input: the caller signals
    finished() on the entry intake, each step drains its intake, flushes, and
    signals finished() downstream. wait_until_finished() joins every step
    thread. There are no timeouts.

Failure:
    An exception on a step thread (a step, or a listener it calls) is recorded
    and aborts every intake. Blocked producers get IntakeClosedError, steps
    exit without flushing. Only the first error aborts; all are kept.
"""

from __future__ import annotations

import threading
from collections.abc import Mapping
from typing import TYPE_CHECKING

from mrpipe.contracts.enums import PipelineLogLevel
from mrpipe.contracts.errors import IntakeClosedError, PipelineDefinitionError, UnknownStepError
from mrpipe.core.config import expand_variables
from mrpipe.core.logging import get_logger
from mrpipe.engine.intake import RowIntake

if TYPE_CHECKING:
    from mrpipe.contracts.protocols import RowListener
    from mrpipe.contracts.schema import Row, RowSchema
    from mrpipe.engine.definition import PipelineDefinition
    from mrpipe.plugins.base import BaseStep
    from mrpipe.plugins.manager import PluginManager

logger = get_logger(__name__)


class StepError(Exception):
    """Wraps an exception raised on a step thread with the step's name."""

    def __init__(self, step_name: str, cause: BaseException) -> None:
        self.step_name = step_name
        self.cause = cause
        super().__init__(f"Step '{step_name}' failed: {type(cause).__name__}: {cause}")


class _StepRunner:
    """Drives one step on its own thread."""

    def __init__(self, pipeline: Pipeline, step: BaseStep, intake: RowIntake) -> None:
        self._pipeline = pipeline
        self.step = step
        self.intake = intake
        self.downstream: RowIntake | None = None
        self.listeners: list[RowListener] = []
        self.rows_emitted = 0

        # input schema id -> (input schema, output schema)
        self._schemas: dict[int, tuple[RowSchema, RowSchema]] = {}
        self._last_output_schema: RowSchema | None = None
        self._log = logger.bind(pipeline=pipeline.name, step=step.step_name)

        self.thread = threading.Thread(
            target=self._run,
            name=f"{pipeline.name}-{step.step_name}",
            daemon=False,  # Non-daemon: close() waits for drain
        )

    def _output_schema(self, schema: RowSchema) -> RowSchema:
        cached = self._schemas.get(id(schema))
        if cached is not None and cached[0] is schema:
            return cached[1]
        output = self.step.output_schema(schema)
        self._schemas[id(schema)] = (schema, output)
        return output

    def _emit(self, schema: RowSchema, row: Row) -> None:
        if self._pipeline.row_level:
            self._log.debug("row emitted", row=row)
        self.rows_emitted += 1
        for listener in self.listeners:
            listener.row_emitted(schema, row)
        if self.downstream is not None:
            self.downstream.put_row(schema, row)

    def _run(self) -> None:
        self._log.debug("step started")
        try:
            while (item := self.intake.get()) is not None:
                schema, row = item
                output_schema = self._output_schema(schema)
                self._last_output_schema = output_schema
                for output_row in self.step.process(schema, row):
                    self._emit(output_schema, output_row)
            if not self._pipeline.is_aborted and self._last_output_schema is not None:
                for output_row in self.step.flush():
                    self._emit(self._last_output_schema, output_row)
        except IntakeClosedError as e:
            # Downstream closed because another step already failed
            if not self._pipeline.is_aborted:
                self._pipeline.record_error(self.step.step_name, e)
        except Exception as e:
            self._pipeline.record_error(self.step.step_name, e)
        finally:
            try:
                self.step.close()
            except Exception as e:
                self._pipeline.record_error(self.step.step_name, e)
            if self.downstream is not None:
                self.downstream.finished()
            self._log.debug("step finished", rows_emitted=self.rows_emitted)


class Pipeline:
    """A running instance of a pipeline definition.

    Owned by exactly one task. Not reusable: start() may be called once.

    Usage:
        pipeline = Pipeline.build(definition, manager, variables={"DIR": "/tmp"})
        pipeline.add_row_listener("output", collector)
        intake = pipeline.get_intake("input")
        pipeline.start()

        intake.put_row(pipeline.input_schema("input"), row)
        intake.finished()
        pipeline.wait_until_finished()
    """

    def __init__(
        self,
        definition: PipelineDefinition,
        steps: list[BaseStep],
        *,
        variables: Mapping[str, str] | None = None,
        log_level: PipelineLogLevel | None = None,
    ) -> None:
        self.definition = definition
        self.variables: dict[str, str] = dict(variables or {})
        self.row_level = log_level is PipelineLogLevel.ROWLEVEL

        self._runners: dict[str, _StepRunner] = {}
        previous: _StepRunner | None = None
        for step in steps:
            runner = _StepRunner(self, step, RowIntake(step.step_name, definition.buffer_size))
            if previous is not None:
                previous.downstream = runner.intake
            self._runners[step.step_name] = runner
            previous = runner

        self._errors: list[StepError] = []
        self._errors_lock = threading.Lock()
        self._aborted = threading.Event()
        self._started = False

    @classmethod
    def build(
        cls,
        definition: PipelineDefinition,
        manager: PluginManager,
        *,
        variables: Mapping[str, str] | None = None,
        log_level: PipelineLogLevel | None = None,
    ) -> Pipeline:
        """Instantiate every step of ``definition``.

        String options are expanded against ``variables`` first.

        Raises:
            UnknownStepError: If a step's plugin is not registered
            StepConfigError: If a step's options are invalid
        """
        variables = dict(variables or {})
        steps = [manager.create_step(step.plugin, step.name, expand_variables(step.options, variables)) for step in definition.steps]
        return cls(definition, steps, variables=variables, log_level=log_level)

    @property
    def name(self) -> str:
        return self.definition.name

    @property
    def step_names(self) -> list[str]:
        return list(self._runners)

    def _runner(self, step_name: str) -> _StepRunner:
        try:
            return self._runners[step_name]
        except KeyError:
            raise UnknownStepError(f"Pipeline '{self.name}' has no step named '{step_name}'. Steps: {self.step_names}") from None

    def get_step(self, step_name: str) -> BaseStep:
        return self._runner(step_name).step

    def get_intake(self, step_name: str) -> RowIntake:
        """Intake through which rows are injected into ``step_name``.

        Raises:
            UnknownStepError: If there is no such step
            PipelineDefinitionError: If the step is not the first step
        """
        runner = self._runner(step_name)
        if step_name != self.step_names[0]:
            raise PipelineDefinitionError(f"Rows can only be injected into the first step of '{self.name}' ('{self.step_names[0]}'), not '{step_name}'")
        return runner.intake

    def input_schema(self, step_name: str) -> RowSchema:
        """Schema of rows accepted by ``step_name``.

        Raises:
            PipelineDefinitionError: If the step declares no input schema
        """
        step = self.get_step(step_name)
        if step.declared_schema is None:
            raise PipelineDefinitionError(f"Step '{step_name}' ({step.name}) does not declare input fields and cannot receive injected rows")
        return step.declared_schema

    def add_row_listener(self, step_name: str, listener: RowListener) -> None:
        """Observe every row ``step_name`` emits. Must be called before start()."""
        if self._started:
            raise RuntimeError(f"Cannot add a row listener to '{self.name}' after it started")
        self._runner(step_name).listeners.append(listener)

    def start(self) -> None:
        """Start one thread per step."""
        if self._started:
            raise RuntimeError(f"Pipeline '{self.name}' was already started")
        self._started = True
        logger.info("pipeline started", pipeline=self.name, steps=self.step_names)
        for runner in self._runners.values():
            runner.thread.start()

    def wait_until_finished(self) -> None:
        """Block until every step thread has exited."""
        if not self._started:
            return
        for runner in self._runners.values():
            runner.thread.join()
        logger.info(
            "pipeline finished",
            pipeline=self.name,
            errors=len(self.errors),
            rows_emitted={name: runner.rows_emitted for name, runner in self._runners.items()},
        )

    def stop(self) -> None:
        """Abort processing: discard queued rows and end every step."""
        self._aborted.set()
        for runner in self._runners.values():
            runner.intake.abort()

    def record_error(self, step_name: str, error: BaseException) -> None:
        """Record an error from a step thread. The first one aborts the pipeline."""
        with self._errors_lock:
            self._errors.append(StepError(step_name, error))
            first = len(self._errors) == 1
        if first:
            logger.error("step failed, aborting pipeline", pipeline=self.name, step=step_name, error=str(error))
            self.stop()

    @property
    def errors(self) -> list[StepError]:
        with self._errors_lock:
            return list(self._errors)

    @property
    def first_error(self) -> StepError | None:
        with self._errors_lock:
            return self._errors[0] if self._errors else None

    @property
    def is_aborted(self) -> bool:
        return self._aborted.is_set()

    @property
    def is_started(self) -> bool:
        return self._started

    @property
    def is_finished(self) -> bool:
        return self._started and not any(runner.thread.is_alive() for runner in self._runners.values())

    def rows_emitted(self, step_name: str) -> int:
        return self._runner(step_name).rows_emitted
