# src/mrpipe/mapreduce/adapter.py
"""Task adapter: a pipeline behind the batch framework's per-task callbacks.

The framework creates one adapter per task attempt and drives it through a
narrow interface:

    configure(job_context)        once
    process_record(key, value)    once per record, sequentially
    close()                       once

The pipeline it wraps runs on its own threads for the whole task.

Lifecycle:
    UNCONFIGURED --configure--> CONFIGURED --pipeline started--> RUNNING --close--> CLOSED

    configure() parses the task settings, applies the log level, creates the
    pipeline for the adapter's role, attaches the output collector to the
    exit step and only then starts the pipeline, so no early emission is
    missed. A second configure() is not supported and raises TaskStateError.

Ownership:
    The pipeline, its intake, the counters and the collector belong to one
    adapter. Nothing here is shared across tasks.

Error surfacing:
    Errors recorded on pipeline threads (by the collector, or by a failing
    step) stop the pipeline and are raised on the caller thread as
    PipelineExecutionError. Once an error is recorded, every later
    process_record() raises it, and so does close(): a recorded error is
    always the task's terminal failure.

Log level:
    The pipeline log level is applied to the process-wide engine logger at
    configure() and the previous level is restored at close().
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING, Any

from mrpipe.contracts.enums import TaskRole, TaskState
from mrpipe.contracts.errors import (
    ConfigurationError,
    IntakeClosedError,
    MrPipeError,
    PipelineExecutionError,
    TaskStateError,
)
from mrpipe.core.config import TaskSettings
from mrpipe.core.logging import apply_pipeline_log_level, get_logger, restore_engine_log_level
from mrpipe.engine.loader import PipelineLoader
from mrpipe.mapreduce.collector import OutputCollector
from mrpipe.mapreduce.counters import TaskCounters
from mrpipe.mapreduce.injector import RowInjector

if TYPE_CHECKING:
    import structlog

    from mrpipe.contracts.protocols import Reporter, ResultSink, TypeConverter
    from mrpipe.contracts.schema import Row
    from mrpipe.engine.intake import RowIntake
    from mrpipe.engine.pipeline import Pipeline


class TaskAdapter:
    """Runs the role's pipeline as a record-processing callback.

    Usage:
        adapter = TaskAdapter(sink, role=TaskRole.MAP)
        adapter.configure(job_context)
        for key, value in records:
            adapter.process_record(key, value)
        adapter.close()  # Raises PipelineExecutionError on a deferred failure

    Attributes:
        task_id: Unique id of this adapter instance
        counters: Input/output record counters
    """

    def __init__(
        self,
        sink: ResultSink,
        role: TaskRole | None = None,
        *,
        key_converter: TypeConverter | None = None,
        value_converter: TypeConverter | None = None,
        reporter: Reporter | None = None,
        loader: PipelineLoader | None = None,
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        self.task_id = str(uuid.uuid4())
        self._role = role
        self._state = TaskState.UNCONFIGURED

        self._sink = sink
        self._key_converter = key_converter
        self._value_converter = value_converter
        self._reporter = reporter
        self._loader = loader
        self._log = (logger or get_logger(__name__)).bind(task_id=self.task_id)

        self.counters = TaskCounters(reporter)
        self.settings: TaskSettings | None = None
        self.pipeline: Pipeline | None = None
        self._collector: OutputCollector | None = None
        self._injector: RowInjector | None = None
        self._intake: RowIntake | None = None
        self._input_step: str | None = None
        self._previous_engine_level: int | None = None

    # === Identity ===

    @property
    def role(self) -> TaskRole | None:
        return self._role

    def set_role(self, role: TaskRole) -> None:
        """Declare the role. Allowed once, before configure().

        Raises:
            ConfigurationError: If a different role was already declared
            TaskStateError: If the adapter is already configured
        """
        if self._state is not TaskState.UNCONFIGURED:
            raise TaskStateError("set the role", self._state)
        if self._role is not None and self._role is not role:
            raise ConfigurationError(f"Task role is already {self._role}; cannot change it to {role}")
        self._role = role

    @property
    def state(self) -> TaskState:
        return self._state

    @property
    def collector(self) -> OutputCollector | None:
        return self._collector

    # === Lifecycle ===

    def configure(self, job_context: Mapping[str, Any]) -> None:
        """Parse the job context, create and start the pipeline.

        Raises:
            TaskStateError: If called more than once
            ConfigurationError: If the role is undeclared or a setting is
                invalid (VariableContextError for the variable context)
            PipelineLoadError: If the role's pipeline cannot be created
        """
        if self._state is not TaskState.UNCONFIGURED:
            raise TaskStateError("configure", self._state)

        settings = TaskSettings.from_job_context(job_context)
        self.settings = settings
        log = self._log.bind(role=str(self._role) if self._role else None)

        if settings.variables:
            log.debug("variable context loaded", variables=sorted(settings.variables))
        else:
            log.debug("no variable context in job configuration")
        if settings.log_level is not None:
            self._previous_engine_level = apply_pipeline_log_level(settings.log_level)
            log.debug("pipeline log level set", log_level=str(settings.log_level))
        else:
            log.info("no log level in job configuration, pipeline log level not set")
        if settings.debug:
            log.debug(
                "job configuration",
                output_key_class=settings.output_key_class,
                output_value_class=settings.output_value_class,
            )

        loader = self._loader or PipelineLoader(logger=log)
        pipeline = loader.create_pipeline(
            self._role,
            settings.definitions,
            variables=settings.variables,
            log_level=settings.log_level,
        )
        self.pipeline = pipeline
        self._state = TaskState.CONFIGURED
        self._start(pipeline, settings, log)

    def _start(self, pipeline: Pipeline, settings: TaskSettings, log: structlog.stdlib.BoundLogger) -> None:
        assert self._role is not None  # create_pipeline rejects a missing role
        role_settings = settings.for_role(self._role)
        if role_settings.input_step is None or role_settings.output_step is None:
            raise ConfigurationError(f"Input and output step names must be configured for the {self._role} pipeline")

        collector = OutputCollector(
            self._sink,
            self.counters,
            key_type=settings.output_key_type,
            value_type=settings.output_value_type,
            debug=settings.debug,
            logger=log,
            on_error=lambda _: pipeline.stop(),
        )
        try:
            pipeline.add_row_listener(role_settings.output_step, collector)
            intake = pipeline.get_intake(role_settings.input_step)
            pipeline.input_schema(role_settings.input_step)
        except MrPipeError as e:
            raise ConfigurationError(f"Pipeline '{pipeline.name}' cannot run as {self._role}: {e}") from e

        self._collector = collector
        self._intake = intake
        self._input_step = role_settings.input_step
        self._injector = RowInjector(self.counters, debug=settings.debug, logger=log, reporter=self._reporter)

        pipeline.start()
        self._state = TaskState.RUNNING
        log.info(
            "task running",
            pipeline=pipeline.name,
            input_step=role_settings.input_step,
            output_step=role_settings.output_step,
        )

    def process_record(self, key: Any, value: Any) -> Row:
        """Inject one record into the pipeline.

        Returns:
            The row that was pushed

        Raises:
            TaskStateError: If the task is not running
            PipelineExecutionError: If an error was recorded on a pipeline
                thread (on every call once it was)
            ConversionError: If a converter rejects the key or value
            IntakeClosedError: If the intake no longer accepts rows
        """
        if self._state is not TaskState.RUNNING:
            raise TaskStateError("process a record", self._state)
        assert self.pipeline is not None and self._injector is not None and self._intake is not None
        assert self._input_step is not None

        self._raise_pending_error()
        schema = self.pipeline.input_schema(self._input_step)
        try:
            return self._injector.inject(key, value, schema, self._intake, self._key_converter, self._value_converter)
        except IntakeClosedError:
            # Closed under us because a step failed; report that failure instead
            self._raise_pending_error()
            raise

    def process_group(self, key: Any, values: Iterable[Any]) -> int:
        """Inject one record per value, all with the same key.

        Combine and reduce tasks receive their input grouped by key.

        Returns:
            Number of records injected
        """
        count = 0
        for value in values:
            self.process_record(key, value)
            count += 1
        return count

    def close(self) -> None:
        """Signal end-of-input, wait for the pipeline to drain and release it.

        Idempotent once closed.

        Raises:
            PipelineExecutionError: If an error was recorded on a pipeline
                thread, even if process_record() already raised it
        """
        if self._state is TaskState.CLOSED:
            return
        previous = self._state
        self._state = TaskState.CLOSED

        try:
            if previous is TaskState.RUNNING:
                assert self.pipeline is not None and self._intake is not None
                self._intake.finished()
                self.pipeline.wait_until_finished()
                self._log.info("task closed", counters=self.counters.snapshot())
        finally:
            if self._previous_engine_level is not None:
                restore_engine_log_level(self._previous_engine_level)
                self._previous_engine_level = None
        self._raise_pending_error()

    def get_exception(self) -> BaseException | None:
        """First error recorded on a pipeline thread, or None.

        The collector's error takes precedence over step failures.
        """
        if self._collector is not None and self._collector.exception is not None:
            return self._collector.exception
        if self.pipeline is not None and self.pipeline.first_error is not None:
            return self.pipeline.first_error.cause
        return None

    def _raise_pending_error(self) -> None:
        error = self.get_exception()
        if error is None:
            return
        step_error = self.pipeline.first_error if self.pipeline is not None else None
        where = f" in step '{step_error.step_name}'" if step_error is not None and step_error.cause is error else ""
        raise PipelineExecutionError(f"Pipeline for task {self.task_id} ({self._role}) failed{where}: {type(error).__name__}: {error}") from error

    def __enter__(self) -> TaskAdapter:
        return self

    def __exit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        if exc_type is None:
            self.close()
            return
        # Already failing: drain without masking the original error
        try:
            self.close()
        except PipelineExecutionError as close_error:
            self._log.error("pipeline error while closing failed task", error=str(close_error))


class PipelineMapper(TaskAdapter):
    """TaskAdapter running the job's map pipeline."""

    def __init__(self, sink: ResultSink, **kwargs: Any) -> None:
        super().__init__(sink, TaskRole.MAP, **kwargs)


class PipelineCombiner(TaskAdapter):
    """TaskAdapter running the job's combiner pipeline."""

    def __init__(self, sink: ResultSink, **kwargs: Any) -> None:
        super().__init__(sink, TaskRole.COMBINE, **kwargs)


class PipelineReducer(TaskAdapter):
    """TaskAdapter running the job's reduce pipeline."""

    def __init__(self, sink: ResultSink, **kwargs: Any) -> None:
        super().__init__(sink, TaskRole.REDUCE, **kwargs)
