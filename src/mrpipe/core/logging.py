# src/mrpipe/core/logging.py
"""Structured logging configuration for mrpipe.

Configures BOTH structlog and stdlib logging so that modules using
logging.getLogger(__name__) and modules using structlog.get_logger()
emit the same output (JSON or console). Stdlib records are routed through
structlog's processor chain with ProcessorFormatter.

Pipeline verbosity from the job context is applied separately, to the
``mrpipe.engine`` logger only, so a task can run its pipeline at ROWLEVEL
without turning the adapter and the framework glue up to DEBUG.
"""

import logging
import sys
from typing import Any

import structlog
from structlog.stdlib import ProcessorFormatter

from mrpipe.contracts.enums import PipelineLogLevel

ENGINE_LOGGER_NAME = "mrpipe.engine"

# Loggers that are noise at DEBUG level (config loading internals)
_NOISY_LOGGERS: tuple[str, ...] = (
    "dynaconf",
    "pluggy",
)


def _remove_internal_fields(
    logger: logging.Logger | None,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Drop the bookkeeping keys ProcessorFormatter always adds."""
    del event_dict["_record"]
    del event_dict["_from_structlog"]
    return event_dict


def configure_logging(
    *,
    json_output: bool = False,
    level: str = "INFO",
) -> None:
    """Configure structlog and stdlib logging for mrpipe.

    Args:
        json_output: If True, output JSON. If False, human-readable.
        level: Log level (DEBUG, INFO, WARNING, ERROR).
    """
    log_level = getattr(logging, level.upper())

    shared_processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
    ]

    if json_output:
        final_processors: list[Any] = [
            _remove_internal_fields,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        final_processors = [
            _remove_internal_fields,
            structlog.dev.ConsoleRenderer(colors=False),
        ]

    structlog.configure(
        processors=[*shared_processors, ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        # Reconfiguration in tests needs fresh loggers
        cache_logger_on_first_use=False,
    )

    # Task output goes to stderr; stdout belongs to the job's results
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        ProcessorFormatter(
            processors=final_processors,
            foreign_pre_chain=shared_processors,
        )
    )

    root = logging.getLogger()
    root.handlers = []
    root.addHandler(handler)
    root.setLevel(log_level)

    noisy_level = max(log_level, logging.WARNING)
    for logger_name in _NOISY_LOGGERS:
        logging.getLogger(logger_name).setLevel(noisy_level)


def apply_pipeline_log_level(level: PipelineLogLevel) -> int:
    """Set the verbosity of the dataflow engine's loggers.

    The engine logger is process-wide, so a task restores the returned level
    when it closes.

    Returns:
        The engine logger's previous stdlib level
    """
    engine = logging.getLogger(ENGINE_LOGGER_NAME)
    previous = engine.level
    engine.setLevel(level.stdlib_level)
    return previous


def restore_engine_log_level(level: int) -> None:
    """Put the engine logger back to a level returned by apply_pipeline_log_level()."""
    logging.getLogger(ENGINE_LOGGER_NAME).setLevel(level)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a bound logger for a module.

    Args:
        name: Logger name (typically __name__).

    Returns:
        Bound structlog logger.
    """
    logger: structlog.stdlib.BoundLogger = structlog.get_logger(name)
    return logger
