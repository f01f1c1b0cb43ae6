"""Core infrastructure: configuration, logging and ordinal resolution."""

from mrpipe.core.config import TaskSettings, load_job_context
from mrpipe.core.logging import configure_logging, get_logger
from mrpipe.core.ordinals import (
    KeyValueOrdinals,
    OrdinalCache,
    resolve_input_ordinals,
    resolve_ordinals,
    resolve_output_ordinals,
)

__all__ = [
    "KeyValueOrdinals",
    "OrdinalCache",
    "TaskSettings",
    "configure_logging",
    "get_logger",
    "load_job_context",
    "resolve_input_ordinals",
    "resolve_ordinals",
    "resolve_output_ordinals",
]
