# src/mrpipe/core/config.py
"""
Task configuration resolved from the batch job context.

The job context is a flat string-keyed mapping. TaskSettings validates it
with Pydantic and is frozen after construction. Per-role pipeline settings
are held in a table indexed by TaskRole so the role is looked up once, at
pipeline creation, rather than branched on repeatedly.

Job files for the local CLI are loaded with Dynaconf (YAML plus MRPIPE_*
environment overrides) and flattened into the same job context shape.
"""

import re
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from mrpipe.contracts.enums import PipelineLogLevel, TaskRole
from mrpipe.contracts.errors import ConfigurationError, VariableContextError


class JobContextKeys:
    """Recognized job context keys."""

    DEBUG = "debug"
    VARIABLE_CONTEXT = "variable-context"
    LOG_LEVEL = "log-level"
    OUTPUT_KEY_CLASS = "output-key-class"
    OUTPUT_VALUE_CLASS = "output-value-class"

    # Role names as they appear in the per-role keys
    ROLE_PREFIXES: Mapping[TaskRole, str] = {
        TaskRole.MAP: "pipeline-map",
        TaskRole.COMBINE: "pipeline-combiner",
        TaskRole.REDUCE: "pipeline-reduce",
    }

    @classmethod
    def definition(cls, role: TaskRole) -> str:
        return f"{cls.ROLE_PREFIXES[role]}-definition"

    @classmethod
    def input_step(cls, role: TaskRole) -> str:
        return f"{cls.ROLE_PREFIXES[role]}-input-stepname"

    @classmethod
    def output_step(cls, role: TaskRole) -> str:
        return f"{cls.ROLE_PREFIXES[role]}-output-stepname"


OutputTypeName = Literal["str", "int", "float", "bool", "bytes"]

OUTPUT_TYPES: Mapping[str, type] = {
    "str": str,
    "int": int,
    "float": float,
    "bool": bool,
    "bytes": bytes,
}


class RoleSettings(BaseModel):
    """Pipeline definition and step names for one role."""

    model_config = {"frozen": True}

    definition: str | None = Field(default=None, description="Serialized pipeline definition (YAML)")
    input_step: str | None = Field(default=None, description="Step that receives injected rows")
    output_step: str | None = Field(default=None, description="Step whose rows are collected")


class TaskSettings(BaseModel):
    """Immutable settings for one task attempt.

    Example job context:
        {
            "pipeline-map-definition": "<yaml>",
            "pipeline-map-input-stepname": "input",
            "pipeline-map-output-stepname": "output",
            "debug": "true",
            "log-level": "DETAILED",
            "output-key-class": "str",
            "output-value-class": "int",
        }
    """

    model_config = {"frozen": True}

    roles: Mapping[TaskRole, RoleSettings] = Field(default_factory=dict)
    debug: bool = False
    log_level: PipelineLogLevel | None = None
    variables: Mapping[str, str] = Field(default_factory=dict)
    output_key_class: OutputTypeName = "str"
    output_value_class: OutputTypeName = "str"

    @classmethod
    def from_job_context(cls, context: Mapping[str, Any]) -> "TaskSettings":
        """Resolve settings from a flat job context.

        Unrecognized keys are ignored; the job context also carries the
        framework's own settings.

        Raises:
            ConfigurationError: If a recognized value is invalid
            VariableContextError: If the variable context cannot be parsed
        """
        roles = {
            role: RoleSettings(
                definition=_non_empty(context.get(JobContextKeys.definition(role))),
                input_step=_non_empty(context.get(JobContextKeys.input_step(role))),
                output_step=_non_empty(context.get(JobContextKeys.output_step(role))),
            )
            for role in TaskRole
        }
        log_level_name = _non_empty(context.get(JobContextKeys.LOG_LEVEL))
        try:
            return cls(
                roles=roles,
                debug=parse_flag(context.get(JobContextKeys.DEBUG)),
                log_level=parse_log_level(log_level_name) if log_level_name else None,
                variables=parse_variable_context(context.get(JobContextKeys.VARIABLE_CONTEXT)),
                output_key_class=_non_empty(context.get(JobContextKeys.OUTPUT_KEY_CLASS)) or "str",
                output_value_class=_non_empty(context.get(JobContextKeys.OUTPUT_VALUE_CLASS)) or "str",
            )
        except ValidationError as e:
            raise ConfigurationError(f"Invalid task configuration: {e}") from e

    def for_role(self, role: TaskRole) -> RoleSettings:
        """Settings of ``role``; empty settings when the role was not configured."""
        return self.roles.get(role, RoleSettings())

    @property
    def definitions(self) -> dict[TaskRole, str | None]:
        return {role: settings.definition for role, settings in self.roles.items()}

    @property
    def output_key_type(self) -> type:
        return OUTPUT_TYPES[self.output_key_class]

    @property
    def output_value_type(self) -> type:
        return OUTPUT_TYPES[self.output_value_class]


def _non_empty(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value)
    return text if text.strip() else None


def parse_flag(value: Any) -> bool:
    """Only the string "true" (any case) enables a flag."""
    return isinstance(value, str | bool) and str(value).strip().lower() == "true"


def parse_log_level(name: str) -> PipelineLogLevel:
    """Resolve a pipeline log level name.

    Raises:
        ConfigurationError: If the name is not a known level
    """
    try:
        return PipelineLogLevel(name.strip().upper())
    except ValueError:
        valid = ", ".join(level.value for level in PipelineLogLevel)
        raise ConfigurationError(f"Unknown log level {name!r}. Valid levels: {valid}") from None


_VARIABLES_ADAPTER = TypeAdapter(dict[str, str | bool | int | float | None])


def parse_variable_context(blob: str | None) -> dict[str, str]:
    """Parse a serialized variable context into a name -> value map.

    The blob is a YAML (or JSON) mapping of names to scalars. Values are
    normalized to strings; null becomes the empty string.

    Args:
        blob: Serialized context, or None/blank when the job has none

    Returns:
        Variables by name (empty when no context was supplied)

    Raises:
        VariableContextError: If the blob is not a mapping of scalars
    """
    if blob is None or not blob.strip():
        return {}
    try:
        loaded = yaml.safe_load(blob)
    except yaml.YAMLError as e:
        raise VariableContextError(f"Variable context is not valid YAML: {e}") from e
    if not isinstance(loaded, dict):
        raise VariableContextError(f"Variable context must be a mapping, got {type(loaded).__name__}")
    try:
        checked = _VARIABLES_ADAPTER.validate_python(loaded, strict=True)
    except ValidationError as e:
        raise VariableContextError(f"Variable context values must be scalars: {e}") from e
    return {name: _variable_text(value) for name, value in checked.items()}


def _variable_text(value: str | bool | int | float | None) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


# ${NAME} or ${NAME:-default}; names may be dotted (Internal.Job.Name)
_VARIABLE_PATTERN = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_.]*)(?::-([^}]*))?\}")


def expand_variables(value: Any, variables: Mapping[str, str]) -> Any:
    """Recursively expand ${NAME} and ${NAME:-default} in string values.

    References to unknown names with no default are left as written.

    Args:
        value: String, dict, list or scalar (nested structures allowed)
        variables: Variable context

    Returns:
        New value with references expanded
    """

    def replacer(match: re.Match[str]) -> str:
        name = match.group(1)
        default = match.group(2)
        if name in variables:
            return variables[name]
        if default is not None:
            return default
        return match.group(0)

    if isinstance(value, str):
        return _VARIABLE_PATTERN.sub(replacer, value)
    if isinstance(value, dict):
        return {k: expand_variables(v, variables) for k, v in value.items()}
    if isinstance(value, list):
        return [expand_variables(item, variables) for item in value]
    return value


def _plain(value: Any) -> Any:
    """Convert Dynaconf boxes to plain dicts and lists for YAML dumping."""
    if isinstance(value, Mapping):
        return {str(k): _plain(v) for k, v in value.items()}
    if isinstance(value, list | tuple):
        return [_plain(item) for item in value]
    return value


def _context_text(value: Any) -> str:
    """Serialize a job file value to its job context string form."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Mapping | list | tuple):
        return yaml.safe_dump(_plain(value), sort_keys=False)
    return str(value)


def load_job_context(config_path: Path) -> dict[str, str]:
    """Load a job file into a flat job context.

    Uses Dynaconf for multi-source loading with precedence:
    1. Environment variables (MRPIPE_*) - highest priority
    2. Job file (YAML)

    Keys are written with underscores in the file (``pipeline_map_definition``)
    and become hyphenated job context keys. Definitions and the variable
    context may be given inline as YAML mappings. A ``*_definition_file`` key
    is read relative to the job file into the matching ``*-definition`` key.

    Raises:
        FileNotFoundError: If the job file or a referenced definition file
            doesn't exist
    """
    from dynaconf import Dynaconf

    # Dynaconf silently accepts missing files
    if not config_path.exists():
        raise FileNotFoundError(f"Job file not found: {config_path}")

    dynaconf_settings = Dynaconf(
        envvar_prefix="MRPIPE",
        settings_files=[str(config_path)],
        environments=False,
        load_dotenv=False,
    )

    internal_keys = {"LOAD_DOTENV", "ENVIRONMENTS", "SETTINGS_FILES"}
    raw = {k.lower().replace("_", "-"): v for k, v in dynaconf_settings.as_dict().items() if k not in internal_keys}

    context: dict[str, str] = {}
    for key, value in raw.items():
        if key.endswith("-definition-file"):
            definition_path = (config_path.parent / str(value)).resolve()
            if not definition_path.exists():
                raise FileNotFoundError(f"Pipeline definition file not found: {definition_path}")
            context[key.removesuffix("-file")] = definition_path.read_text(encoding="utf-8")
        elif value is not None:
            context[key] = _context_text(value)
    return context
