# src/mrpipe/cli.py
"""mrpipe Command Line Interface.

Entry point for the mrpipe CLI tool.
"""

from __future__ import annotations

import json
from pathlib import Path

import typer
from dynaconf.vendor.ruamel.yaml.parser import ParserError as YamlParserError
from dynaconf.vendor.ruamel.yaml.scanner import ScannerError as YamlScannerError

from mrpipe import __version__
from mrpipe.contracts.enums import TaskRole
from mrpipe.contracts.errors import MrPipeError
from mrpipe.core.config import TaskSettings, load_job_context
from mrpipe.engine.loader import PipelineLoader, default_plugin_manager
from mrpipe.mapreduce.converters import ColumnCoercer
from mrpipe.mapreduce.local import LocalJobRunner, read_text_records

__all__ = ["app"]

app = typer.Typer(
    name="mrpipe",
    help="mrpipe: dataflow pipelines as map, combine and reduce functions.",
    no_args_is_help=True,
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"mrpipe version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose/debug logging.",
    ),
    json_logs: bool = typer.Option(
        False,
        "--json-logs",
        help="Output structured JSON logs (for machine processing).",
    ),
) -> None:
    """mrpipe: dataflow pipelines as map, combine and reduce functions."""
    from mrpipe.core.logging import configure_logging

    configure_logging(json_output=json_logs, level="DEBUG" if verbose else "WARNING")


def _load(job_file: Path) -> dict[str, str]:
    try:
        return load_job_context(job_file)
    except (YamlParserError, YamlScannerError) as e:
        typer.echo(f"YAML syntax error in {job_file}: {e.problem}", err=True)
        raise typer.Exit(1) from None
    except FileNotFoundError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from None


@app.command()
def validate(
    job_file: Path = typer.Argument(..., help="Path to the job YAML file."),
) -> None:
    """Check that each configured role's pipeline loads and is wired up."""
    context = _load(job_file)
    try:
        settings = TaskSettings.from_job_context(context)
    except MrPipeError as e:
        typer.echo(f"Configuration error: {e}", err=True)
        raise typer.Exit(1) from None

    loader = PipelineLoader()
    configured = [role for role in TaskRole if settings.for_role(role).definition]
    if not configured:
        typer.echo("Error: no pipeline definitions configured.", err=True)
        raise typer.Exit(1)

    failed = False
    for role in configured:
        role_settings = settings.for_role(role)
        try:
            pipeline = loader.create_pipeline(role, settings.definitions, variables=settings.variables)
            if role_settings.input_step is None or role_settings.output_step is None:
                raise MrPipeError("input and output step names must be configured")
            pipeline.input_schema(role_settings.input_step)
            pipeline.get_intake(role_settings.input_step)
            pipeline.get_step(role_settings.output_step)
        except MrPipeError as e:
            failed = True
            typer.secho(f"  {role}: {e}", fg=typer.colors.RED, err=True)
            continue
        typer.echo(f"  {role}: {pipeline.name} ({' -> '.join(pipeline.step_names)})")

    if failed:
        raise typer.Exit(1)
    typer.secho("Job configuration is valid.", fg=typer.colors.GREEN)


@app.command()
def run(
    job_file: Path = typer.Argument(..., help="Path to the job YAML file."),
    input_file: Path = typer.Argument(..., help="Text input; one record per line."),
    output: Path | None = typer.Option(
        None,
        "--output",
        "-o",
        help="Write key<TAB>value lines here instead of stdout.",
    ),
    coerce: bool = typer.Option(
        False,
        "--coerce",
        help="Coerce record keys and values to the input columns' declared types.",
    ),
    show_counters: bool = typer.Option(
        False,
        "--counters",
        help="Print task counters as JSON on stderr.",
    ),
) -> None:
    """Run a job locally over a text file: map, then combine and reduce if configured."""
    context = _load(job_file)
    if not input_file.exists():
        typer.echo(f"Error: Input file not found: {input_file}", err=True)
        raise typer.Exit(1)

    converter = ColumnCoercer() if coerce else None
    runner = LocalJobRunner(context, key_converter=converter, value_converter=converter)
    try:
        result = runner.run(read_text_records(input_file))
    except MrPipeError as e:
        typer.echo(f"Job failed: {e}", err=True)
        raise typer.Exit(1) from None

    lines = [f"{'' if key is None else key}\t{'' if value is None else value}" for key, value in result.output]
    if output is not None:
        output.write_text("".join(f"{line}\n" for line in lines), encoding="utf-8")
    else:
        for line in lines:
            typer.echo(line)

    if show_counters:
        typer.echo(json.dumps({str(role): counts for role, counts in result.counters.items()}, indent=2), err=True)


@app.command()
def steps() -> None:
    """List the registered step plugins."""
    for step_cls in sorted(default_plugin_manager().get_steps(), key=lambda cls: cls.name):
        doc = (step_cls.__doc__ or "").strip().splitlines()
        typer.echo(f"{step_cls.name:<12} {doc[0] if doc else ''}")


if __name__ == "__main__":
    app()
