"""Typer CLI application."""

import json
from pathlib import Path
from typing import Any, Dict, Optional

import typer

from efrev.analysis.analyzer import RelationshipAnalyzer
from efrev.config.logging import setup_logging
from efrev.config.settings import (
    DEFAULT_SETTINGS_FILE,
    Settings,
    load_settings,
    write_default_config,
)
from efrev.errors import EfrevError
from efrev.generation.pipeline import run_code_generation
from efrev.readers.factory import create_schema_reader
from efrev.schema.snapshot import save_snapshot

app = typer.Typer(help="efrev: reverse-engineer Entity Framework code from a database schema")


def _load(
    settings_file: Path,
    config_file: Optional[Path],
    overrides: Dict[str, Any],
    verbose: bool,
) -> Settings:
    settings = load_settings(settings_file=settings_file, config_file=config_file, overrides=overrides)
    setup_logging(level="DEBUG" if verbose else settings.log_level, log_file=settings.log_file)
    return settings


def _fail(error: Exception) -> None:
    typer.echo(f"Error: {error}", err=True)
    raise typer.Exit(1)


@app.command()
def generate(
    connection: Optional[str] = typer.Option(None, "--connection", "-c", help="Database connection string"),
    provider: Optional[str] = typer.Option(None, "--provider", "-p", help="Database provider name"),
    namespace: Optional[str] = typer.Option(None, "--namespace", "-n", help="Namespace for generated code"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Output directory"),
    pluralize: Optional[bool] = typer.Option(None, "--pluralize/--no-pluralize", help="Pluralize collection names"),
    data_annotations: Optional[bool] = typer.Option(
        None, "--data-annotations/--no-data-annotations", help="Use data annotations"
    ),
    config: Optional[Path] = typer.Option(None, "--config", help="Custom configuration file (efrev.json)"),
    settings_file: Path = typer.Option(Path(DEFAULT_SETTINGS_FILE), "--settings", help="Settings file"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
):
    """
    Generate entity classes, configurations and the DbContext.
    """
    overrides = {
        "connection_string": connection,
        "provider": provider,
        "namespace": namespace,
        "output_directory": output,
        "is_pluralize": pluralize,
        "use_data_annotations": data_annotations,
    }
    try:
        settings = _load(settings_file, config, overrides, verbose)
        typer.echo(f"Generating code into {settings.output_directory}...")
        plan = run_code_generation(settings)
    except (EfrevError, ValueError, OSError) as e:
        _fail(e)

    typer.echo(
        f"✓ Complete! {len(plan.model_entities)} entities, "
        f"{len(plan.relationships)} relationships, {len(plan.warnings)} warning(s)"
    )
    for name, message in plan.failures.items():
        typer.echo(f"  Skipped {name}: {message}", err=True)


@app.command()
def init(
    directory: Path = typer.Argument(Path("."), help="Directory to write the configuration files into"),
):
    """
    Write default efrev.json and appsettings.json files.
    """
    try:
        paths = write_default_config(directory)
    except OSError as e:
        _fail(e)
    for path in paths:
        typer.echo(f"Created {path}")


@app.command()
def analyze(
    connection: Optional[str] = typer.Option(None, "--connection", "-c", help="Database connection string"),
    provider: Optional[str] = typer.Option(None, "--provider", "-p", help="Database provider name"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write relationships JSON to this file"),
    config: Optional[Path] = typer.Option(None, "--config", help="Custom configuration file (efrev.json)"),
    settings_file: Path = typer.Option(Path(DEFAULT_SETTINGS_FILE), "--settings", help="Settings file"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
):
    """
    Classify the relationships of a schema and print them as JSON.
    """
    overrides = {"connection_string": connection, "provider": provider}
    try:
        settings = _load(settings_file, config, overrides, verbose)
        tables = create_schema_reader(settings).read_tables()
        analyzer = RelationshipAnalyzer(payload_tolerance=settings.payload_tolerance)
        relationships = analyzer.analyze_all(tables)
        payload = json.dumps([r.model_dump(mode="json") for r in relationships], indent=2)
        if output:
            output = Path(output)
            output.parent.mkdir(parents=True, exist_ok=True)
            output.write_text(payload, encoding="utf-8")
    except (EfrevError, ValueError, OSError) as e:
        _fail(e)

    if output:
        typer.echo(f"✓ {len(relationships)} relationship(s) written to {output}")
    else:
        typer.echo(payload)


@app.command()
def inspect(
    out_snapshot: Path = typer.Argument(..., help="Output path for the schema snapshot JSON"),
    connection: Optional[str] = typer.Option(None, "--connection", "-c", help="Database connection string"),
    provider: Optional[str] = typer.Option(None, "--provider", "-p", help="Database provider name"),
    config: Optional[Path] = typer.Option(None, "--config", help="Custom configuration file (efrev.json)"),
    settings_file: Path = typer.Option(Path(DEFAULT_SETTINGS_FILE), "--settings", help="Settings file"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
):
    """
    Read a database schema and save it as a JSON snapshot.
    """
    overrides = {"connection_string": connection, "provider": provider}
    try:
        settings = _load(settings_file, config, overrides, verbose)
        snapshot = create_schema_reader(settings).read_snapshot()
        save_snapshot(snapshot, out_snapshot)
    except (EfrevError, ValueError, OSError) as e:
        _fail(e)

    typer.echo(f"✓ Snapshot with {len(snapshot.tables)} table(s) written to {out_snapshot}")


def main():
    """Entry point for CLI."""
    app()


if __name__ == "__main__":
    main()
