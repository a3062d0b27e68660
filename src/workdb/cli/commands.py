"""CLI command implementations"""

from pathlib import Path
from typing import Annotated, Optional

import typer

from workdb.config import Settings, config_file_found, load_config
from workdb.core.parse import parse_file
from workdb.core.pipeline import BuildFlags, build_some
from workdb.crud.database import STDOUT, build_metadata_path, is_stale, load_build_metadata
from workdb.errors import WorkdbError
from workdb.reporting import Reporter, configure_logging


def _fail(msg: str, cause: Exception = None) -> None:
    """Print a user-friendly error to stderr and exit 1."""
    typer.echo(f"Error: {msg}", err=True)
    if cause:
        typer.echo(f"  {cause}", err=True)
    raise typer.Exit(1)


def _settings(overrides: dict = None, path: Optional[Path] = None) -> Settings:
    """Load config with standard CLI error handling."""
    try:
        return load_config(overrides=overrides, path=path)
    except ValueError as e:
        _fail(str(e))


def build_cmd(
    database: Annotated[Path, typer.Argument(help="Directory containing one folder per work")],
    output: Annotated[str, typer.Argument(help="Output JSON database file, or - for stdout")],
    include: Annotated[str, typer.Option("--include", "-i", help="Glob of work IDs to (re)build")] = "*",
    scattered: Annotated[bool, typer.Option("--scattered", help="Descriptions live in a subfolder of each work")] = False,
    minified: Annotated[bool, typer.Option("--minified", help="Write compact JSON")] = False,
    no_cache: Annotated[bool, typer.Option("--no-cache", help="Rebuild and re-analyze everything")] = False,
    config: Annotated[Optional[Path], typer.Option("--config", help="Configuration file")] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Log debug output")] = False,
    ):
    """Build the works database from DATABASE into OUTPUT."""
    settings = _settings(overrides={"log_level": "DEBUG" if verbose else None}, path=config)
    configure_logging(settings.log_level)
    reporter = Reporter()
    if not config_file_found(config):
        reporter.info("No configuration file found. The default configuration was used.")

    try:
        works = build_some(
            include, database, output, settings,
            BuildFlags(scattered=scattered, minified=minified, no_cache=no_cache),
            reporter,
        )
    except WorkdbError as e:
        _fail(str(e))

    typer.echo(
        f"Built {len(works)} work(s) - {reporter.warnings} warning(s), {reporter.errors} error(s)",
        err=output == STDOUT,
    )


def parse_cmd(
    path: Annotated[Path, typer.Argument(help="Description file to parse")],
    minified: Annotated[bool, typer.Option("--minified", help="Write compact JSON")] = False,
    config: Annotated[Optional[Path], typer.Option("--config", help="Configuration file")] = None,
    ):
    """Print the parsed (not analyzed) description as JSON."""
    settings = _settings(path=config)
    configure_logging(settings.log_level)
    try:
        parsed = parse_file(
            path,
            parser_config=settings.parser_config,
            default_language=settings.default_language,
            id_length=settings.id_length,
        )
    except WorkdbError as e:
        _fail(str(e))
    typer.echo(parsed.model_dump_json(indent=None if minified else 4))


def stale_cmd(
    path: Annotated[Path, typer.Argument(help="File to check")],
    output: Annotated[str, typer.Argument(help="Output database the build metadata belongs to")],
    config: Annotated[Optional[Path], typer.Option("--config", help="Configuration file")] = None,
    ):
    """Tell whether PATH changed since the last build of OUTPUT."""
    settings = _settings(path=config)
    configure_logging(settings.log_level)
    metadata = load_build_metadata(build_metadata_path(output, settings.build_metadata_file))
    typer.echo("stale" if is_stale(path, metadata) else "fresh")
