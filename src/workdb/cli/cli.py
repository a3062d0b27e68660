"""CLI entrypoint: Typer app definition and command registration"""

import typer

from workdb.cli.commands import build_cmd, parse_cmd, stale_cmd


app = typer.Typer(name="workdb", no_args_is_help=True, help="Build a works database from description.md files")

app.command(name="build")(build_cmd)
app.command(name="parse")(parse_cmd)
app.command(name="stale")(stale_cmd)
