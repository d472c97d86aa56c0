"""Command group: dependency graph inspection."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import click

from pangea.commands._base import PangeaGroup
from pangea.services.run import RunService

if TYPE_CHECKING:
    from pangea.commands._context import AppContext

_GRAPH_EXAMPLES = """\
  pangea graph order infrastructure.py
  pangea graph order infrastructure.py -t app -t network
  pangea graph deps infrastructure.py
  pangea --json graph order infrastructure.py"""

_file_argument = click.argument(
    "file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)


@click.group(cls=PangeaGroup, examples=_GRAPH_EXAMPLES)
@click.pass_obj
def graph(app: AppContext) -> None:
    """Inspect template dependencies and execution order."""


@graph.command(
    examples="""\
  pangea graph order infrastructure.py
  pangea -q graph order infrastructure.py -t app"""
)
@_file_argument
@click.option("-t", "--template", "templates", multiple=True, help="Restrict to template(s).")
@click.pass_obj
def order(app: AppContext, file: Path, templates: tuple[str, ...]) -> None:
    """Print the execution order for the templates in FILE."""
    result = RunService(app.workspace).order(file, templates=list(templates) or None)
    if result.ok:
        data = {k: v for k, v in result.data.items() if k != "edges"}
        result = result.model_copy(update={"data": data})
    app.emit(result)


@graph.command(
    examples="""\
  pangea graph deps infrastructure.py
  pangea --json graph deps infrastructure.py"""
)
@_file_argument
@click.pass_obj
def deps(app: AppContext, file: Path) -> None:
    """List remote_state dependencies declared in FILE."""
    result = RunService(app.workspace).order(file)
    if result.ok:
        data = {"count": len(result.data["edges"]), "edges": result.data["edges"]}
        result = result.model_copy(update={"op": "deps", "data": data})
    app.emit(result)
