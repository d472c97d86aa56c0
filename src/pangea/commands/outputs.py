"""Command group: the output registry."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from pangea.commands._base import PangeaGroup
from pangea.services.outputs import OutputService
from pangea.services.run import RunService

if TYPE_CHECKING:
    from pangea.commands._context import AppContext

_OUTPUTS_EXAMPLES = """\
  pangea outputs list
  pangea outputs show network
  pangea outputs show network vpc_id
  pangea outputs register network -n dev
  pangea outputs clear --yes"""


@click.group(cls=PangeaGroup, examples=_OUTPUTS_EXAMPLES)
@click.pass_obj
def outputs(app: AppContext) -> None:
    """Inspect, re-register, or clear registered template outputs."""


@outputs.command(name="list", examples="  pangea outputs list\n  pangea --json outputs list")
@click.pass_obj
def list_cmd(app: AppContext) -> None:
    """List templates with registered outputs."""
    app.emit(OutputService(app.workspace).list_entries())


@outputs.command(examples="  pangea outputs show network\n  pangea outputs show network vpc_id")
@click.argument("template")
@click.argument("output", required=False)
@click.pass_obj
def show(app: AppContext, template: str, output: str | None) -> None:
    """Show registered outputs of TEMPLATE (or a single OUTPUT)."""
    app.emit(OutputService(app.workspace).show(template, output))


@outputs.command(examples="  pangea outputs register network -n dev")
@click.argument("template")
@click.option("-n", "--namespace", default=None, help="Namespace (default: default_namespace).")
@click.pass_obj
def register(app: AppContext, template: str, namespace: str | None) -> None:
    """Re-register TEMPLATE's outputs from its last apply."""
    app.emit(RunService(app.workspace).register(template, namespace=namespace))


@outputs.command(examples="  pangea outputs clear --yes")
@click.option("--yes", is_flag=True, help="Confirm deleting every registry entry.")
@click.pass_obj
def clear(app: AppContext, yes: bool) -> None:
    """Delete all registered outputs."""
    if not yes:
        click.confirm("Delete all registered outputs?", abort=True)
    app.emit(OutputService(app.workspace).clear())
