"""Commands: plan and apply templates in dependency order."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import click

from pangea.commands._base import PangeaCommand
from pangea.services.run import RunService

if TYPE_CHECKING:
    from pangea.commands._context import AppContext


@click.command(
    cls=PangeaCommand,
    examples="""\
  pangea plan infrastructure.py -n dev
  pangea plan infrastructure.py -n prod -t app""",
)
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("-n", "--namespace", default=None, help="Namespace (default: default_namespace).")
@click.option("-t", "--template", "templates", multiple=True, help="Restrict to template(s).")
@click.pass_obj
def plan(app: AppContext, file: Path, namespace: str | None, templates: tuple[str, ...]) -> None:
    """Plan templates in FILE in dependency order."""
    app.emit(
        RunService(app.workspace).plan(
            file,
            namespace=namespace,
            templates=list(templates) or None,
        )
    )


@click.command(
    cls=PangeaCommand,
    examples="""\
  pangea apply infrastructure.py -n dev
  pangea apply infrastructure.py -n prod -t network -t app
  pangea --json apply infrastructure.py -n dev""",
)
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("-n", "--namespace", default=None, help="Namespace (default: default_namespace).")
@click.option("-t", "--template", "templates", multiple=True, help="Restrict to template(s).")
@click.option(
    "--auto-approve/--no-auto-approve",
    default=None,
    help="Pass -auto-approve to the provisioning tool (default from config).",
)
@click.pass_obj
def apply(
    app: AppContext,
    file: Path,
    namespace: str | None,
    templates: tuple[str, ...],
    auto_approve: bool | None,
) -> None:
    """Apply templates in FILE in dependency order and register their outputs."""
    app.emit(
        RunService(app.workspace).apply(
            file,
            namespace=namespace,
            templates=list(templates) or None,
            auto_approve=auto_approve,
        )
    )
