"""Subcommand modules for pangea.

register_commands() imports lazily to keep ``pangea --help`` fast.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import click


def register_commands(cli: click.Group) -> None:
    """Register command groups and standalone commands on the root group."""
    from pangea.commands.graph import graph
    from pangea.commands.outputs import outputs

    cli.add_command(graph)
    cli.add_command(outputs)

    from pangea.commands.run import apply, plan

    cli.add_command(plan)
    cli.add_command(apply)
