"""AppContext: shared Click context for all commands.

Created once by the root CLI group and passed down via
``@click.pass_obj``. The workspace is built lazily so ``--help`` and
``--version`` never touch the project directory.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from pangea.output.formatters import format_result

if TYPE_CHECKING:
    from pangea.config.settings import PangeaSettings
    from pangea.infrastructure.workspace import Workspace
    from pangea.services.result import ServiceResult


class AppContext:
    """Settings plus a lazily created :class:`Workspace`."""

    def __init__(self, settings: PangeaSettings) -> None:
        self.settings = settings
        self._workspace: Workspace | None = None

        from pangea.config.logging import configure_logging

        configure_logging(verbose=settings.verbose, log_json=settings.log_json)

    @property
    def workspace(self) -> Workspace:
        if self._workspace is None:
            from pangea.infrastructure.workspace import Workspace

            self._workspace = Workspace(self.settings)
        return self._workspace

    def emit(self, result: ServiceResult) -> None:
        """Print a ServiceResult; failures go to stderr with exit code 1."""
        output = format_result(
            result,
            json_output=self.settings.json_output,
            quiet=self.settings.quiet,
        )
        if result.ok:
            if output:
                click.echo(output)
            if not self.settings.json_output:
                for warning in result.warnings:
                    click.echo(f"WARNING: {warning}", err=True)
        else:
            click.echo(output, err=True)
            raise SystemExit(1)
