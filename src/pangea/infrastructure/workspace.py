"""Workspace: the single dependency injected into every service.

Owns the output registry, namespace backend resolution, the reference
builder, and the per-template working directories the provisioning tool
runs in (``<workspace.dir>/<namespace>/<template>/``).
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import TYPE_CHECKING

from pangea.domain.references import ReferenceBuilder
from pangea.infrastructure.backends import NamespaceBackends
from pangea.infrastructure.executor import TerraformExecutor
from pangea.infrastructure.registry import OutputRegistry

if TYPE_CHECKING:
    from pangea.config.settings import PangeaSettings

type ExecutorFactory = Callable[[Path], TerraformExecutor]


class Workspace:
    """Project-level handle on registry, backends, and executors."""

    def __init__(
        self,
        settings: PangeaSettings,
        *,
        executor_factory: ExecutorFactory | None = None,
    ) -> None:
        self.settings = settings
        self.registry = OutputRegistry(settings.registry_dir)
        self.backends = NamespaceBackends(settings)
        self.references = ReferenceBuilder(self.backends)
        self._executor_factory = executor_factory or self._default_executor

    @property
    def root(self) -> Path:
        return self.settings.project_root

    def template_dir(self, namespace: str, template: str) -> Path:
        return self.settings.workspace_dir / namespace / template

    def executor(self, namespace: str, template: str) -> TerraformExecutor:
        """Executor bound to *template*'s working directory in *namespace*."""
        return self._executor_factory(self.template_dir(namespace, template))

    def _default_executor(self, working_dir: Path) -> TerraformExecutor:
        tf = self.settings.terraform
        return TerraformExecutor(working_dir, binary=tf.binary, timeout=tf.timeout)
