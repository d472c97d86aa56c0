"""TemplateCompiler: evaluate templates into provisioning-tool JSON.

One compile is one run: a single :class:`DependencyGraph` is shared by
every template evaluated, so edges from all requested templates meet in
one place for ordering and cycle detection.

Beyond the per-reference checks done while each template body runs, the
compiler cross-checks declarations between templates of the same run:
an output declared in ``remote_state`` must be an ``output`` of the
target template's body.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

from pangea.compilation.loader import load_templates
from pangea.domain.errors import OutputNotFoundError, PangeaError, TemplateLoadError
from pangea.dsl.remote_state import RemoteStateContext
from pangea.dsl.templates import TemplateContext
from pangea.infrastructure.graph.engine import DependencyGraph

if TYPE_CHECKING:
    from pangea.domain.references import ReferenceBuilder
    from pangea.infrastructure.backends import NamespaceBackends
    from pangea.infrastructure.registry import OutputRegistry

logger = logging.getLogger(__name__)


@dataclass
class CompiledTemplate:
    """Synthesis result for one template."""

    name: str
    config: dict[str, Any]
    outputs: list[str] = field(default_factory=list)
    remote_states: dict[str, list[str]] = field(default_factory=dict)


@dataclass
class Compilation:
    """All templates compiled for one run plus their dependency graph."""

    graph: DependencyGraph
    templates: dict[str, CompiledTemplate]

    def execution_order(self) -> list[str]:
        return self.graph.get_execution_order(list(self.templates))


class TemplateCompiler:
    """Compiles the templates of one file for one namespace."""

    def __init__(
        self,
        *,
        namespace: str,
        references: ReferenceBuilder,
        backends: NamespaceBackends | None = None,
        registry: OutputRegistry | None = None,
    ) -> None:
        self.namespace = namespace
        self._references = references
        self._backends = backends
        self._registry = registry

    def compile_file(self, path: Path, templates: Sequence[str] | None = None) -> Compilation:
        """Compile *templates* (default: all) from *path*.

        Raises:
            TemplateLoadError: A requested template is not in the file.
            PangeaError: Any declaration, reference, or graph error.
        """
        definitions = load_templates(path)
        if templates:
            missing = [t for t in templates if t not in definitions]
            if missing:
                msg = f"Template(s) not found in {path}: {', '.join(missing)}"
                raise TemplateLoadError(msg, path=str(path), templates=missing)
            selected = [definitions[t] for t in definitions if t in templates]
        else:
            selected = list(definitions.values())

        run = [d.name for d in selected]
        graph = DependencyGraph()
        for name in run:
            graph.add_template(name)

        compiled: dict[str, CompiledTemplate] = {}
        for definition in selected:
            remote = RemoteStateContext(
                template=definition.name,
                namespace=self.namespace,
                graph=graph,
                references=self._references,
                registry=self._registry,
                run_templates=run,
            )
            ctx = TemplateContext(remote)
            try:
                definition.body(ctx)
            except PangeaError:
                raise
            except Exception as exc:
                msg = f"Template '{definition.name}' failed: {type(exc).__name__}: {exc}"
                raise PangeaError(msg, template=definition.name) from exc

            terraform_block = None
            if self._backends is not None:
                terraform_block = self._backends.terraform_block(self.namespace, definition.name)
            compiled[definition.name] = CompiledTemplate(
                name=definition.name,
                config=ctx.synthesize(terraform_block),
                outputs=ctx.output_names,
                remote_states={t: sorted(o) for t, o in remote.declared.items()},
            )
            logger.debug("Compiled template %s", definition.name)

        self._check_declared_outputs(compiled)
        return Compilation(graph=graph, templates=compiled)

    @staticmethod
    def _check_declared_outputs(compiled: dict[str, CompiledTemplate]) -> None:
        for source in compiled.values():
            for target, outputs in source.remote_states.items():
                produced = compiled.get(target)
                if produced is None:
                    continue
                for output in outputs:
                    if output not in produced.outputs:
                        raise OutputNotFoundError(target, output, produced.outputs)
