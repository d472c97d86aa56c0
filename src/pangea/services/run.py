"""RunService: order, plan, and apply templates across a namespace.

Runs are strictly sequential. Every template is synthesized and the
execution order computed before the provisioning tool runs even once,
so declaration mistakes and cycles surface before any cloud mutation.

During ``apply`` each template goes through init, apply, then
``output -json``, and its outputs are written to the registry before the
next template starts. The first failure stops the run; templates applied
before it stay applied and registered.
"""

from __future__ import annotations

import time
from collections.abc import Sequence
from pathlib import Path
from typing import Any

import structlog

from pangea.compilation.compiler import Compilation, TemplateCompiler
from pangea.domain.errors import ExecutionError, PangeaError
from pangea.domain.names import validate_template_name
from pangea.domain.references import ReferenceBuilder
from pangea.services.base import BaseService
from pangea.services.result import ServiceResult

log = structlog.get_logger(__name__)

_ORDER_ONLY_NAMESPACE = "default"


class RunService(BaseService):
    """Multi-template orchestration against the provisioning tool."""

    # ------------------------------------------------------------------
    # Compilation helpers
    # ------------------------------------------------------------------

    def _compile(
        self,
        path: Path,
        namespace: str,
        templates: Sequence[str] | None,
    ) -> Compilation:
        compiler = TemplateCompiler(
            namespace=namespace,
            references=self._workspace.references,
            backends=self._workspace.backends,
            registry=self._workspace.registry,
        )
        return compiler.compile_file(path, templates)

    def _resolve_namespace(self, namespace: str | None) -> str:
        name, _ = self._workspace.settings.namespace(namespace)
        return name

    # ------------------------------------------------------------------
    # order
    # ------------------------------------------------------------------

    def order(
        self,
        path: Path,
        *,
        templates: Sequence[str] | None = None,
    ) -> ServiceResult:
        """Compute the execution order without touching backends or the registry."""
        op = "order"
        try:
            compiler = TemplateCompiler(
                namespace=self._workspace.settings.default_namespace or _ORDER_ONLY_NAMESPACE,
                references=ReferenceBuilder(),
            )
            compilation = compiler.compile_file(path, templates)
            order = compilation.execution_order()
        except PangeaError as exc:
            return self._failure(op, exc)

        return ServiceResult(
            ok=True,
            op=op,
            data={
                "count": len(order),
                "order": order,
                "edges": [e.to_dict() for e in compilation.graph.edges()],
            },
        )

    # ------------------------------------------------------------------
    # plan
    # ------------------------------------------------------------------

    def plan(
        self,
        path: Path,
        *,
        namespace: str | None = None,
        templates: Sequence[str] | None = None,
    ) -> ServiceResult:
        """Synthesize and ``plan`` each template in execution order."""
        op = "plan"
        try:
            ns = self._resolve_namespace(namespace)
            compilation = self._compile(path, ns, templates)
            order = compilation.execution_order()
        except PangeaError as exc:
            return self._failure(op, exc)

        planned: list[dict[str, Any]] = []
        for name in order:
            executor = self._workspace.executor(ns, name)
            try:
                executor.write_config(compilation.templates[name].config)
                executor.init()
                result = executor.plan()
            except ExecutionError as exc:
                log.error("template.plan_failed", template=name, namespace=ns, error=exc.message)
                return self._failure(
                    op,
                    exc,
                    data={"namespace": ns, "order": order, "planned": planned, "failed": name},
                )
            planned.append({"template": name, "changes": result.summary["changes"]})
            log.info("template.planned", template=name, namespace=ns, **result.summary)

        return ServiceResult(
            ok=True,
            op=op,
            data={"namespace": ns, "order": order, "planned": planned},
        )

    # ------------------------------------------------------------------
    # apply
    # ------------------------------------------------------------------

    def apply(
        self,
        path: Path,
        *,
        namespace: str | None = None,
        templates: Sequence[str] | None = None,
        auto_approve: bool | None = None,
    ) -> ServiceResult:
        """Apply templates in execution order, registering outputs after each."""
        op = "apply"
        if auto_approve is None:
            auto_approve = self._workspace.settings.terraform.auto_approve
        try:
            ns = self._resolve_namespace(namespace)
            compilation = self._compile(path, ns, templates)
            order = compilation.execution_order()
        except PangeaError as exc:
            return self._failure(op, exc)

        log.info("run.start", namespace=ns, order=order)
        applied: list[dict[str, Any]] = []
        warnings: list[str] = []
        for name in order:
            started = time.perf_counter()
            executor = self._workspace.executor(ns, name)
            try:
                executor.write_config(compilation.templates[name].config)
                executor.init()
                result = executor.apply(auto_approve=auto_approve)
                outputs = executor.output()
                registered = self._register(name, outputs, warnings)
            except PangeaError as exc:
                log.error("template.apply_failed", template=name, namespace=ns, error=exc.message)
                return self._failure(
                    op,
                    exc,
                    data={"namespace": ns, "order": order, "applied": applied, "failed": name},
                    warnings=warnings,
                )
            applied.append(
                {
                    "template": name,
                    "outputs": registered,
                    "duration_ms": round((time.perf_counter() - started) * 1000, 2),
                    **result.summary,
                }
            )
            log.info("template.applied", template=name, namespace=ns, outputs=registered)

        return ServiceResult(
            ok=True,
            op=op,
            data={"namespace": ns, "order": order, "applied": applied},
            warnings=warnings,
        )

    # ------------------------------------------------------------------
    # register (recovery)
    # ------------------------------------------------------------------

    def register(self, template: str, *, namespace: str | None = None) -> ServiceResult:
        """Re-read *template*'s outputs from its working directory and register them.

        Recovers a run interrupted between apply and registration. Safe to
        repeat: the registry entry is replaced wholesale each time.
        """
        op = "register"
        warnings: list[str] = []
        try:
            validate_template_name(template)
            ns = self._resolve_namespace(namespace)
            outputs = self._workspace.executor(ns, template).output()
            registered = self._register(template, outputs, warnings)
        except PangeaError as exc:
            return self._failure(op, exc, warnings=warnings)
        return ServiceResult(
            ok=True,
            op=op,
            data={"template": template, "namespace": ns, "outputs": registered},
            warnings=warnings,
        )

    def _register(self, template: str, outputs: dict[str, Any], warnings: list[str]) -> list[str]:
        registry = self._workspace.registry
        if not outputs:
            if registry.remove_entry(template):
                warnings.append(f"Template '{template}' has no outputs; removed stale registry entry")
            return []
        entry = registry.register_outputs(template, outputs)
        return sorted(entry.outputs)
