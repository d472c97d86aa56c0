"""Remote-state declarations and references inside one template.

A template declares which outputs it reads from another template, then
dereferences only those outputs::

    with ctx.remote_state("network") as rs:
        rs.outputs("vpc_id", "subnet_ids")
        rs.from_namespace("shared")

    ctx.remote_state_ref("network", "subnet_ids", 0)

Per target template the context moves through three states:

- ``declaring``: inside the ``with`` block, outputs accumulate.
- ``declared``: the block closed; the edge is in the dependency graph and
  the ``terraform_remote_state`` data source is scheduled.
- ``referencing``: ``resolve()`` checks each call against the declared
  outputs before building the interpolation string.

Any misuse raises immediately, while the template is being evaluated and
before the provisioning tool ever runs.
"""

from __future__ import annotations

import logging
from collections.abc import Collection, Iterable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from pangea.domain.errors import RemoteStateError
from pangea.domain.names import validate_template_name
from pangea.domain.references import PathSegment, ReferenceBuilder, state_label

if TYPE_CHECKING:
    from pangea.infrastructure.graph.engine import DependencyGraph
    from pangea.infrastructure.registry import OutputRegistry

logger = logging.getLogger(__name__)


def _output_names(target: str, names: Iterable[str]) -> list[str]:
    result: list[str] = []
    for name in names:
        if not isinstance(name, str) or not name:
            msg = f"Output names for remote_state '{target}' must be non-empty strings"
            raise RemoteStateError(msg, target=target, output=repr(name))
        result.append(name)
    return result


class DeclarationState(StrEnum):
    DECLARING = "declaring"
    DECLARED = "declared"


@dataclass
class RemoteStateBlock:
    """Mutable builder yielded by :meth:`RemoteStateContext.remote_state`."""

    template: str
    namespace: str
    declared_outputs: list[str] = field(default_factory=list)

    def outputs(self, *names: str) -> RemoteStateBlock:
        for name in _output_names(self.template, names):
            if name not in self.declared_outputs:
                self.declared_outputs.append(name)
        return self

    def from_namespace(self, namespace: str) -> RemoteStateBlock:
        if not isinstance(namespace, str) or not namespace:
            msg = f"Namespace for remote_state '{self.template}' must be a non-empty string"
            raise RemoteStateError(msg, template=self.template)
        self.namespace = namespace
        return self


@dataclass
class _Declaration:
    namespace: str
    state: DeclarationState
    outputs: frozenset[str] = frozenset()


class RemoteStateContext:
    """Remote-state surface for one template's evaluation pass.

    Args:
        template: The template being evaluated (the edge source).
        namespace: Default namespace for declarations.
        graph: Run-scoped dependency graph receiving one edge per block.
        references: Builds interpolation strings and backend blocks.
        registry: When given, declarations against templates outside
            *run_templates* are checked against registered outputs.
        run_templates: Templates applied in the same run; their outputs
            do not exist in the registry yet.
    """

    def __init__(
        self,
        *,
        template: str,
        namespace: str,
        graph: DependencyGraph,
        references: ReferenceBuilder,
        registry: OutputRegistry | None = None,
        run_templates: Collection[str] = (),
    ) -> None:
        self.template = validate_template_name(template)
        self.namespace = namespace
        self._graph = graph
        self._references = references
        self._registry = registry
        self._run_templates = frozenset(run_templates)
        self._declarations: dict[str, _Declaration] = {}
        self._data_sources: dict[str, dict[str, Any]] = {}
        graph.add_template(self.template)

    # ------------------------------------------------------------------
    # Declaring
    # ------------------------------------------------------------------

    @contextmanager
    def remote_state(
        self,
        target: str,
        *,
        outputs: Iterable[str] = (),
        namespace: str | None = None,
    ) -> Iterator[RemoteStateBlock]:
        """Open a declaration block for *target*; it is registered on exit."""
        self._check_target(target)
        existing = self._declarations.get(target)
        if existing is not None and existing.state is DeclarationState.DECLARING:
            msg = f"remote_state '{target}' is already being declared in '{self.template}'"
            raise RemoteStateError(msg, template=self.template, target=target)

        block = RemoteStateBlock(template=target, namespace=namespace or self.namespace)
        block.outputs(*outputs)
        self._declarations[target] = _Declaration(
            namespace=block.namespace,
            state=DeclarationState.DECLARING,
            outputs=existing.outputs if existing else frozenset(),
        )
        try:
            yield block
        finally:
            # Back to whatever was declared before the block opened.
            if existing is None:
                self._declarations.pop(target, None)
            else:
                self._declarations[target] = existing
        self.declare(target, block.declared_outputs, namespace=block.namespace)

    def declare(
        self,
        target: str,
        outputs: Iterable[str],
        *,
        namespace: str | None = None,
    ) -> frozenset[str]:
        """Declare that this template reads *outputs* from *target*.

        Records the dependency edge, validates against the registry when
        *target* is not produced by the current run, and schedules the
        ``terraform_remote_state`` data source. Returns the full set of
        outputs declared for *target* so far.
        """
        self._check_target(target)
        names = _output_names(target, outputs)
        resolved_ns = namespace or self.namespace

        previous = self._declarations.get(target)
        if previous is not None and previous.state is DeclarationState.DECLARING:
            msg = f"remote_state '{target}' is still being declared in '{self.template}'"
            raise RemoteStateError(msg, template=self.template, target=target)

        if self._registry is not None and target not in self._run_templates:
            for name in names:
                self._registry.validate_output_exists(target, name)

        merged = (previous.outputs if previous else frozenset()) | frozenset(names)
        self._declarations[target] = _Declaration(
            namespace=resolved_ns,
            state=DeclarationState.DECLARED,
            outputs=merged,
        )
        self._graph.add_dependency(self.template, target, names)

        backend = self._references.backend_for(resolved_ns, target)
        if backend is not None:
            self._data_sources[state_label(target)] = backend.to_dict()
        logger.debug(
            "Template %s declared remote_state %s outputs=%s",
            self.template,
            target,
            sorted(merged),
        )
        return merged

    def _check_target(self, target: str) -> None:
        validate_template_name(target)
        if target == self.template:
            msg = f"Template '{self.template}' cannot declare remote_state on itself"
            raise RemoteStateError(msg, template=self.template, target=target)

    # ------------------------------------------------------------------
    # Referencing
    # ------------------------------------------------------------------

    def resolve(self, target: str, output: str, *path: PathSegment) -> str:
        """Return the interpolation string for a declared output of *target*.

        Raises:
            RemoteStateError: *target* was never declared, is still being
                declared, or *output* is not among its declared outputs.
            InvalidPathSegmentError: A path segment is not int or str.
        """
        declaration = self._declarations.get(target)
        if declaration is None:
            msg = (
                f"Template '{self.template}' references '{target}.{output}' "
                f"without a remote_state declaration for '{target}'"
            )
            raise RemoteStateError(msg, template=self.template, target=target, output=output)
        if declaration.state is DeclarationState.DECLARING:
            msg = (
                f"remote_state '{target}' is still being declared in '{self.template}'; "
                "reference it after the block closes"
            )
            raise RemoteStateError(msg, template=self.template, target=target, output=output)
        if output not in declaration.outputs:
            declared = ", ".join(sorted(declaration.outputs)) or "none"
            msg = (
                f"Output '{output}' of '{target}' is not declared in the remote_state "
                f"block of template '{self.template}' (declared: {declared})"
            )
            raise RemoteStateError(msg, template=self.template, target=target, output=output)

        reference = self._references.build(declaration.namespace, target, output, *path)
        return reference.expression

    remote_state_ref = resolve

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def declared(self) -> dict[str, frozenset[str]]:
        """Closed declarations: target -> declared outputs."""
        return {
            target: decl.outputs
            for target, decl in self._declarations.items()
            if decl.state is DeclarationState.DECLARED
        }

    def data_sources(self) -> dict[str, dict[str, Any]]:
        """``terraform_remote_state`` blocks keyed by ``<template>_state``."""
        return {label: dict(body) for label, body in self._data_sources.items()}
