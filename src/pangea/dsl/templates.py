"""``@template`` decorator and the per-template evaluation context.

A template file is a plain Python module::

    from pangea import template

    @template("network")
    def network(ctx):
        ctx.resource("aws_vpc", "main", cidr_block="10.0.0.0/16")
        ctx.output("vpc_id", ctx.ref("aws_vpc", "main", "id"))

    @template("app")
    def app(ctx):
        with ctx.remote_state("network") as rs:
            rs.outputs("vpc_id")
        ctx.resource("aws_subnet", "a", vpc_id=ctx.remote_state_ref("network", "vpc_id"))

Each decorated function is evaluated once per run against a fresh
:class:`TemplateContext`. The context accumulates the provisioning-tool
JSON document; resource-specific configuration is passed through as-is.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from contextlib import AbstractContextManager
from dataclasses import dataclass
from typing import Any

from pangea.domain.errors import PangeaError
from pangea.domain.names import validate_template_name
from pangea.domain.references import REMOTE_STATE_DATA_SOURCE, PathSegment
from pangea.dsl.remote_state import RemoteStateBlock, RemoteStateContext

TEMPLATE_ATTR = "__pangea_template__"

type TemplateBody = Callable[[TemplateContext], None]


@dataclass(frozen=True)
class TemplateDefinition:
    """A named template body discovered in a template file."""

    name: str
    body: TemplateBody
    description: str = ""


def template(name: str) -> Callable[[TemplateBody], TemplateBody]:
    """Mark a function as the body of template *name*."""
    validate_template_name(name)

    def decorator(func: TemplateBody) -> TemplateBody:
        doc = (func.__doc__ or "").strip().splitlines()
        setattr(
            func,
            TEMPLATE_ATTR,
            TemplateDefinition(name=name, body=func, description=doc[0] if doc else ""),
        )
        return func

    return decorator


class TemplateContext:
    """Collects one template's configuration while its body runs."""

    def __init__(self, remote: RemoteStateContext) -> None:
        self.remote = remote
        self._blocks: dict[str, Any] = {}

    @property
    def name(self) -> str:
        return self.remote.template

    @property
    def namespace(self) -> str:
        return self.remote.namespace

    # ------------------------------------------------------------------
    # Remote state
    # ------------------------------------------------------------------

    def remote_state(
        self,
        target: str,
        *,
        outputs: Iterable[str] = (),
        namespace: str | None = None,
    ) -> AbstractContextManager[RemoteStateBlock]:
        return self.remote.remote_state(target, outputs=outputs, namespace=namespace)

    def remote_state_ref(self, target: str, output: str, *path: PathSegment) -> str:
        return self.remote.resolve(target, output, *path)

    # ------------------------------------------------------------------
    # Configuration blocks
    # ------------------------------------------------------------------

    def _put(self, kind: str, *keys: str, body: dict[str, Any]) -> None:
        node = self._blocks.setdefault(kind, {})
        for key in keys[:-1]:
            node = node.setdefault(key, {})
        if keys[-1] in node:
            label = ".".join((kind, *keys))
            msg = f"Duplicate block {label} in template '{self.name}'"
            raise PangeaError(msg, template=self.name, block=label)
        node[keys[-1]] = body

    def resource(self, resource_type: str, name: str, **attributes: Any) -> str:
        """Add a resource block and return its address."""
        self._put("resource", resource_type, name, body=attributes)
        return f"{resource_type}.{name}"

    def data(self, data_type: str, name: str, **attributes: Any) -> str:
        """Add a data source block and return its address."""
        if data_type == REMOTE_STATE_DATA_SOURCE:
            msg = f"Use remote_state() instead of declaring {REMOTE_STATE_DATA_SOURCE} directly"
            raise PangeaError(msg, template=self.name)
        self._put("data", data_type, name, body=attributes)
        return f"data.{data_type}.{name}"

    def provider(self, name: str, **attributes: Any) -> None:
        self._put("provider", name, body=attributes)

    def variable(self, name: str, **attributes: Any) -> str:
        self._put("variable", name, body=attributes)
        return "${var." + name + "}"

    def output(self, name: str, value: Any, **attributes: Any) -> None:
        self._put("output", name, body={"value": value, **attributes})

    @staticmethod
    def ref(*parts: str) -> str:
        """Interpolation for a local address, e.g. ``ref("aws_vpc", "main", "id")``."""
        return "${" + ".".join(parts) + "}"

    @property
    def output_names(self) -> list[str]:
        return list(self._blocks.get("output", {}))

    # ------------------------------------------------------------------
    # Synthesis
    # ------------------------------------------------------------------

    def synthesize(self, terraform_block: dict[str, Any] | None = None) -> dict[str, Any]:
        """Return the JSON document for this template.

        Remote-state data sources scheduled by closed ``remote_state``
        blocks are merged into ``data``; *terraform_block* (the template's
        own backend) goes under ``terraform``.
        """
        document: dict[str, Any] = {}
        if terraform_block:
            document["terraform"] = terraform_block
        for kind, body in self._blocks.items():
            document[kind] = body
        remote = self.remote.data_sources()
        if remote:
            data = dict(document.get("data", {}))
            data[REMOTE_STATE_DATA_SOURCE] = remote
            document["data"] = data
        return document
