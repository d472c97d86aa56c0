"""OutputService: inspect and reset the output registry."""

from __future__ import annotations

from pangea.domain.errors import OutputNotFoundError, PangeaError
from pangea.domain.names import validate_template_name
from pangea.domain.types import TypeTag
from pangea.services.base import BaseService
from pangea.services.result import ServiceError, ServiceResult


class OutputService(BaseService):
    """Read-mostly access to registered template outputs."""

    def list_entries(self) -> ServiceResult:
        registry = self._workspace.registry
        items = []
        for name in registry.list_templates():
            entry = registry.get_entry(name)
            if entry is None:
                continue
            items.append(
                {
                    "template": name,
                    "outputs": len(entry.outputs),
                    "updated_at": entry.updated_at,
                }
            )
        return ServiceResult(ok=True, op="list_outputs", data={"count": len(items), "items": items})

    def show(self, template: str, output: str | None = None) -> ServiceResult:
        """Show a template's entry, or one output value when *output* is given."""
        op = "show_outputs"
        try:
            validate_template_name(template)
        except PangeaError as exc:
            return self._failure(op, exc)

        # One read, so a concurrent re-register cannot split the view.
        entry = self._workspace.registry.get_entry(template)
        if entry is None:
            return ServiceResult(
                ok=False,
                op=op,
                error=ServiceError(
                    code="NOT_FOUND",
                    message=f"No outputs registered for template '{template}'",
                ),
            )
        if output is None:
            return ServiceResult(ok=True, op=op, data=entry.model_dump(mode="json"))
        if output not in entry.outputs:
            return self._failure(op, OutputNotFoundError(template, output, entry.outputs))
        return ServiceResult(
            ok=True,
            op=op,
            data={
                "template": template,
                "output": output,
                "value": entry.outputs[output],
                "type": entry.types.get(output, TypeTag.UNKNOWN).value,
            },
        )

    def clear(self) -> ServiceResult:
        removed = self._workspace.registry.clear_registry()
        return ServiceResult(ok=True, op="clear_outputs", data={"removed": removed})
