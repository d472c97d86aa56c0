"""Exception taxonomy for pangea.

Every error raised by the domain, DSL, registry, graph, or executor
derives from :class:`PangeaError` and carries a stable ``code`` that
services copy into :class:`~pangea.services.result.ServiceError`.

All of these are raised synchronously during synthesis or run setup.
Only :class:`ExecutionError` can surface while a template is applied.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Any


class PangeaError(Exception):
    """Base class for all pangea errors."""

    code = "PANGEA_ERROR"

    def __init__(self, message: str, **detail: Any) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail


# --- Declaration errors ---


class InvalidTemplateNameError(PangeaError):
    code = "INVALID_TEMPLATE_NAME"


class InvalidOutputsError(PangeaError):
    code = "INVALID_OUTPUTS"


class InvalidReferenceError(PangeaError):
    code = "INVALID_REFERENCE"


class InvalidPathSegmentError(InvalidReferenceError):
    code = "INVALID_PATH_SEGMENT"


class RemoteStateError(PangeaError):
    """A ``remote_state`` declaration or reference was used incorrectly."""

    code = "REMOTE_STATE_ERROR"


class TemplateLoadError(PangeaError):
    code = "TEMPLATE_LOAD_ERROR"


# --- Registry errors ---


class OutputNotFoundError(PangeaError):
    """An output was requested that the registry does not hold."""

    code = "OUTPUT_NOT_FOUND"

    def __init__(self, template: str, output: str, available: Iterable[str]) -> None:
        self.template = template
        self.output = output
        self.available = sorted(available)
        if self.available:
            listing = ", ".join(self.available)
            message = (
                f"Output '{output}' not found for template '{template}'. "
                f"Available outputs: {listing}"
            )
        else:
            message = (
                f"Output '{output}' not found for template '{template}'. "
                "No outputs are registered for this template; apply it first."
            )
        super().__init__(message, template=template, output=output, available=self.available)


class RegistryWriteError(PangeaError):
    code = "REGISTRY_WRITE_FAILED"


# --- Graph errors ---


class CyclicDependencyError(PangeaError):
    """The dependency graph over the requested templates contains a cycle.

    Attributes:
        cycle: One concrete cycle, first template repeated at the end
            (``["a", "b", "a"]``).
        templates: Every template taking part in any cycle, sorted.
    """

    code = "CYCLIC_DEPENDENCY"

    def __init__(self, cycle: Sequence[str], templates: Iterable[str]) -> None:
        self.cycle = list(cycle)
        self.templates = sorted(templates)
        path = " -> ".join(self.cycle)
        message = (
            f"Cyclic dependency between templates: {', '.join(self.templates)} "
            f"(cycle: {path})"
        )
        super().__init__(message, cycle=self.cycle, templates=self.templates)


# --- Configuration errors ---


class NamespaceNotFoundError(PangeaError):
    code = "NAMESPACE_NOT_FOUND"


class BackendConfigError(PangeaError):
    code = "INVALID_BACKEND_CONFIG"


# --- External tool errors ---


class ExecutionError(PangeaError):
    """The provisioning tool exited unsuccessfully.

    stdout and stderr are kept verbatim so callers can show them.
    """

    code = "EXECUTION_FAILED"

    def __init__(
        self,
        message: str,
        *,
        command: Sequence[str],
        exit_code: int | None,
        stdout: str = "",
        stderr: str = "",
    ) -> None:
        self.command = list(command)
        self.exit_code = exit_code
        self.stdout = stdout
        self.stderr = stderr
        super().__init__(
            message,
            command=self.command,
            exit_code=exit_code,
            stdout=stdout,
            stderr=stderr,
        )


class ExecutionTimeoutError(ExecutionError):
    code = "EXECUTION_TIMEOUT"
