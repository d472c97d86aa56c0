"""Reference builder: remote-state interpolation strings.

Turns ``(namespace, template, output, *path)`` into the expression the
provisioning tool resolves against a ``terraform_remote_state`` data
source, plus the backend declaration that data source needs.

Building a reference is pure: it never consults the output registry or
the filesystem. Checking that the output exists is the caller's job.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Protocol

from pangea.domain.errors import InvalidPathSegmentError, InvalidReferenceError

type PathSegment = int | str

REMOTE_STATE_DATA_SOURCE = "terraform_remote_state"

_MEMBER_NAME = re.compile(r"[A-Za-z_][A-Za-z0-9_-]*")


class BackendSource(Protocol):
    """Supplies the state backend for a namespace/template pair."""

    def backend_type(self, namespace: str, template: str) -> str: ...

    def backend_config(self, namespace: str, template: str) -> dict[str, Any]: ...


@dataclass(frozen=True)
class BackendDeclaration:
    """Backend type plus config, as the remote-state data source expects."""

    type: str
    config: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"backend": self.type, "config": dict(self.config)}


def state_label(template: str) -> str:
    """Data-source label for a template's remote state."""
    return f"{template}_state"


def format_path(path: tuple[PathSegment, ...]) -> str:
    """Render path segments as ``[0].member`` accessors."""
    parts: list[str] = []
    for segment in path:
        # bool is an int subclass but never a valid index
        if isinstance(segment, bool):
            msg = f"Invalid path segment {segment!r}: booleans are not indices"
            raise InvalidPathSegmentError(msg, segment=repr(segment))
        if isinstance(segment, int):
            if segment < 0:
                msg = f"Invalid path segment {segment!r}: index must be non-negative"
                raise InvalidPathSegmentError(msg, segment=segment)
            parts.append(f"[{segment}]")
        elif isinstance(segment, str):
            if not _MEMBER_NAME.fullmatch(segment):
                msg = (
                    f"Invalid path segment {segment!r}: member name must be a non-empty "
                    "identifier (letters, digits, underscores, hyphens)"
                )
                raise InvalidPathSegmentError(msg, segment=segment)
            parts.append(f".{segment}")
        else:
            msg = (
                f"Invalid path segment {segment!r} of type {type(segment).__name__}: "
                "expected int or str"
            )
            raise InvalidPathSegmentError(msg, segment=repr(segment))
    return "".join(parts)


@dataclass(frozen=True)
class Reference:
    """An immutable pointer at another template's output."""

    namespace: str
    template: str
    output: str
    path: tuple[PathSegment, ...] = ()
    backend: BackendDeclaration | None = None

    def __post_init__(self) -> None:
        for name in ("namespace", "template", "output"):
            value = getattr(self, name)
            if not isinstance(value, str) or not value:
                msg = f"Reference {name} must be a non-empty string, got {value!r}"
                raise InvalidReferenceError(msg, field=name)
        # Validates segment types eagerly.
        format_path(self.path)

    @property
    def data_source_name(self) -> str:
        return state_label(self.template)

    @property
    def expression(self) -> str:
        """The ``${data.terraform_remote_state...}`` interpolation string."""
        base = (
            f"data.{REMOTE_STATE_DATA_SOURCE}.{self.data_source_name}"
            f".outputs.{self.output}"
        )
        return "${" + base + format_path(self.path) + "}"

    def data_source(self) -> dict[str, Any]:
        """The data-source block body needed to resolve this reference."""
        if self.backend is None:
            return {}
        return self.backend.to_dict()

    def __str__(self) -> str:
        return self.expression


class ReferenceBuilder:
    """Builds :class:`Reference` objects using namespace backend config.

    Without a backend source (ordering-only compiles) references carry no
    backend declaration.
    """

    def __init__(self, backends: BackendSource | None = None) -> None:
        self._backends = backends

    def backend_for(self, namespace: str, template: str) -> BackendDeclaration | None:
        """Backend of *template* in *namespace*, or None without a backend source."""
        if self._backends is None:
            return None
        return BackendDeclaration(
            type=self._backends.backend_type(namespace, template),
            config=self._backends.backend_config(namespace, template),
        )

    def build(
        self,
        namespace: str,
        template: str,
        output: str,
        *path: PathSegment,
    ) -> Reference:
        """Build a reference to *output* of *template* in *namespace*.

        Raises:
            InvalidReferenceError: An identifier is empty or not a string.
            InvalidPathSegmentError: A path segment is not int or str.
        """
        # Validate identifiers before asking for backend config.
        Reference(namespace=namespace, template=template, output=output, path=tuple(path))
        return Reference(
            namespace=namespace,
            template=template,
            output=output,
            path=tuple(path),
            backend=self.backend_for(namespace, template),
        )
