"""OutputRegistry: per-template output values persisted as JSON files.

Layout: ``<registry_dir>/<template>.json`` holding
``{template, outputs, types, updated_at}``.

INVARIANT: An entry exists only after its template was applied at least
once. Re-registration replaces the entry wholesale (no merge), so an
output removed from a template disappears from the registry too.

Writes go to a temp file in the same directory and are renamed into
place, so readers only ever see a complete old or a complete new file.
Reads treat a missing, vanishing, or corrupt file as "no entry" and log
the corruption rather than raising.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from collections.abc import Mapping
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from pangea.domain.errors import (
    InvalidOutputsError,
    OutputNotFoundError,
    RegistryWriteError,
)
from pangea.domain.names import is_valid_template_name, validate_template_name
from pangea.domain.types import TypeTag, infer_type, normalize_value

logger = logging.getLogger(__name__)

_TMP_PREFIX = ".tmp-"


class RegistryEntry(BaseModel):
    """On-disk schema of one registry file."""

    model_config = {"frozen": True}

    template: str
    outputs: dict[str, Any] = Field(default_factory=dict)
    types: dict[str, TypeTag] = Field(default_factory=dict)
    updated_at: str


class OutputRegistry:
    """File-backed store of applied templates' outputs."""

    def __init__(self, root: Path) -> None:
        self._root = root

    @property
    def root(self) -> Path:
        return self._root

    def path_for(self, template: str) -> Path:
        return self._root / f"{template}.json"

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def register_outputs(self, template: str, outputs: Mapping[Any, Any]) -> RegistryEntry:
        """Persist *outputs* as the complete output set of *template*.

        Raises:
            InvalidTemplateNameError: *template* is empty or malformed.
            InvalidOutputsError: *outputs* is not a non-empty mapping.
            RegistryWriteError: The entry could not be written atomically.
        """
        validate_template_name(template)
        if not isinstance(outputs, Mapping):
            msg = f"Outputs for '{template}' must be a mapping, got {type(outputs).__name__}"
            raise InvalidOutputsError(msg, template=template)
        if not outputs:
            msg = f"Outputs for '{template}' must not be empty"
            raise InvalidOutputsError(msg, template=template)

        normalized = {str(key): normalize_value(value) for key, value in outputs.items()}
        entry = RegistryEntry(
            template=template,
            outputs=normalized,
            types={key: infer_type(value) for key, value in normalized.items()},
            updated_at=datetime.now(UTC).isoformat(),
        )
        self._write_atomic(self.path_for(template), entry.model_dump(mode="json"))
        logger.debug("Registered %d outputs for %s", len(normalized), template)
        return entry

    def _write_atomic(self, path: Path, payload: dict[str, Any]) -> None:
        try:
            self._root.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self._root, prefix=_TMP_PREFIX, suffix=".json"
            )
        except OSError as exc:
            msg = f"Cannot create registry file in {self._root}: {exc}"
            raise RegistryWriteError(msg, path=str(path)) from exc

        tmp_path = Path(tmp_name)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(payload, fh, indent=2)
                fh.write("\n")
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp_path, path)
        except (OSError, TypeError, ValueError) as exc:
            tmp_path.unlink(missing_ok=True)
            msg = f"Failed to write registry entry {path}: {exc}"
            raise RegistryWriteError(msg, path=str(path)) from exc

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_entry(self, template: str) -> RegistryEntry | None:
        """Load the entry for *template*, or None if absent or unreadable."""
        if not is_valid_template_name(template):
            return None
        path = self.path_for(template)
        try:
            raw = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as exc:
            logger.warning("Registry entry %s unreadable, treating as absent: %s", path, exc)
            return None

        try:
            entry = RegistryEntry.model_validate(json.loads(raw))
        except (json.JSONDecodeError, ValidationError) as exc:
            logger.warning("Registry entry %s is corrupt, treating as absent: %s", path, exc)
            return None
        if entry.template != template:
            logger.warning(
                "Registry entry %s names template %r, treating as absent",
                path,
                entry.template,
            )
            return None
        return entry

    def available_outputs(self, template: str) -> dict[str, Any]:
        """Return the persisted entry as a dict, or ``{}`` if there is none."""
        entry = self.get_entry(template)
        if entry is None:
            return {}
        return entry.model_dump(mode="json")

    def validate_output_exists(self, template: str, output: str) -> None:
        """Raise :class:`OutputNotFoundError` unless *output* is registered.

        The error lists the outputs currently available for *template*.
        """
        validate_template_name(template)
        entry = self.get_entry(template)
        available = list(entry.outputs) if entry else []
        if output not in available:
            raise OutputNotFoundError(template, output, available)

    def list_templates(self) -> list[str]:
        """All templates with a registry file, sorted by name."""
        if not self._root.is_dir():
            return []
        return sorted(
            p.stem
            for p in self._root.glob("*.json")
            if not p.name.startswith(_TMP_PREFIX) and is_valid_template_name(p.stem)
        )

    def remove_entry(self, template: str) -> bool:
        """Delete the entry for *template*. Returns whether one existed."""
        validate_template_name(template)
        path = self.path_for(template)
        existed = path.exists()
        path.unlink(missing_ok=True)
        return existed

    def clear_registry(self) -> int:
        """Delete every registry file. Returns the number of entries removed."""
        if not self._root.is_dir():
            return 0
        removed = 0
        for path in self._root.glob("*.json"):
            is_entry = not path.name.startswith(_TMP_PREFIX)
            path.unlink(missing_ok=True)
            if is_entry:
                removed += 1
        logger.debug("Cleared %d registry entries from %s", removed, self._root)
        return removed
