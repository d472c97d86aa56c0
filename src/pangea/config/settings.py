"""Unified settings: CLI flags, env vars, and TOML config in one object.

Priority chain (highest to lowest):
  1. Init kwargs: CLI flags passed by Click
  2. Env vars: ``PANGEA_*`` prefix
  3. TOML file: ``pangea.toml`` discovered via walk-up
  4. Code defaults: baked into the section models
"""

from __future__ import annotations

import threading
import tomllib
from pathlib import Path
from typing import Any

from pydantic import Field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource

from pangea.config.discovery import find_config
from pangea.config.models import (
    NamespaceConfig,
    RegistryConfig,
    TerraformConfig,
    WorkspaceConfig,
)
from pangea.domain.errors import NamespaceNotFoundError


class TomlSettingsSource(PydanticBaseSettingsSource):
    """Read settings from a ``pangea.toml`` file discovered via walk-up."""

    def __init__(self, settings_cls: type[BaseSettings], toml_path: Path | None) -> None:
        super().__init__(settings_cls)
        self._data: dict[str, Any] = {}
        if toml_path and toml_path.is_file():
            raw = toml_path.read_text(encoding="utf-8")
            try:
                self._data = tomllib.loads(raw)
            except tomllib.TOMLDecodeError as exc:
                import click

                msg = f"Invalid TOML in {toml_path}: {exc}"
                raise click.ClickException(msg) from exc

    def get_field_value(self, field: Any, field_name: str) -> tuple[Any, str, bool]:
        val = self._data.get(field_name)
        return val, field_name, field_name in self._data

    def __call__(self) -> dict[str, Any]:
        return self._data


# Thread-local storage for TOML path during construction.
_tls = threading.local()


class PangeaSettings(BaseSettings):
    """Settings for a pangea project.

    Attributes:
        project_root: Directory holding ``pangea.toml`` (or CWD if none
            was found). Relative paths below resolve against it.
        config_path: The TOML file that was loaded, if any.
    """

    model_config = {
        "frozen": True,
        "env_prefix": "PANGEA_",
        "env_nested_delimiter": "__",
    }

    project_root: Path = Field(default_factory=Path.cwd)
    config_path: Path | None = None

    # --- CLI flags ---
    json_output: bool = False
    quiet: bool = False
    verbose: bool = False
    log_json: bool = False

    # --- TOML ---
    default_namespace: str | None = None
    terraform: TerraformConfig = Field(default_factory=TerraformConfig)
    registry: RegistryConfig = Field(default_factory=RegistryConfig)
    workspace: WorkspaceConfig = Field(default_factory=WorkspaceConfig)
    namespaces: dict[str, NamespaceConfig] = Field(default_factory=dict)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Insert TOML source between env vars and defaults."""
        toml_path = getattr(_tls, "toml_path", None)
        return (
            init_settings,
            env_settings,
            TomlSettingsSource(settings_cls, toml_path),
        )

    @classmethod
    def from_cli(
        cls,
        *,
        config_path: str | None = None,
        project_root: Path | None = None,
        **cli_flags: Any,
    ) -> PangeaSettings:
        """Construct settings from a CLI invocation.

        Discovers ``pangea.toml`` via walk-up (or explicit *config_path*)
        and resolves *project_root* from the config file's parent.
        """
        toml_path: Path | None = None
        if config_path:
            p = Path(config_path)
            if p.is_file():
                toml_path = p
        else:
            toml_path = find_config(project_root)

        resolved_root = project_root
        if resolved_root is None:
            resolved_root = toml_path.parent if toml_path else Path.cwd()

        _tls.toml_path = toml_path
        try:
            return cls(
                project_root=resolved_root,
                config_path=toml_path,
                **cli_flags,
            )
        finally:
            _tls.toml_path = None

    # ------------------------------------------------------------------
    # Resolved paths and lookups
    # ------------------------------------------------------------------

    def resolve_path(self, value: str) -> Path:
        """Resolve a configured path against :attr:`project_root`."""
        path = Path(value).expanduser()
        if path.is_absolute():
            return path
        return self.project_root / path

    @property
    def registry_dir(self) -> Path:
        return self.resolve_path(self.registry.path)

    @property
    def workspace_dir(self) -> Path:
        return self.resolve_path(self.workspace.dir)

    def namespace(self, name: str | None) -> tuple[str, NamespaceConfig]:
        """Look up a namespace by name, falling back to ``default_namespace``.

        Raises:
            NamespaceNotFoundError: No name given and no default, or the
                name is not configured.
        """
        resolved = name or self.default_namespace
        if not resolved:
            msg = "No namespace given and no default_namespace configured"
            raise NamespaceNotFoundError(msg)
        config = self.namespaces.get(resolved)
        if config is None:
            known = ", ".join(sorted(self.namespaces)) or "none"
            msg = f"Namespace '{resolved}' not found in configuration (known: {known})"
            raise NamespaceNotFoundError(msg, namespace=resolved)
        return resolved, config
