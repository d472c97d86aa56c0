"""Namespace backend resolution.

Maps a namespace's ``state`` config onto the backend block for one
template. Each template gets its own state location so that
``terraform_remote_state`` can read exactly one template's outputs.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from pangea.domain.errors import BackendConfigError

if TYPE_CHECKING:
    from pangea.config.settings import PangeaSettings

_REQUIRED_CONFIG: dict[str, tuple[str, ...]] = {
    "s3": ("bucket", "key", "region"),
    "gcs": ("bucket",),
    "azurerm": ("storage_account_name", "container_name", "key"),
}

DEFAULT_LOCAL_STATE_DIR = ".pangea/state"


class NamespaceBackends:
    """Backend source backed by the ``[namespaces]`` settings table."""

    def __init__(self, settings: PangeaSettings) -> None:
        self._settings = settings

    def backend_type(self, namespace: str, template: str) -> str:
        _, ns = self._settings.namespace(namespace)
        return ns.state.type

    def backend_config(self, namespace: str, template: str) -> dict[str, Any]:
        """Return the backend config for *template*, keyed per template."""
        name, ns = self._settings.namespace(namespace)
        state_type = ns.state.type
        config = dict(ns.state.config)

        missing = [k for k in _REQUIRED_CONFIG.get(state_type, ()) if not config.get(k)]
        if missing:
            msg = (
                f"Namespace '{name}' {state_type} backend is missing required "
                f"config: {', '.join(missing)}"
            )
            raise BackendConfigError(msg, namespace=name, missing=missing)

        if state_type == "s3":
            config.setdefault("encrypt", True)
            config["key"] = f"{config['key'].rstrip('/')}/{template}/terraform.tfstate"
        elif state_type == "azurerm":
            config["key"] = f"{config['key'].rstrip('/')}/{template}/terraform.tfstate"
        elif state_type == "gcs":
            prefix = str(config.get("prefix", "")).strip("/")
            config["prefix"] = f"{prefix}/{template}" if prefix else template
        elif state_type == "local":
            state_dir = self._settings.resolve_path(
                str(config.pop("workspace_dir", DEFAULT_LOCAL_STATE_DIR))
            )
            config["path"] = str(state_dir / f"{template}.tfstate")
        return config

    def terraform_block(self, namespace: str, template: str) -> dict[str, Any]:
        """The ``terraform { backend ... }`` block for a template's own state."""
        state_type = self.backend_type(namespace, template)
        return {"backend": {state_type: self.backend_config(namespace, template)}}
