"""Pydantic configuration models with code-baked defaults.

Sparse TOML contract: defaults baked here, pangea.toml only contains
overrides. A project needs at least one ``[namespaces.<name>.state]``
table before it can plan or apply.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field, model_validator

StateType = Literal["local", "s3", "azurerm", "gcs", "consul", "etcd"]


class TerraformConfig(BaseModel):
    """[terraform] section."""

    model_config = {"frozen": True}

    binary: str = "tofu"
    timeout: float = 3600.0
    auto_approve: bool = True


class RegistryConfig(BaseModel):
    """[registry] section."""

    model_config = {"frozen": True}

    path: str = ".pangea/outputs"


class WorkspaceConfig(BaseModel):
    """[workspace] section."""

    model_config = {"frozen": True}

    dir: str = ".pangea/workspaces"


class StateConfig(BaseModel):
    """Backend type plus its free-form config.

    Accepts the flattened TOML form ``{type = "s3", bucket = "..."}``
    and splits everything except ``type`` into :attr:`config`.
    """

    model_config = {"frozen": True}

    type: StateType
    config: dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def _split_flat_config(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        if "type" not in data:
            msg = "State configuration missing 'type' field"
            raise ValueError(msg)
        if "config" in data and set(data) <= {"type", "config"}:
            return data
        config = {k: v for k, v in data.items() if k != "type"}
        return {"type": data["type"], "config": config}


class NamespaceConfig(BaseModel):
    """[namespaces.<name>] section."""

    model_config = {"frozen": True}

    description: str | None = None
    state: StateConfig = Field(default_factory=lambda: StateConfig(type="local"))
