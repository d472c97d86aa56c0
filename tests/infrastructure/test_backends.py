"""Tests for NamespaceBackends: per-template backend configuration."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest

from pangea.config.settings import PangeaSettings
from pangea.domain.errors import BackendConfigError, NamespaceNotFoundError
from pangea.infrastructure.backends import NamespaceBackends


def _backends(tmp_path: Path, state: dict[str, Any]) -> NamespaceBackends:
    settings = PangeaSettings.from_cli(
        project_root=tmp_path,
        namespaces={"prod": {"state": state}},
    )
    return NamespaceBackends(settings)


class TestBackendConfig:
    def test_s3_key_per_template(self, tmp_path: Path) -> None:
        backends = _backends(
            tmp_path,
            {"type": "s3", "bucket": "state", "key": "pangea/prod", "region": "us-east-1"},
        )
        assert backends.backend_type("prod", "network") == "s3"
        assert backends.backend_config("prod", "network") == {
            "bucket": "state",
            "key": "pangea/prod/network/terraform.tfstate",
            "region": "us-east-1",
            "encrypt": True,
        }

    def test_s3_encrypt_override(self, tmp_path: Path) -> None:
        backends = _backends(
            tmp_path,
            {"type": "s3", "bucket": "b", "key": "k", "region": "r", "encrypt": False},
        )
        assert backends.backend_config("prod", "app")["encrypt"] is False

    def test_s3_missing_required(self, tmp_path: Path) -> None:
        backends = _backends(tmp_path, {"type": "s3", "bucket": "state"})
        with pytest.raises(BackendConfigError) as exc_info:
            backends.backend_config("prod", "network")
        assert exc_info.value.detail["missing"] == ["key", "region"]

    def test_local_path_under_project(self, tmp_path: Path) -> None:
        backends = _backends(tmp_path, {"type": "local"})
        config = backends.backend_config("prod", "network")
        assert config == {"path": str(tmp_path / ".pangea" / "state" / "network.tfstate")}

    def test_local_custom_dir(self, tmp_path: Path) -> None:
        backends = _backends(tmp_path, {"type": "local", "workspace_dir": "states"})
        config = backends.backend_config("prod", "app")
        assert config["path"] == str(tmp_path / "states" / "app.tfstate")

    def test_gcs_prefix(self, tmp_path: Path) -> None:
        backends = _backends(tmp_path, {"type": "gcs", "bucket": "b", "prefix": "pangea/"})
        assert backends.backend_config("prod", "network")["prefix"] == "pangea/network"

    def test_gcs_without_prefix(self, tmp_path: Path) -> None:
        backends = _backends(tmp_path, {"type": "gcs", "bucket": "b"})
        assert backends.backend_config("prod", "network")["prefix"] == "network"

    def test_azurerm_key(self, tmp_path: Path) -> None:
        backends = _backends(
            tmp_path,
            {
                "type": "azurerm",
                "storage_account_name": "acct",
                "container_name": "tfstate",
                "key": "pangea",
            },
        )
        assert backends.backend_config("prod", "db")["key"] == "pangea/db/terraform.tfstate"

    def test_config_not_shared_between_templates(self, tmp_path: Path) -> None:
        backends = _backends(tmp_path, {"type": "s3", "bucket": "b", "key": "k", "region": "r"})
        backends.backend_config("prod", "network")
        assert backends.backend_config("prod", "app")["key"] == "k/app/terraform.tfstate"

    def test_unknown_namespace(self, tmp_path: Path) -> None:
        backends = _backends(tmp_path, {"type": "local"})
        with pytest.raises(NamespaceNotFoundError):
            backends.backend_config("staging", "network")


class TestTerraformBlock:
    def test_block_shape(self, tmp_path: Path) -> None:
        backends = _backends(tmp_path, {"type": "gcs", "bucket": "b"})
        assert backends.terraform_block("prod", "network") == {
            "backend": {"gcs": {"bucket": "b", "prefix": "network"}}
        }
