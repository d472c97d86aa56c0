"""Tests for loading @template definitions from a file."""

from __future__ import annotations

from pathlib import Path

import pytest

from pangea.compilation.loader import load_templates
from pangea.domain.errors import TemplateLoadError
from tests.conftest import NETWORK_APP_TEMPLATES, write_templates


class TestLoadTemplates:
    def test_definition_order(self, tmp_path: Path) -> None:
        path = write_templates(tmp_path, NETWORK_APP_TEMPLATES)
        templates = load_templates(path)
        assert list(templates) == ["network", "app"]
        assert templates["network"].description == "VPC and subnets."

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(TemplateLoadError, match="not found"):
            load_templates(tmp_path / "missing.py")

    def test_import_error(self, tmp_path: Path) -> None:
        path = write_templates(tmp_path, "raise ValueError('bad file')\n")
        with pytest.raises(TemplateLoadError, match="ValueError: bad file"):
            load_templates(path)

    def test_no_templates(self, tmp_path: Path) -> None:
        path = write_templates(tmp_path, "X = 1\n")
        with pytest.raises(TemplateLoadError, match="No templates"):
            load_templates(path)

    def test_duplicate_name(self, tmp_path: Path) -> None:
        path = write_templates(
            tmp_path,
            """\
            from pangea import template


            @template("network")
            def one(ctx):
                pass


            @template("network")
            def two(ctx):
                pass
            """,
        )
        with pytest.raises(TemplateLoadError, match="more than once"):
            load_templates(path)
