"""Tests for template name validation."""

import pytest

from pangea.domain.errors import InvalidTemplateNameError
from pangea.domain.names import is_valid_template_name, validate_template_name


class TestValidateTemplateName:
    @pytest.mark.parametrize("name", ["network", "app_v2", "a", "db1"])
    def test_valid(self, name: str) -> None:
        assert validate_template_name(name) == name
        assert is_valid_template_name(name)

    @pytest.mark.parametrize("name", ["", "Network", "1app", "_app", "app-web", "app.web"])
    def test_invalid(self, name: str) -> None:
        assert not is_valid_template_name(name)
        with pytest.raises(InvalidTemplateNameError):
            validate_template_name(name)

    def test_non_string(self) -> None:
        with pytest.raises(InvalidTemplateNameError, match="non-empty string"):
            validate_template_name(None)

    def test_error_code(self) -> None:
        with pytest.raises(InvalidTemplateNameError) as exc_info:
            validate_template_name("Bad")
        assert exc_info.value.code == "INVALID_TEMPLATE_NAME"
        assert exc_info.value.detail["template"] == "Bad"
