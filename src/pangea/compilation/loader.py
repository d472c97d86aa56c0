"""Load ``@template`` definitions from a Python template file."""

from __future__ import annotations

import hashlib
import importlib.util
import logging
import sys
from pathlib import Path

from pangea.domain.errors import TemplateLoadError
from pangea.dsl.templates import TEMPLATE_ATTR, TemplateDefinition

logger = logging.getLogger(__name__)


def _module_name(path: Path) -> str:
    digest = hashlib.sha256(str(path.resolve()).encode("utf-8")).hexdigest()[:8]
    return f"pangea_templates_{path.stem}_{digest}"


def load_templates(path: Path) -> dict[str, TemplateDefinition]:
    """Execute *path* and return its templates in definition order.

    Raises:
        TemplateLoadError: The file is missing, fails to import, defines
            no templates, or defines the same template name twice.
    """
    if not path.is_file():
        msg = f"Template file not found: {path}"
        raise TemplateLoadError(msg, path=str(path))

    module_name = _module_name(path)
    spec = importlib.util.spec_from_file_location(module_name, path)
    if spec is None or spec.loader is None:
        msg = f"Could not create module spec for {path}"
        raise TemplateLoadError(msg, path=str(path))

    module = importlib.util.module_from_spec(spec)
    sys.modules[module_name] = module
    try:
        spec.loader.exec_module(module)
    except Exception as exc:
        sys.modules.pop(module_name, None)
        msg = f"Failed to load template file {path}: {type(exc).__name__}: {exc}"
        raise TemplateLoadError(msg, path=str(path)) from exc

    templates: dict[str, TemplateDefinition] = {}
    # Module globals keep definition order.
    for value in vars(module).values():
        definition = getattr(value, TEMPLATE_ATTR, None)
        if not isinstance(definition, TemplateDefinition):
            continue
        if definition.name in templates and templates[definition.name].body is not definition.body:
            msg = f"Template '{definition.name}' is defined more than once in {path}"
            raise TemplateLoadError(msg, path=str(path), template=definition.name)
        templates[definition.name] = definition

    if not templates:
        msg = f"No templates defined in {path}"
        raise TemplateLoadError(msg, path=str(path))
    logger.debug("Loaded %d templates from %s: %s", len(templates), path, list(templates))
    return templates
