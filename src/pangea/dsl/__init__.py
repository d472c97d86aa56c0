"""Template authoring surface: ``@template`` and the evaluation contexts."""

from pangea.dsl.remote_state import RemoteStateBlock, RemoteStateContext
from pangea.dsl.templates import TemplateContext, TemplateDefinition, template

__all__ = [
    "RemoteStateBlock",
    "RemoteStateContext",
    "TemplateContext",
    "TemplateDefinition",
    "template",
]
