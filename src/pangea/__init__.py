"""pangea: cross-template remote-state orchestration for provisioning tools."""

from pangea.dsl.templates import template

__version__ = "0.4.0"

__all__ = ["__version__", "template"]
