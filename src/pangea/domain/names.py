"""Template identifier rules.

Template names double as registry filenames and as part of the
``<template>_state`` data-source label, so they are restricted to
lowercase identifiers.
"""

from __future__ import annotations

import re

from pangea.domain.errors import InvalidTemplateNameError

TEMPLATE_NAME_PATTERN = re.compile(r"^[a-z][a-z0-9_]*$")


def is_valid_template_name(name: object) -> bool:
    """Check whether *name* is an acceptable template identifier."""
    return isinstance(name, str) and TEMPLATE_NAME_PATTERN.match(name) is not None


def validate_template_name(name: object) -> str:
    """Return *name* unchanged, or raise :class:`InvalidTemplateNameError`."""
    if not isinstance(name, str) or not name:
        msg = "Template name must be a non-empty string"
        raise InvalidTemplateNameError(msg, template=repr(name))
    if TEMPLATE_NAME_PATTERN.match(name) is None:
        msg = (
            f"Invalid template name {name!r}: must start with a lowercase letter "
            "and contain only lowercase letters, digits, or underscores"
        )
        raise InvalidTemplateNameError(msg, template=name)
    return name
