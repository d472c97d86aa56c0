"""Output value normalization and type tags.

Registry values are kept JSON-compatible: scalars pass through, lists
and mappings are normalized recursively, and anything else is
stringified. The type tag is inferred from the normalized value.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from enum import StrEnum
from typing import Any


class TypeTag(StrEnum):
    """Structural type of a registered output value."""

    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    LIST = "list"
    MAP = "map"
    UNKNOWN = "unknown"


def normalize_value(value: Any) -> Any:
    """Coerce *value* into something the JSON registry can hold."""
    if isinstance(value, float) and not math.isfinite(value):
        # JSON has no NaN or Infinity
        return str(value)
    if value is None or isinstance(value, (str, bool, int, float)):
        return value
    if isinstance(value, Mapping):
        return {str(k): normalize_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [normalize_value(v) for v in value]
    return str(value)


def infer_type(value: Any) -> TypeTag:
    """Infer the :class:`TypeTag` for an already-normalized value."""
    # bool is a subclass of int, check it first
    if isinstance(value, bool):
        return TypeTag.BOOLEAN
    if isinstance(value, (int, float)):
        return TypeTag.NUMBER
    if isinstance(value, str):
        return TypeTag.STRING
    if isinstance(value, list):
        return TypeTag.LIST
    if isinstance(value, dict):
        return TypeTag.MAP
    return TypeTag.UNKNOWN
