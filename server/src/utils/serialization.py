"""Shared serialization helpers for camelCase wire payloads.

Provides a single ``snake_to_camel`` implementation used by
Pydantic model configs, and ``to_wire`` which turns models (or
lists of models) into JSON-ready camelCase structures for the
real-time channel.
"""

from __future__ import annotations

from typing import Any

import pydantic


def snake_to_camel(name: str) -> str:
    """Convert a snake_case string to camelCase.

    Args:
        name: A snake_case identifier such as
            ``"resource_type"``.

    Returns:
        The camelCase equivalent, e.g. ``"resourceType"``.
    """
    parts = name.split("_")
    return parts[0] + "".join(w.capitalize() for w in parts[1:])


def to_wire(value: Any) -> Any:
    """Convert *value* into a JSON-serialisable camelCase structure.

    Pydantic models are dumped by alias in JSON mode, sequences
    are converted element-wise, and anything else is returned
    unchanged.
    """
    if isinstance(value, pydantic.BaseModel):
        return value.model_dump(by_alias=True, mode="json")
    if isinstance(value, (list, tuple)):
        return [to_wire(item) for item in value]
    return value
