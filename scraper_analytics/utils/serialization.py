"""Shared serialization helpers for camelCase conversion and JSON text.

Provides a single ``snake_to_camel`` implementation used by
Pydantic model configs, and the JSON rendering used for every
tool response payload.
"""

from __future__ import annotations

import json
from typing import Any

import pydantic


def snake_to_camel(name: str) -> str:
    """Convert a snake_case string to camelCase.

    Args:
        name: A snake_case identifier such as
            ``"my_field_name"``.

    Returns:
        The camelCase equivalent, e.g. ``"myFieldName"``.
    """
    parts = name.split("_")
    return parts[0] + "".join(w.capitalize() for w in parts[1:])


def to_payload(obj: Any) -> Any:
    """Convert models (or lists of models) into camelCase JSON-ready data.

    ``None`` fields are dropped so optional attributes disappear from
    the payload instead of rendering as ``null``.
    """
    if isinstance(obj, pydantic.BaseModel):
        return obj.model_dump(mode="json", by_alias=True, exclude_none=True)
    if isinstance(obj, list):
        return [to_payload(item) for item in obj]
    return obj


def to_json_text(obj: Any) -> str:
    """Render *obj* as indented JSON text for a tool response."""
    return json.dumps(to_payload(obj), indent=2)
