"""Decoding and schema validation of structured inference output.

Consumers never poke at raw dicts: content is decoded here and validated
against a pydantic model or adapter, and any mismatch surfaces as
``InvalidResponse`` so the caller can substitute its named default.
"""

from __future__ import annotations

import json
import re
from typing import Any
from typing import TypeVar

from pydantic import BaseModel
from pydantic import TypeAdapter
from pydantic import ValidationError

from carepilot.inference.errors import InvalidResponse

ModelT = TypeVar("ModelT", bound=BaseModel)

# Regex to strip Markdown code fences wrapping JSON output
_CODE_FENCE_RE = re.compile(
    r"^\s*```(?:json)?\s*\n?(.*?)\n?\s*```\s*$",
    re.DOTALL,
)

_STRING_LIST = TypeAdapter(list[str])


def parse_json(raw: str) -> Any:
    """Decode *raw* as JSON, tolerating a surrounding code fence."""
    text = raw.strip()
    match = _CODE_FENCE_RE.match(text)
    if match:
        text = match.group(1).strip()
    try:
        return json.loads(text)
    except (json.JSONDecodeError, ValueError) as exc:
        raise InvalidResponse(f"Invalid JSON from provider: {exc}") from exc


def parse_model(raw: str, model: type[ModelT]) -> ModelT:
    """Decode *raw* and validate it as *model*."""
    data = parse_json(raw)
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        raise InvalidResponse(
            f"{model.__name__} schema validation failed: {exc.error_count()} error(s)"
        ) from exc


def parse_model_list(raw: str, model: type[ModelT], *, key: str | None = None) -> list[ModelT]:
    """Decode *raw* as a JSON array of *model* items.

    When *key* is given, an object wrapping the array under that key is
    accepted too (``{"conflicts": [...]}``).
    """
    data = _unwrap(parse_json(raw), key)
    try:
        return TypeAdapter(list[model]).validate_python(data)  # type: ignore[valid-type]
    except ValidationError as exc:
        raise InvalidResponse(
            f"list[{model.__name__}] schema validation failed: "
            f"{exc.error_count()} error(s)"
        ) from exc


def parse_string_list(raw: str, *, key: str | None = None) -> list[str]:
    """Decode *raw* as a JSON array of strings."""
    data = _unwrap(parse_json(raw), key)
    try:
        return _STRING_LIST.validate_python(data)
    except ValidationError as exc:
        raise InvalidResponse(
            f"list[str] schema validation failed: {exc.error_count()} error(s)"
        ) from exc


def _unwrap(data: Any, key: str | None) -> Any:
    if key is not None and isinstance(data, dict) and key in data:
        return data[key]
    return data
