"""
Semi-structured competition fields.

Clients send stages, eligibility criteria and contact info as lists,
objects, JSON text or plain text. These helpers turn whatever arrives
into one stored shape and read it back without ever raising.
"""
import json
import logging
from typing import Any, List

logger = logging.getLogger(__name__)


def safe_parse_json(value: Any, fallback: Any) -> Any:
    """Parse JSON text; non-strings pass through; bad text yields fallback."""
    if value is None:
        return fallback
    if not isinstance(value, str):
        return value
    try:
        return json.loads(value)
    except (TypeError, ValueError):
        return fallback


def normalize_stages(value: Any) -> str:
    """
    Stages are always stored as JSON text holding a list.

    None -> "[]"; valid JSON text is kept as is; other text is split on
    commas; a list is serialized; any single value is wrapped in a list.
    """
    if value is None:
        return "[]"
    if isinstance(value, str):
        try:
            json.loads(value)
            return value
        except ValueError:
            parts = [part.strip() for part in value.split(",")]
            return json.dumps([part for part in parts if part])
    if isinstance(value, (list, tuple)):
        return json.dumps(list(value))
    return json.dumps([value])


def parse_stages(stored: Any) -> List[Any]:
    parsed = safe_parse_json(stored, [])
    if isinstance(parsed, list):
        return parsed
    return [parsed]


def normalize_structured(value: Any, fallback: Any = None) -> Any:
    """
    Value for a JSON column that may hold structure or free text.

    A string holding valid JSON becomes the parsed value; any other
    string is kept verbatim as text.
    """
    if value is None:
        return {} if fallback is None else fallback
    if isinstance(value, str):
        try:
            return json.loads(value)
        except ValueError:
            return value
    return value
