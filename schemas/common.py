# purvita/schemas/common.py
"""
Coercion helpers shared by the request schemas.

Admin forms send loosely typed JSON: "true"/"1" for booleans, comma lists
or nested {"items": [...]} for string arrays, empty strings for "unset".
"""
import json
from typing import Any, List, Optional

TRUTHY = ('true', '1', 'yes', 'y', 't')
FALSY = ('false', '0', 'no', 'n', 'f')


def coerce_bool(value: Any, default: bool) -> bool:
    """None -> default, 'yes' -> True, 'f' -> False, else truthiness."""
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in TRUTHY:
            return True
        if normalized in FALSY:
            return False
        return default
    return bool(value)


def _extract_string(entry: dict) -> Optional[str]:
    for key in ('label', 'value', 'text', 'name', 'title'):
        candidate = entry.get(key)
        if isinstance(candidate, str) and candidate.strip():
            return candidate.strip()
    return None


def normalize_string_array(value: Any) -> List[str]:
    """
    Flatten anything list-like into trimmed non-empty strings.

    Examples:
        >>> normalize_string_array('["a", " b "]')
        ['a', 'b']
        >>> normalize_string_array({"items": ["x", {"label": "y"}]})
        ['x', 'y']
    """
    if value is None:
        return []

    if isinstance(value, str):
        trimmed = value.strip()
        if not trimmed:
            return []
        if (trimmed.startswith('[') and trimmed.endswith(']')) or \
                (trimmed.startswith('{') and trimmed.endswith('}')):
            try:
                return normalize_string_array(json.loads(trimmed))
            except ValueError:
                pass
        return [trimmed]

    if isinstance(value, dict):
        items = value.get('items')
        if isinstance(items, list):
            return normalize_string_array(items)
        extracted = _extract_string(value)
        return [extracted] if extracted else []

    if isinstance(value, (list, tuple)):
        results: List[str] = []
        for entry in value:
            if isinstance(entry, (list, tuple, dict)):
                results.extend(normalize_string_array(entry))
            elif isinstance(entry, str):
                if entry.strip():
                    results.append(entry.strip())
            elif entry is not None:
                coerced = str(entry).strip()
                if coerced:
                    results.append(coerced)
        return results

    coerced = str(value).strip()
    return [coerced] if coerced else []


def empty_to_none(value: Any) -> Any:
    """'' and whitespace-only strings become None; other values pass through."""
    if isinstance(value, str) and not value.strip():
        return None
    return value
