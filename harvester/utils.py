"""
Utility Functions
JSON path lookup and small helpers shared by the paginator and exporters.
"""

from typing import Any, Dict


def get_path(data: Any, path: str, default: Any = None) -> Any:
    """
    Resolve a dotted path inside a nested JSON structure.

    Keys are separated by ``.``; a purely numeric segment indexes into a
    list. A key that is present with a ``null`` value resolves to ``None``
    rather than ``default``; only missing keys fall back.

    Args:
        data: Parsed JSON payload (dicts and lists)
        path: Dotted path, e.g. ``data.hashtag.edge_hashtag_to_media.edges``
        default: Value returned when any segment is missing

    Returns:
        The value at ``path`` or ``default``

    Examples:
        get_path({"a": {"b": [1, 2]}}, "a.b.1") -> 2
        get_path({"a": {}}, "a.b.c", False)     -> False
    """
    if not path:
        return data

    current = data
    for key in path.split('.'):
        if isinstance(current, dict):
            if key not in current:
                return default
            current = current[key]
        elif isinstance(current, list) and key.isdigit():
            index = int(key)
            if index >= len(current):
                return default
            current = current[index]
        else:
            return default

    return current


def flatten_record(record: Dict[str, Any], prefix: str = '') -> Dict[str, Any]:
    """
    Flatten a nested record into dotted keys for tabular export.

    Lists of scalars are joined with ``|``; lists containing objects are
    flattened with their index as a path segment.
    """
    flat: Dict[str, Any] = {}
    for key, value in record.items():
        name = f"{prefix}.{key}" if prefix else str(key)
        if isinstance(value, dict):
            flat.update(flatten_record(value, name))
        elif isinstance(value, list):
            if any(isinstance(v, (dict, list)) for v in value):
                for i, item in enumerate(value):
                    if isinstance(item, dict):
                        flat.update(flatten_record(item, f"{name}.{i}"))
                    else:
                        flat[f"{name}.{i}"] = item
            else:
                flat[name] = '|'.join(str(v) for v in value)
        else:
            flat[name] = value
    return flat


def format_total(total: int) -> str:
    """Human readable total, 0 means no cap."""
    return "Unlimited" if total == 0 else str(total)
