"""Dotted-path lookup into loosely structured JSON records."""
from collections.abc import Mapping
from typing import Any, Optional


def get_nested_value(record: Any, path: Optional[str]) -> Any:
    """Return the value at a dotted path, or None when any segment is missing.

    Mappings are walked by key and lists by integer segment, so
    ``get_nested_value({"query": {"name": "chr1"}}, "query.name")`` is
    ``"chr1"`` and ``"hits.0.name"`` reaches into the first hit.
    """
    if not path:
        return None

    current = record
    for key in path.split("."):
        if isinstance(current, Mapping):
            current = current.get(key)
        elif isinstance(current, list) and key.isdecimal():
            index = int(key)
            current = current[index] if index < len(current) else None
        else:
            return None
        if current is None:
            return None
    return current
