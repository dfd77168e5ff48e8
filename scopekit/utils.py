"""
utils.py - Shared utilities

Fail-fast accessors: a key that must be present raises instead of
quietly producing None.
"""

from typing import Any, Mapping

from .errors.taxonomy import NotFoundError

_MISSING = object()


def require_key(mapping: Mapping, key: Any, source: str = "") -> Any:
    """
    Get a value that must be present.

    Args:
        mapping: Any mapping
        key: Key to look up
        source: Optional label for the error context

    Returns:
        mapping[key]

    Raises:
        NotFoundError: If key is absent (None values are returned as-is)
    """
    value = mapping.get(key, _MISSING)
    if value is _MISSING:
        raise NotFoundError(
            f"Required key {key!r} not found" + (f" in {source}" if source else ""),
            context={"key": repr(key), "source": source},
        )
    return value


def require_path(data: Mapping, path: str, source: str = "") -> Any:
    """
    require_key over a dot-notation path (e.g. "database.host").
    """
    current: Any = data
    walked = []
    for part in path.split("."):
        if not isinstance(current, Mapping):
            raise NotFoundError(
                f"Required path {path!r} not found: {'.'.join(walked) or '<root>'} is not a mapping",
                context={"path": path, "source": source},
            )
        walked.append(part)
        current = require_key(current, part, source=source or path)
    return current
