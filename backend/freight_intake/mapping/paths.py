"""
Dotted-path lookup over a tree of dicts and lists.

Pure functions: "vehicle.dimensions.length_m" or "messages.0.content" resolve
against the extraction tree. A missing path returns the MISSING sentinel, which
is distinct from None and from empty values.
"""

from typing import Any


class _Missing:
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "MISSING"


MISSING = _Missing()


def resolve(tree: Any, path: str) -> Any:
    """Resolve a dotted path against a nested structure.

    Args:
        tree: Nested dicts/lists.
        path: Dot-separated keys. Integer segments index into lists.

    Returns:
        The value at the path, or MISSING if any segment is absent.
    """
    if not path:
        return MISSING

    current = tree
    for segment in path.split("."):
        if isinstance(current, dict):
            if segment not in current:
                return MISSING
            current = current[segment]
        elif isinstance(current, (list, tuple)):
            try:
                index = int(segment)
            except ValueError:
                return MISSING
            if index < -len(current) or index >= len(current):
                return MISSING
            current = current[index]
        else:
            return MISSING
    return current


def is_blank(value: Any) -> bool:
    """True for MISSING, None, whitespace-only strings and empty containers.

    Zero and False are real values, not blank.
    """
    if value is MISSING or value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, dict, set)):
        return len(value) == 0
    return False


def first_present(tree: Any, paths: list[str]) -> Any:
    """Return the first non-blank value among paths, or MISSING."""
    for path in paths:
        value = resolve(tree, path)
        if not is_blank(value):
            return value
    return MISSING


def assign(tree: dict, path: str, value: Any) -> None:
    """Set a value at a dotted path, creating intermediate dicts."""
    segments = path.split(".")
    current = tree
    for segment in segments[:-1]:
        nxt = current.get(segment)
        if not isinstance(nxt, dict):
            nxt = {}
            current[segment] = nxt
        current = nxt
    current[segments[-1]] = value
