"""
Utility functions for the mwengine client.

These functions are not part of the public API and may change without notice.
"""

from __future__ import annotations

from typing import Any


def lookup(document: Any, *path: str) -> Any:
    """
    Walk nested JSON objects by key.

    Args:
        document: A decoded JSON value.
        *path: Keys to follow, outermost first.

    Returns:
        The value at the end of the path, or None if any step is missing or
        is not an object.

    Example:
        >>> lookup({"login": {"result": "Success"}}, "login", "result")
        'Success'
        >>> lookup({"login": "oops"}, "login", "result") is None
        True
    """
    current = document
    for key in path:
        if not isinstance(current, dict):
            return None
        current = current.get(key)
    return current


def lookup_string(document: Any, *path: str) -> str | None:
    """Like `lookup`, but returns None unless the value is a string."""
    value = lookup(document, *path)
    return value if isinstance(value, str) else None
