"""
Field resolution over open compliance metadata.

Compliance metadata has no fixed schema, so rules reach into it with dotted
paths (``gdpr.transfer_mechanisms``). Resolution never raises: a path that
cannot be followed resolves to ABSENT, which is distinct from a present
``None`` value.
"""

from collections.abc import Mapping
from typing import Any


class _Absent:
    """Sentinel type for a field that is not present in the record."""

    _instance: "_Absent | None" = None

    def __new__(cls) -> "_Absent":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "ABSENT"

    def __bool__(self) -> bool:
        return False


ABSENT: Any = _Absent()


def is_absent(value: Any) -> bool:
    """Whether a resolved value is the ABSENT sentinel."""
    return value is ABSENT


def resolve(record: Any, path: str) -> Any:
    """
    Resolve a dotted path against a nested mapping.

    Examples:
        resolve({"a": {"b": 1}}, "a.b") -> 1
        resolve({"a": {"b": 1}}, "a.c") -> ABSENT
        resolve({"a": [1, 2]}, "a.b")   -> ABSENT (list is not a mapping)
        resolve({"a": None}, "a")       -> None

    Args:
        record: The metadata record (normally a mapping)
        path: Dotted field path

    Returns:
        The value at the path, or ABSENT
    """
    if not path:
        return ABSENT

    current = record
    for key in path.split("."):
        if not isinstance(current, Mapping):
            return ABSENT
        if key not in current:
            return ABSENT
        current = current[key]
    return current
