"""Tagged-variant value model for document payloads.

Section payloads are nested, dynamically shaped JSON-like data. Comparing
them with ``==`` is not enough: Python treats ``True == 1`` and ``{"a": None}``
differs from ``{}``. This module classifies every value into one of six
kinds (null, bool, number, string, list, map) and compares values kind by
kind.

Normalization rule: ``None``, the empty string and whitespace-only strings
are the same absent marker, and a map key holding the absent marker is the
same as a missing key. List positions are preserved.
"""

import copy
from enum import Enum
from typing import Any, Dict, List, Mapping, Union

from typing_extensions import TypeAlias

Value: TypeAlias = Union[None, bool, int, float, str, List["Value"], Dict[str, "Value"]]


class ValueKind(str, Enum):
    NULL = "null"
    BOOL = "bool"
    NUMBER = "number"
    STRING = "string"
    LIST = "list"
    MAP = "map"


def kind_of(value: Any) -> ValueKind:
    """Classify a payload value.

    Raises:
        TypeError: If the value is not JSON-like
    """
    if value is None:
        return ValueKind.NULL
    # bool is a subclass of int
    if isinstance(value, bool):
        return ValueKind.BOOL
    if isinstance(value, (int, float)):
        return ValueKind.NUMBER
    if isinstance(value, str):
        return ValueKind.STRING
    if isinstance(value, (list, tuple)):
        return ValueKind.LIST
    if isinstance(value, Mapping):
        return ValueKind.MAP
    raise TypeError(f"Unsupported payload value of type {type(value).__name__}")


def is_absent(value: Any) -> bool:
    """Return True for the values that normalize to the absent marker."""
    if value is None:
        return True
    return isinstance(value, str) and not value.strip()


def normalize(value: Any) -> Value:
    """Return the canonical form of a payload value.

    Examples:
        >>> normalize({"name": "", "email": "a@b.org", "phone": None})
        {'email': 'a@b.org'}
        >>> normalize(["x", "  "])
        ['x', None]
    """
    kind = kind_of(value)
    if kind is ValueKind.MAP:
        result: Dict[str, Value] = {}
        for key, item in value.items():
            normalized = normalize(item)
            if normalized is not None:
                result[str(key)] = normalized
        return result
    if kind is ValueKind.LIST:
        return [normalize(item) for item in value]
    if is_absent(value):
        return None
    if kind is ValueKind.STRING:
        # str-based enums compare by their value
        return str(value.value) if isinstance(value, Enum) else str(value)
    return value


def _equal(left: Value, right: Value) -> bool:
    left_kind = kind_of(left)
    if left_kind is not kind_of(right):
        return False

    if left_kind is ValueKind.MAP:
        if left.keys() != right.keys():
            return False
        return all(_equal(left[key], right[key]) for key in left)

    if left_kind is ValueKind.LIST:
        if len(left) != len(right):
            return False
        return all(_equal(a, b) for a, b in zip(left, right))

    return left == right


def structurally_equal(left: Any, right: Any) -> bool:
    """Deep structural equality over normalized values.

    Examples:
        >>> structurally_equal({"a": 1, "b": ""}, {"a": 1.0})
        True
        >>> structurally_equal({"flag": True}, {"flag": 1})
        False
    """
    return _equal(normalize(left), normalize(right))


def deep_merge(base: Mapping[str, Any], override: Mapping[str, Any]) -> Dict[str, Any]:
    """Recursively merge ``override`` into a copy of ``base``.

    Nested maps are merged key by key; any other value in ``override``
    replaces the one in ``base``. Neither argument is modified.
    """
    result = copy.deepcopy(dict(base))
    for key, value in override.items():
        current = result.get(key)
        if isinstance(current, Mapping) and isinstance(value, Mapping):
            result[key] = deep_merge(current, value)
        else:
            result[key] = copy.deepcopy(value)
    return result


__all__ = [
    "Value",
    "ValueKind",
    "kind_of",
    "is_absent",
    "normalize",
    "structurally_equal",
    "deep_merge",
]
