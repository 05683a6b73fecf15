"""
Operator library for rule conditions.

Every operator is a pure function ``(resolved_value, operand) -> bool`` and
is total: conditions run over untrusted, partially missing metadata, so no
combination of inputs may raise. Type mismatches evaluate to the operator's
fail-safe result instead.

Semantics for a field that is not present (ABSENT):
    equals -> False            not_equals -> True
    any_of -> False            not_any_of -> True
    contains -> False          not_contains -> True
    exists -> False            not_exists -> True
    numeric comparisons -> False
"""

from collections.abc import Callable
from typing import Any

from policycard.conditions.resolver import ABSENT
from policycard.schema import Operator

OperatorFn = Callable[[Any, Any], bool]


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _as_items(value: Any) -> list[Any]:
    """Treat a scalar as a one-element list."""
    if isinstance(value, (list, tuple, set, frozenset)):
        return list(value)
    return [value]


def _safe_eq(left: Any, right: Any) -> bool:
    try:
        return bool(left == right)
    except Exception:
        return False


def _member(item: Any, items: list[Any]) -> bool:
    # Linear scan so unhashable items (dicts, lists) still compare by value
    return any(_safe_eq(item, candidate) for candidate in items)


# =============================================================================
# Equality
# =============================================================================


def op_equals(value: Any, operand: Any) -> bool:
    """Scalar equality. ABSENT never equals anything."""
    if value is ABSENT:
        return False
    if isinstance(value, bool) != isinstance(operand, bool):
        # True == 1 in Python; metadata flags should not match counts
        return False
    return _safe_eq(value, operand)


def op_not_equals(value: Any, operand: Any) -> bool:
    """Negation of equals."""
    return not op_equals(value, operand)


# =============================================================================
# Set membership
# =============================================================================


def op_any_of(value: Any, operand: Any) -> bool:
    """True if the value (scalar or list) shares an element with the operand list."""
    if value is ABSENT:
        return False
    candidates = _as_items(operand)
    return any(_member(item, candidates) for item in _as_items(value))


def op_not_any_of(value: Any, operand: Any) -> bool:
    """True if the value shares no element with the operand list."""
    return not op_any_of(value, operand)


def op_contains(value: Any, operand: Any) -> bool:
    """True if a list-valued field contains the operand."""
    if not isinstance(value, (list, tuple)):
        return False
    return _member(operand, list(value))


def op_not_contains(value: Any, operand: Any) -> bool:
    """Negation of contains."""
    return not op_contains(value, operand)


# =============================================================================
# Presence
# =============================================================================


def op_exists(value: Any, operand: Any = None) -> bool:
    """True if the field is present, whatever its value."""
    return value is not ABSENT


def op_not_exists(value: Any, operand: Any = None) -> bool:
    """True if the field is not present."""
    return value is ABSENT


# =============================================================================
# Numeric comparison
# =============================================================================


def _numeric(compare: Callable[[float, float], bool]) -> OperatorFn:
    def op(value: Any, operand: Any) -> bool:
        if not (_is_number(value) and _is_number(operand)):
            return False
        return compare(value, operand)

    return op


op_greater_than = _numeric(lambda a, b: a > b)
op_less_than = _numeric(lambda a, b: a < b)
op_greater_than_or_equal = _numeric(lambda a, b: a >= b)
op_less_than_or_equal = _numeric(lambda a, b: a <= b)


OPERATORS: dict[Operator, OperatorFn] = {
    Operator.EQUALS: op_equals,
    Operator.NOT_EQUALS: op_not_equals,
    Operator.ANY_OF: op_any_of,
    Operator.NOT_ANY_OF: op_not_any_of,
    Operator.CONTAINS: op_contains,
    Operator.NOT_CONTAINS: op_not_contains,
    Operator.EXISTS: op_exists,
    Operator.NOT_EXISTS: op_not_exists,
    Operator.GREATER_THAN: op_greater_than,
    Operator.LESS_THAN: op_less_than,
    Operator.GREATER_THAN_OR_EQUAL: op_greater_than_or_equal,
    Operator.LESS_THAN_OR_EQUAL: op_less_than_or_equal,
}


def apply_operator(operator: Operator, value: Any, operand: Any) -> bool:
    """Apply an operator to a resolved value and an operand."""
    return OPERATORS[operator](value, operand)
