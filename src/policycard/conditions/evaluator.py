"""Condition evaluation: resolve the field, then apply the operator."""

from collections.abc import Mapping
from typing import Any

from policycard.conditions.operators import apply_operator
from policycard.conditions.resolver import resolve
from policycard.schema import Condition


def evaluate_condition(condition: Condition, metadata: Mapping[str, Any]) -> bool:
    """
    Evaluate one condition against a compliance metadata record.

    Args:
        condition: The condition to evaluate
        metadata: The open compliance metadata record

    Returns:
        Whether the condition holds
    """
    value = resolve(metadata, condition.field)
    return apply_operator(condition.operator, value, condition.operand)
