"""
Condition language for policycard.

A condition is a (field path, operator, operand) triple evaluated against
an open compliance metadata record:

    - resolve: Dotted-path lookup returning ABSENT for missing fields
    - OPERATORS: Total, side-effect-free operator functions
    - evaluate_condition: Resolve + apply in one call
"""

from policycard.conditions.evaluator import evaluate_condition
from policycard.conditions.operators import OPERATORS, apply_operator
from policycard.conditions.resolver import ABSENT, is_absent, resolve

__all__ = [
    "ABSENT",
    "OPERATORS",
    "apply_operator",
    "evaluate_condition",
    "is_absent",
    "resolve",
]
