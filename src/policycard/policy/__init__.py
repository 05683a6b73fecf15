"""
Policy module for policycard.

Loads policy cards and evaluates compliance metadata against them.

Key concepts:
    - PolicyCard: The validated governance document
    - PolicyEngine: Evaluates metadata against the card's rules
    - Escalation triggers: Single comparisons over a runtime context

Evaluation is:
    - Total: Missing or mistyped metadata never raises
    - Deterministic: Same inputs always produce same results
    - Complete: Every rule is evaluated, every match reported
"""

from policycard.policy.engine import PolicyEngine, evaluate_policy_card
from policycard.policy.escalation import (
    evaluate_trigger,
    evaluate_triggers,
    parse_trigger_expression,
)
from policycard.policy.loader import (
    LoadResult,
    ValidationIssue,
    load_policy_card,
    load_policy_card_data,
    load_policy_card_from_string,
    parse_policy_card,
)

__all__ = [
    "LoadResult",
    "PolicyEngine",
    "ValidationIssue",
    "evaluate_policy_card",
    "evaluate_trigger",
    "evaluate_triggers",
    "load_policy_card",
    "load_policy_card_data",
    "load_policy_card_from_string",
    "parse_policy_card",
]
