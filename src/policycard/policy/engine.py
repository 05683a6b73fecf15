"""
Rule Engine for policycard.

Evaluates a capability's compliance metadata against the ordered rule set
of a policy card.

Design Principles:
    - Every rule is evaluated: no short-circuit on the first deny
    - Rules are independent, pure predicates over the same metadata
    - Document order is kept in the output for readable reports
    - Deterministic: same (policy card, metadata) -> same result

How it works:
    1. For each rule, resolve its condition's field in the metadata
    2. Apply the condition's operator
    3. Matched deny rule -> Violation, matched warn rule -> RuleWarning
    4. compliant is true exactly when there are no violations
"""

import logging
from collections.abc import Mapping
from typing import Any

from policycard.conditions import evaluate_condition
from policycard.schema import (
    Effect,
    EvaluationResult,
    PolicyCard,
    RuleWarning,
    Violation,
)

logger = logging.getLogger(__name__)


class PolicyEngine:
    """
    Evaluates compliance metadata against a policy card.

    The engine holds no mutable state, so one instance can be shared
    across threads.

    Usage:
        engine = PolicyEngine(policy_card)
        result = engine.evaluate(metadata, "eu_payment_processor")
        if not result.compliant:
            for violation in result.violations:
                print(violation.rule_id, violation.reason)

    Attributes:
        policy_card: The policy card to enforce
    """

    def __init__(self, policy_card: PolicyCard) -> None:
        self.policy_card = policy_card

    def evaluate(
        self,
        metadata: Mapping[str, Any],
        capability_name: str = "",
    ) -> EvaluationResult:
        """
        Evaluate one capability's compliance metadata.

        Args:
            metadata: Open compliance metadata record
            capability_name: Name of the capability being evaluated

        Returns:
            EvaluationResult with violations and warnings in rule order
        """
        if not isinstance(metadata, Mapping):
            # Nothing resolves; rules still run so not_* operators can match
            metadata = {}

        violations: list[Violation] = []
        warnings: list[RuleWarning] = []

        for rule in self.policy_card.rules:
            if not evaluate_condition(rule.condition, metadata):
                continue
            if rule.effect == Effect.DENY:
                violations.append(Violation(rule_id=rule.id, reason=rule.reason))
            else:
                warnings.append(RuleWarning(rule_id=rule.id, reason=rule.reason))

        result = EvaluationResult.from_matches(capability_name, violations, warnings)
        logger.debug(
            "Evaluated %s against %s: compliant=%s violations=%d warnings=%d",
            capability_name or "<unnamed>",
            self.policy_card.name,
            result.compliant,
            len(violations),
            len(warnings),
        )
        return result


def evaluate_policy_card(
    policy_card: PolicyCard,
    metadata: Mapping[str, Any],
    capability_name: str = "",
) -> EvaluationResult:
    """Evaluate metadata against a policy card without keeping an engine."""
    return PolicyEngine(policy_card).evaluate(metadata, capability_name)
