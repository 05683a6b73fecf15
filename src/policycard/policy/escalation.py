"""
Escalation trigger evaluation.

Escalation triggers are free-text conditions such as ``amount > 10000``.
They are limited to a single comparison:

    <identifier> <op> <numeric-literal>      op in > < >= <= == !=

The text is parsed once when the policy card is built. At evaluation time
the identifier is looked up in a runtime context supplied by the caller
(e.g. transaction attributes), independent of compliance metadata.

Fail-closed: a trigger that cannot be parsed, whose identifier is missing
from the context, or whose context value is not numeric evaluates to False.
It never raises and never escalates silently.
"""

import logging
import math
import operator
import re
from collections.abc import Callable, Iterable, Mapping
from typing import Any

from policycard.conditions.resolver import ABSENT, resolve
from policycard.schema import Comparator, EscalationTrigger, TriggerExpression

logger = logging.getLogger(__name__)

# Two-character comparators first so ">=" is not split as ">"
_COMPARATOR_TOKENS = (
    Comparator.GE,
    Comparator.LE,
    Comparator.EQ,
    Comparator.NE,
    Comparator.GT,
    Comparator.LT,
)

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z_][A-Za-z0-9_]*)*$")

_COMPARE: dict[Comparator, Callable[[float, float], bool]] = {
    Comparator.GT: operator.gt,
    Comparator.LT: operator.lt,
    Comparator.GE: operator.ge,
    Comparator.LE: operator.le,
    Comparator.EQ: operator.eq,
    Comparator.NE: operator.ne,
}


def parse_trigger_expression(text: str) -> TriggerExpression | None:
    """
    Parse a single-comparison trigger expression.

    Examples:
        "amount > 10000"       -> (amount, >, 10000.0)
        "risk.score >= 0.8"    -> (risk.score, >=, 0.8)
        "amount > limit"       -> None (literal is not a number)
        "a > 1 and b < 2"      -> None (not a single comparison)

    Args:
        text: The expression text

    Returns:
        TriggerExpression, or None if the text does not fit the grammar
    """
    for comparator in _COMPARATOR_TOKENS:
        token = comparator.value
        if token not in text:
            continue

        left, _, right = text.partition(token)
        identifier = left.strip()
        if not _IDENTIFIER_RE.match(identifier):
            return None

        try:
            literal = float(right.strip())
        except ValueError:
            return None
        if not math.isfinite(literal):
            return None

        return TriggerExpression(
            identifier=identifier,
            comparator=comparator,
            literal=literal,
        )

    return None


def _lookup(context: Mapping[str, Any], identifier: str) -> Any:
    """Flat key first, then a dotted path through nested mappings."""
    if identifier in context:
        return context[identifier]
    return resolve(context, identifier)


def evaluate_expression(
    expression: TriggerExpression,
    context: Mapping[str, Any],
) -> bool:
    """Evaluate a parsed expression against a runtime context."""
    value = _lookup(context, expression.identifier)
    if value is ABSENT:
        return False
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return _COMPARE[expression.comparator](value, expression.literal)


def evaluate_trigger(
    trigger: EscalationTrigger,
    context: Mapping[str, Any] | None,
) -> bool:
    """
    Evaluate an escalation trigger against a runtime context.

    Args:
        trigger: The trigger from the policy card
        context: Variable name -> value mapping (may be None)

    Returns:
        True if the trigger fires, False otherwise (including when it
        cannot be evaluated)
    """
    if trigger.expression is None:
        logger.warning(
            "Escalation trigger %r is not a single comparison; treating as not fired",
            trigger.condition,
        )
        return False
    if not context:
        return False
    return evaluate_expression(trigger.expression, context)


def evaluate_triggers(
    triggers: Iterable[EscalationTrigger],
    context: Mapping[str, Any] | None,
) -> list[EscalationTrigger]:
    """Return the triggers that fire for the given context, in order."""
    return [t for t in triggers if evaluate_trigger(t, context)]
