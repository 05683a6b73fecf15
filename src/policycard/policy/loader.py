"""
Policy card loading and validation.

Turns a decoded policy document (a mapping of mappings, lists and scalars)
into a validated PolicyCard. Validation is all-or-nothing: either a complete
PolicyCard is returned, or the full list of problems found. Callers never
see a partially loaded card.

Checks performed:
    - Required top-level keys: policy_card_version, name, scope, rules
    - Each rule has id, effect, condition and reason
    - effect is deny or warn
    - Rule ids are unique
    - Each condition has field and a known operator
    - The operand fits the operator (list, scalar, number or none)
    - KPI critical thresholds are not above their target

The YAML helpers at the bottom are conveniences for callers that keep
policy cards as YAML files; the core entry point is load_policy_card_data().
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from policycard.errors import PolicyCardNotFoundError, PolicyCardValidationError
from policycard.schema import (
    PolicyCard,
    duplicate_rule_ids_message,
    find_duplicate_rule_ids,
)

logger = logging.getLogger(__name__)

DOCUMENT_LOCATION = "<document>"


@dataclass(frozen=True)
class ValidationIssue:
    """
    One problem found while validating a policy card.

    Attributes:
        location: Dotted location in the document (e.g. "rules.0.effect")
        message: What is wrong
    """

    location: str
    message: str

    def __str__(self) -> str:
        return f"{self.location}: {self.message}" if self.location else self.message


@dataclass
class LoadResult:
    """
    Outcome of loading a policy card.

    Exactly one of policy_card / errors is populated.

    Attributes:
        policy_card: The validated card, if loading succeeded
        errors: Every validation issue found, if it failed
    """

    policy_card: PolicyCard | None = None
    errors: list[ValidationIssue] = field(default_factory=list)

    @property
    def success(self) -> bool:
        """Whether the card loaded without issues."""
        return self.policy_card is not None and not self.errors

    def unwrap(self) -> PolicyCard:
        """
        Return the policy card or raise.

        Raises:
            PolicyCardValidationError: If loading failed
        """
        if self.policy_card is None or self.errors:
            raise PolicyCardValidationError(
                issues=[(issue.location, issue.message) for issue in self.errors]
            )
        return self.policy_card


def _location(loc: tuple[Any, ...]) -> str:
    return ".".join(str(part) for part in loc)


def _message(error: dict[str, Any]) -> str:
    msg = str(error.get("msg", "invalid value"))
    prefix = "Value error, "
    if msg.startswith(prefix):
        msg = msg[len(prefix):]
    return msg


def _scan_duplicate_rule_ids(data: Mapping[str, Any]) -> list[ValidationIssue]:
    """Find duplicate ids directly in the raw rules list."""
    rules = data.get("rules")
    if not isinstance(rules, list):
        return []
    rule_ids = [
        rule["id"]
        for rule in rules
        if isinstance(rule, Mapping) and isinstance(rule.get("id"), str) and rule["id"]
    ]
    duplicates = find_duplicate_rule_ids(rule_ids)
    if not duplicates:
        return []
    return [ValidationIssue("rules", duplicate_rule_ids_message(duplicates))]


def load_policy_card_data(data: Any) -> LoadResult:
    """
    Validate a decoded policy document and build a PolicyCard.

    Args:
        data: The decoded document (normally a dict)

    Returns:
        LoadResult with either the card or every issue found
    """
    if not isinstance(data, Mapping):
        return LoadResult(
            errors=[
                ValidationIssue(
                    DOCUMENT_LOCATION,
                    f"Policy card must be a mapping, got {type(data).__name__}",
                )
            ]
        )

    # Duplicate ids are scanned up front: the model-level check only runs
    # once every field is valid, and we want all issues in one pass.
    issues = _scan_duplicate_rule_ids(data)

    try:
        policy_card = PolicyCard.model_validate(dict(data))
    except ValidationError as e:
        for error in e.errors():
            issue = ValidationIssue(_location(error.get("loc", ())), _message(error))
            if not issue.location and any(i.message == issue.message for i in issues):
                continue
            issues.append(issue)
        logger.info("Policy card failed validation with %d issue(s)", len(issues))
        return LoadResult(errors=issues)

    if issues:
        return LoadResult(errors=issues)

    for trigger in policy_card.triggers:
        if trigger.expression is None:
            logger.warning(
                "Escalation trigger %r in %s is not a single comparison and will never fire",
                trigger.condition,
                policy_card.name,
            )

    logger.info(
        "Loaded policy card %s (version %s, %d rules)",
        policy_card.name,
        policy_card.policy_card_version,
        len(policy_card.rules),
    )
    return LoadResult(policy_card=policy_card)


# =============================================================================
# YAML Loading Helpers
# =============================================================================


def parse_policy_card(content: str | bytes) -> LoadResult:
    """
    Decode YAML text and validate it as a policy card.

    YAML syntax errors are reported as a single issue.
    """
    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        return LoadResult(
            errors=[ValidationIssue(DOCUMENT_LOCATION, f"Invalid YAML: {e}")]
        )
    return load_policy_card_data(data)


def load_policy_card_from_string(content: str | bytes) -> PolicyCard:
    """
    Load a policy card from a YAML string.

    Raises:
        PolicyCardValidationError: If the card is invalid
    """
    return parse_policy_card(content).unwrap()


def load_policy_card(path: Path | str) -> PolicyCard:
    """
    Load a policy card from a YAML file.

    Args:
        path: Path to the YAML file

    Returns:
        Validated PolicyCard

    Raises:
        PolicyCardNotFoundError: If the file doesn't exist
        PolicyCardValidationError: If the card is invalid
    """
    path = Path(path)
    if not path.is_file():
        raise PolicyCardNotFoundError(path=str(path))
    with path.open("rb") as f:
        content = f.read()
    return load_policy_card_from_string(content)
