"""
Capability discovery helpers.

Tool servers advertise compliance metadata by appending a JSON blob to each
tool's free-text description:

    Processes payments within the EU.

    [PEC_COMPLIANCE:{"processing_locations": ["DE", "IE"], ...}]

This module extracts that blob, and partitions discovered capabilities into
compliant and rejected sets under a policy card. The transport that
produces (name, description) pairs is the caller's concern.
"""

import json
import logging
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from policycard.audit import PolicyCardAuditor
from policycard.errors import MetadataParseError
from policycard.policy import PolicyEngine
from policycard.schema import PolicyCard

logger = logging.getLogger(__name__)

COMPLIANCE_MARKER = "PEC_COMPLIANCE"

_METADATA_RE = re.compile(
    r"\[" + COMPLIANCE_MARKER + r":(\{.*\})\]\s*$",
    re.DOTALL,
)


@dataclass(frozen=True)
class DiscoveredCapability:
    """
    A tool that advertised compliance metadata.

    Attributes:
        name: Tool name (namespace removed)
        description: Human description with the metadata blob removed
        compliance: The decoded compliance metadata
    """

    name: str
    description: str
    compliance: dict[str, Any]


@dataclass(frozen=True)
class RejectedCapability:
    """A capability that failed policy evaluation, with violation reasons."""

    capability: DiscoveredCapability
    violations: list[str]


@dataclass
class FilterResult:
    """Capabilities partitioned by a policy card."""

    compliant: list[DiscoveredCapability] = field(default_factory=list)
    rejected: list[RejectedCapability] = field(default_factory=list)


def embed_compliance_metadata(description: str, metadata: Mapping[str, Any]) -> str:
    """Append a compliance metadata blob to a tool description."""
    blob = json.dumps(dict(metadata), separators=(",", ":"), ensure_ascii=False)
    return f"{description}\n\n[{COMPLIANCE_MARKER}:{blob}]"


def extract_compliance_metadata(
    description: str,
    capability_name: str = "",
    strict: bool = False,
) -> dict[str, Any] | None:
    """
    Decode the compliance metadata blob at the end of a description.

    Args:
        description: Tool description text
        capability_name: Tool name, for error messages
        strict: Raise on a malformed blob instead of returning None

    Returns:
        The metadata dict, or None if there is no (valid) blob

    Raises:
        MetadataParseError: Malformed blob, when strict is True
    """
    match = _METADATA_RE.search(description or "")
    if match is None:
        return None

    try:
        metadata = json.loads(match.group(1))
    except json.JSONDecodeError as e:
        if strict:
            raise MetadataParseError(
                capability_name=capability_name,
                underlying_error=str(e),
            ) from e
        logger.warning("Ignoring malformed compliance metadata on %s: %s", capability_name, e)
        return None

    if not isinstance(metadata, dict):
        if strict:
            raise MetadataParseError(
                capability_name=capability_name,
                underlying_error=f"expected a JSON object, got {type(metadata).__name__}",
            )
        return None
    return metadata


def strip_compliance_metadata(description: str) -> str:
    """Remove the compliance metadata blob from a description."""
    return _METADATA_RE.sub("", description or "").strip()


def discover_capabilities(
    tools: Mapping[str, str] | Iterable[tuple[str, str]],
    namespace: str | None = None,
    strict: bool = False,
) -> list[DiscoveredCapability]:
    """
    Build capabilities from (name, description) pairs.

    Tools without a compliance blob are skipped. Names are kept exactly as
    given unless ``namespace`` is set, and then only that prefix is removed:
    there is no guessing of a server prefix from the first underscore, so a
    bare ``eu_payment_processor`` keeps its name.

    Args:
        tools: Mapping or pairs of tool name -> description
        namespace: Server namespace to strip from names ("srv" strips "srv_")
        strict: Raise on malformed blobs

    Returns:
        Discovered capabilities in input order
    """
    items = tools.items() if isinstance(tools, Mapping) else tools
    prefix = f"{namespace}_" if namespace else ""

    capabilities: list[DiscoveredCapability] = []
    for tool_name, description in items:
        name = tool_name[len(prefix):] if prefix and tool_name.startswith(prefix) else tool_name
        compliance = extract_compliance_metadata(description, name, strict=strict)
        if compliance is None:
            logger.debug("Skipping %s: no compliance metadata", tool_name)
            continue
        capabilities.append(
            DiscoveredCapability(
                name=name,
                description=strip_compliance_metadata(description),
                compliance=compliance,
            )
        )
    return capabilities


def filter_capabilities(
    capabilities: Iterable[DiscoveredCapability],
    policy_card: PolicyCard,
    auditor: PolicyCardAuditor | None = None,
) -> FilterResult:
    """
    Partition capabilities into compliant and rejected.

    When an auditor is given, every evaluation is recorded as evidence.

    Args:
        capabilities: Capabilities to evaluate
        policy_card: The policy card to evaluate against
        auditor: Optional auditor to record evaluations with

    Returns:
        FilterResult
    """
    engine = PolicyEngine(policy_card)
    result = FilterResult()

    for capability in capabilities:
        if auditor is not None:
            evaluation = auditor.evaluate_and_record(capability.name, capability.compliance).evaluation
        else:
            evaluation = engine.evaluate(capability.compliance, capability.name)

        if evaluation.compliant:
            result.compliant.append(capability)
        else:
            result.rejected.append(
                RejectedCapability(
                    capability=capability,
                    violations=[v.reason for v in evaluation.violations],
                )
            )
    return result
