"""
Canonical serialization and hashing for the audit trail.

Evidence hash chain:

    h0 = sha256(policy_name + audit_id)
    hi = sha256(h(i-1) + serialize(evidence_i))
    evidence_hash = "sha256:" + hn

Inputs are UTF-8 encoded; intermediate values are lowercase hex digests
without prefix. ``serialize`` is the canonical JSON form of the evidence:
sorted keys, no insignificant whitespace, non-ASCII kept as-is, datetimes
in ISO 8601. Mapping keys are rendered with str() first, so 2024 and
"2024" hash alike. Because each step folds in the previous digest, reordering,
inserting or deleting an earlier entry changes every later digest.
"""

import hashlib
import json
import uuid
from collections.abc import Iterable, Mapping
from typing import Any

from policycard.schema import AuditEvidence

HASH_ALGORITHM = "sha256"
HASH_PREFIX = f"{HASH_ALGORITHM}:"


def generate_id() -> str:
    """Generate a unique identifier for an audit period."""
    return str(uuid.uuid4())


def normalize_keys(data: Any) -> Any:
    """
    Recursively turn mapping keys into strings.

    YAML can produce ``{2024: ..., "name": ...}``; JSON object keys are
    strings, and sorting mixed key types raises. Lists and tuples are
    walked, other values are returned as-is.
    """
    if isinstance(data, Mapping):
        return {str(key): normalize_keys(value) for key, value in data.items()}
    if isinstance(data, (list, tuple)):
        return [normalize_keys(item) for item in data]
    return data


def canonical_json(data: Any) -> str:
    """Serialize data to canonical JSON text (keys normalized to strings)."""
    return json.dumps(
        normalize_keys(data),
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        default=str,
    )


def sha256_hex(text: str) -> str:
    """SHA256 hex digest of UTF-8 text."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def with_prefix(digest: str) -> str:
    """Render a hex digest with its algorithm prefix."""
    return HASH_PREFIX + digest


def compute_hash(data: Any) -> str:
    """Fingerprint arbitrary JSON-like data (e.g. compliance metadata)."""
    return with_prefix(sha256_hex(canonical_json(data)))


def serialize_evidence(evidence: AuditEvidence) -> str:
    """Canonical serialization of one evidence entry."""
    return canonical_json(evidence.model_dump(mode="json"))


def chain_seed(policy_name: str, audit_id: str) -> str:
    """First link of the evidence chain."""
    return sha256_hex(policy_name + audit_id)


def chain_step(previous: str, evidence: AuditEvidence) -> str:
    """Fold one evidence entry into the chain."""
    return sha256_hex(previous + serialize_evidence(evidence))


def compute_evidence_chain(
    policy_name: str,
    audit_id: str,
    evidence: Iterable[AuditEvidence],
) -> list[str]:
    """
    Compute every link of the evidence chain.

    Returns:
        [h0, h1, ..., hn] as hex digests; len == number of entries + 1
    """
    chain = [chain_seed(policy_name, audit_id)]
    for entry in evidence:
        chain.append(chain_step(chain[-1], entry))
    return chain


def compute_evidence_hash(
    policy_name: str,
    audit_id: str,
    evidence: Iterable[AuditEvidence],
) -> str:
    """Final chained digest, rendered as ``sha256:<hex>``."""
    return with_prefix(compute_evidence_chain(policy_name, audit_id, evidence)[-1])
