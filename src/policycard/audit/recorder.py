"""
Audit recorder for policycard.

The auditor evaluates capabilities against a policy card and keeps an
append-only log of evidence, one entry per evaluation, for one reporting
period.

Design Principles:
    - Append-only: No operation removes or rewrites an entry
    - Sequenced: Entries are numbered 1, 2, 3, ... in append order
    - Fingerprinted: Each entry carries a hash of the metadata it judged
    - Thread-safe: Sequence assignment and append happen under one lock

Evaluation itself runs outside the lock; it touches no shared state.
"""

import copy
import logging
import threading
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from policycard.audit.hashing import compute_hash, generate_id, normalize_keys
from policycard.audit.report import generate_report
from policycard.policy import PolicyEngine
from policycard.schema import (
    AuditEvidence,
    AuditReport,
    EvaluationResult,
    PolicyCard,
)

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True)
class RecordedEvaluation:
    """
    What evaluate_and_record() returns.

    Attributes:
        evaluation: The evaluation outcome
        evidence: The evidence entry appended to the log
    """

    evaluation: EvaluationResult
    evidence: AuditEvidence


class PolicyCardAuditor:
    """
    Records every evaluation against a policy card as audit evidence.

    Usage:
        auditor = PolicyCardAuditor(policy_card)
        recorded = auditor.evaluate_and_record("eu_payment_processor", metadata)
        if recorded.evaluation.compliant:
            ...
        report = auditor.generate_report()

    Attributes:
        policy_card: The policy card evaluated against
        audit_id: Identifier of this reporting period
        engine: Rule engine used for evaluations
    """

    def __init__(
        self,
        policy_card: PolicyCard,
        audit_id: str | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """
        Initialize the auditor.

        Args:
            policy_card: The policy card to evaluate against
            audit_id: Identifier for the reporting period (generated if None)
            clock: Returns the current UTC time (defaults to datetime.now)
        """
        self.policy_card = policy_card
        self.audit_id = audit_id or generate_id()
        self.engine = PolicyEngine(policy_card)
        self._clock = clock or _utc_now
        self._evidence: list[AuditEvidence] = []
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._evidence)

    @property
    def evidence(self) -> tuple[AuditEvidence, ...]:
        """Snapshot of the evidence log."""
        with self._lock:
            return tuple(self._evidence)

    def evaluate_and_record(
        self,
        capability_name: str,
        metadata: Mapping[str, Any],
        context: Mapping[str, Any] | None = None,
    ) -> RecordedEvaluation:
        """
        Evaluate a capability and append the result to the log.

        Args:
            capability_name: Name of the capability
            metadata: Its compliance metadata
            context: Runtime values for escalation triggers (optional). It is
                copied, and its keys are stored as strings

        Returns:
            RecordedEvaluation with the evaluation and its evidence entry
        """
        evaluation = self.engine.evaluate(metadata, capability_name)
        metadata_hash = compute_hash(metadata)
        context_copy = (
            normalize_keys(copy.deepcopy(dict(context))) if context is not None else None
        )

        with self._lock:
            evidence = AuditEvidence(
                sequence=len(self._evidence) + 1,
                capability_name=capability_name,
                timestamp=self._clock(),
                evaluation=evaluation,
                metadata_hash=metadata_hash,
                context=context_copy,
            )
            self._evidence.append(evidence)

        logger.debug(
            "Recorded evidence #%d for %s (compliant=%s)",
            evidence.sequence,
            capability_name,
            evaluation.compliant,
        )
        return RecordedEvaluation(evaluation=evaluation, evidence=evidence)

    def generate_report(
        self,
        period_start: datetime | None = None,
        period_end: datetime | None = None,
        audit_id: str | None = None,
    ) -> AuditReport:
        """
        Build a report over the evidence recorded so far.

        The log is not cleared; later reports include everything earlier
        ones did, with identical chain links for the shared prefix.

        Args:
            period_start: Explicit start of the reporting window
            period_end: Explicit end of the reporting window
            audit_id: Override the auditor's audit id

        Returns:
            AuditReport
        """
        return generate_report(
            self.policy_card,
            self.evidence,
            audit_id=audit_id or self.audit_id,
            period_start=period_start,
            period_end=period_end,
            now=self._clock(),
        )
