"""
Audit report generation.

Aggregates recorded evidence into an AuditReport:

    1. Summary counts (total, compliant, rejected, warned, escalated)
    2. KPI classification against the policy card's thresholds
    3. Assurance coverage copied from the policy card
    4. The chained evidence hash (see policycard.audit.hashing)

KPI bands, from best to worst:

    pass      value >= target
    warn      critical_threshold <= value < target
    critical  value < critical_threshold
    fail      value < target and no critical_threshold is set

Every recognized metric is a rate in [0, 1] where higher is better. With
no evidence the denominator is zero and every rate is 0.
"""

import logging
from collections.abc import Callable, Sequence
from datetime import UTC, datetime

from policycard.audit.hashing import compute_evidence_hash
from policycard.errors import ReportIntegrityError
from policycard.policy.escalation import evaluate_triggers
from policycard.schema import (
    AuditEvidence,
    AuditReport,
    AuditSummary,
    KpiResult,
    KpiStatus,
    KpiThreshold,
    PolicyCard,
)

logger = logging.getLogger(__name__)

UNRECOGNIZED_METRIC_NOTE = "unrecognized metric"
NO_EVIDENCE_NOTE = "no evaluations recorded"


def _rate(count: int, total: int) -> float:
    if total == 0:
        return 0.0
    return count / total


METRICS: dict[str, Callable[[AuditSummary], float]] = {
    "compliance_rate": lambda s: _rate(s.compliant, s.total),
    "warning_free_rate": lambda s: _rate(s.total - s.warned, s.total),
    "escalation_free_rate": lambda s: _rate(s.total - s.escalated, s.total),
}


# =============================================================================
# Summary
# =============================================================================


def is_escalated(policy_card: PolicyCard, evidence: AuditEvidence) -> bool:
    """Whether any escalation trigger fires for this evidence's context."""
    if evidence.context is None:
        return False
    return bool(evaluate_triggers(policy_card.triggers, evidence.context))


def build_summary(
    policy_card: PolicyCard,
    evidence: Sequence[AuditEvidence],
) -> AuditSummary:
    """Count evidence by outcome."""
    total = len(evidence)
    compliant = sum(1 for e in evidence if e.evaluation.compliant)
    warned = sum(1 for e in evidence if e.evaluation.warnings)
    escalated = sum(1 for e in evidence if is_escalated(policy_card, e))
    return AuditSummary(
        total=total,
        compliant=compliant,
        rejected=total - compliant,
        warned=warned,
        escalated=escalated,
    )


# =============================================================================
# KPI Classification
# =============================================================================


def classify_kpi(
    threshold: KpiThreshold,
    value: float,
    total: int,
) -> tuple[KpiStatus, str | None]:
    """
    Place a metric value in its health band.

    Args:
        threshold: Target and optional critical threshold
        value: Current metric value
        total: Number of evaluations behind the value

    Returns:
        (status, note)
    """
    if value >= threshold.target:
        return KpiStatus.PASS, None
    if threshold.critical_threshold is None:
        return KpiStatus.FAIL, None
    if value >= threshold.critical_threshold:
        return KpiStatus.WARN, None
    if total == 0:
        return KpiStatus.FAIL, NO_EVIDENCE_NOTE
    return KpiStatus.CRITICAL, None


def evaluate_kpi(threshold: KpiThreshold, summary: AuditSummary) -> KpiResult:
    """Compute and classify one KPI."""
    metric_fn = METRICS.get(threshold.metric)
    if metric_fn is None:
        logger.warning("KPI metric %r is not recognized", threshold.metric)
        return KpiResult(
            metric=threshold.metric,
            value=None,
            target=threshold.target,
            critical_threshold=threshold.critical_threshold,
            status=KpiStatus.FAIL,
            note=UNRECOGNIZED_METRIC_NOTE,
        )

    value = metric_fn(summary)
    status, note = classify_kpi(threshold, value, summary.total)
    return KpiResult(
        metric=threshold.metric,
        value=value,
        target=threshold.target,
        critical_threshold=threshold.critical_threshold,
        status=status,
        note=note,
    )


# =============================================================================
# Report
# =============================================================================


def generate_report(
    policy_card: PolicyCard,
    evidence: Sequence[AuditEvidence],
    audit_id: str,
    period_start: datetime | None = None,
    period_end: datetime | None = None,
    now: datetime | None = None,
) -> AuditReport:
    """
    Build an audit report over a snapshot of evidence.

    Args:
        policy_card: The policy card the evidence was evaluated against
        evidence: Evidence entries in log order
        audit_id: Identifier of the reporting period
        period_start: Explicit window start (defaults to first evidence)
        period_end: Explicit window end (defaults to last evidence)
        now: Generation time (defaults to the current UTC time)

    Returns:
        AuditReport
    """
    generated_at = now or datetime.now(UTC)
    evidence = list(evidence)

    if period_start is None:
        period_start = evidence[0].timestamp if evidence else generated_at
    if period_end is None:
        period_end = evidence[-1].timestamp if evidence else generated_at

    summary = build_summary(policy_card, evidence)
    kpi_results = [evaluate_kpi(t, summary) for t in policy_card.thresholds]
    evidence_hash = compute_evidence_hash(policy_card.name, audit_id, evidence)

    logger.info(
        "Generated report %s for %s: %d evaluations, %d rejected, hash %s",
        audit_id,
        policy_card.name,
        summary.total,
        summary.rejected,
        evidence_hash[:19],
    )

    return AuditReport(
        audit_id=audit_id,
        policy_name=policy_card.name,
        generated_at=generated_at,
        period_start=period_start,
        period_end=period_end,
        summary=summary,
        kpi_results=kpi_results,
        assurance_coverage={
            framework: list(controls)
            for framework, controls in policy_card.assurance_mapping.items()
        },
        evidence=evidence,
        evidence_hash=evidence_hash,
    )


def verify_report(report: AuditReport, strict: bool = False) -> bool:
    """
    Recompute a report's evidence hash and compare it to the recorded one.

    Args:
        report: The report to verify
        strict: Raise instead of returning False on mismatch

    Returns:
        True if the recorded hash matches the evidence

    Raises:
        ReportIntegrityError: On mismatch, when strict is True
    """
    actual = compute_evidence_hash(report.policy_name, report.audit_id, report.evidence)
    if actual == report.evidence_hash:
        return True
    if strict:
        raise ReportIntegrityError(
            audit_id=report.audit_id,
            expected_hash=report.evidence_hash,
            actual_hash=actual,
        )
    return False
