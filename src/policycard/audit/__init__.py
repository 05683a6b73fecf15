"""
Audit module for policycard.

Records every evaluation as append-only evidence and aggregates the
evidence into reports with a chained SHA256 hash.

Example:
    from policycard.audit import PolicyCardAuditor, verify_report

    auditor = PolicyCardAuditor(policy_card)
    auditor.evaluate_and_record("document_scanner", metadata)
    report = auditor.generate_report()
    assert verify_report(report)
"""

from policycard.audit.hashing import compute_evidence_chain, compute_evidence_hash
from policycard.audit.recorder import PolicyCardAuditor, RecordedEvaluation
from policycard.audit.report import classify_kpi, generate_report, verify_report

__all__ = [
    "PolicyCardAuditor",
    "RecordedEvaluation",
    "classify_kpi",
    "compute_evidence_chain",
    "compute_evidence_hash",
    "generate_report",
    "verify_report",
]
