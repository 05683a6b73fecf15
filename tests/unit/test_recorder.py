"""
Unit tests for the audit recorder.

Tests cover:
- Evidence is appended with 1-based sequence numbers
- Entries are immutable and snapshots are independent of later appends
- Context is copied at record time
- Concurrent recording yields a gap-free sequence
"""

import threading
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

import pytest
from pydantic import ValidationError

from policycard.audit import PolicyCardAuditor
from policycard.audit.hashing import compute_hash
from policycard.schema import PolicyCard


class TestEvaluateAndRecord:
    """Tests for evaluate_and_record()."""

    def test_returns_evaluation_and_evidence(
        self,
        sample_policy: PolicyCard,
        us_healthcare_metadata: dict[str, Any],
        fixed_clock: Callable[[], datetime],
    ) -> None:
        auditor = PolicyCardAuditor(sample_policy, audit_id="audit-1", clock=fixed_clock)
        recorded = auditor.evaluate_and_record("clinical_analyzer", us_healthcare_metadata)

        assert recorded.evaluation.compliant is False
        assert recorded.evidence.evaluation == recorded.evaluation
        assert recorded.evidence.sequence == 1
        assert recorded.evidence.capability_name == "clinical_analyzer"
        assert recorded.evidence.metadata_hash == compute_hash(us_healthcare_metadata)
        assert recorded.evidence.timestamp == datetime(2026, 1, 12, 9, 0, 0, tzinfo=UTC)

    def test_sequence_numbers_increase(
        self,
        sample_policy: PolicyCard,
        eu_banking_metadata: dict[str, Any],
    ) -> None:
        auditor = PolicyCardAuditor(sample_policy)
        for name in ("a", "b", "c"):
            auditor.evaluate_and_record(name, eu_banking_metadata)

        assert len(auditor) == 3
        assert [e.sequence for e in auditor.evidence] == [1, 2, 3]
        assert [e.capability_name for e in auditor.evidence] == ["a", "b", "c"]

    def test_timestamps_from_clock(
        self,
        sample_policy: PolicyCard,
        eu_banking_metadata: dict[str, Any],
        fixed_clock: Callable[[], datetime],
    ) -> None:
        auditor = PolicyCardAuditor(sample_policy, clock=fixed_clock)
        first = auditor.evaluate_and_record("a", eu_banking_metadata).evidence
        second = auditor.evaluate_and_record("b", eu_banking_metadata).evidence
        assert first.timestamp < second.timestamp
        assert first.timestamp.tzinfo is not None

    def test_audit_id_generated_once(self, sample_policy: PolicyCard) -> None:
        auditor = PolicyCardAuditor(sample_policy)
        assert auditor.audit_id
        assert PolicyCardAuditor(sample_policy).audit_id != auditor.audit_id

    def test_context_is_copied(
        self,
        sample_policy: PolicyCard,
        eu_banking_metadata: dict[str, Any],
    ) -> None:
        auditor = PolicyCardAuditor(sample_policy)
        context = {"amount": 50, "tags": ["x"]}
        evidence = auditor.evaluate_and_record("a", eu_banking_metadata, context=context).evidence

        context["amount"] = 99999
        context["tags"].append("y")
        assert evidence.context == {"amount": 50, "tags": ["x"]}

    def test_no_context_recorded_as_none(
        self,
        sample_policy: PolicyCard,
        eu_banking_metadata: dict[str, Any],
    ) -> None:
        auditor = PolicyCardAuditor(sample_policy)
        evidence = auditor.evaluate_and_record("a", eu_banking_metadata).evidence
        assert evidence.context is None


class TestEvidenceLog:
    """Tests for the append-only evidence log."""

    def test_entries_are_immutable(
        self,
        sample_policy: PolicyCard,
        eu_banking_metadata: dict[str, Any],
    ) -> None:
        auditor = PolicyCardAuditor(sample_policy)
        evidence = auditor.evaluate_and_record("a", eu_banking_metadata).evidence
        with pytest.raises(ValidationError):
            evidence.capability_name = "renamed"

    def test_snapshot_not_affected_by_later_appends(
        self,
        sample_policy: PolicyCard,
        eu_banking_metadata: dict[str, Any],
    ) -> None:
        auditor = PolicyCardAuditor(sample_policy)
        auditor.evaluate_and_record("a", eu_banking_metadata)
        snapshot = auditor.evidence
        auditor.evaluate_and_record("b", eu_banking_metadata)

        assert len(snapshot) == 1
        assert len(auditor.evidence) == 2

    def test_report_does_not_clear_log(
        self,
        sample_policy: PolicyCard,
        eu_banking_metadata: dict[str, Any],
    ) -> None:
        auditor = PolicyCardAuditor(sample_policy)
        auditor.evaluate_and_record("a", eu_banking_metadata)
        auditor.generate_report()
        auditor.evaluate_and_record("b", eu_banking_metadata)
        assert auditor.generate_report().summary.total == 2

    def test_concurrent_recording(
        self,
        sample_policy: PolicyCard,
        eu_banking_metadata: dict[str, Any],
        us_healthcare_metadata: dict[str, Any],
    ) -> None:
        """Every entry gets a distinct sequence with no gaps."""
        auditor = PolicyCardAuditor(sample_policy)
        per_thread = 25
        barrier = threading.Barrier(8)

        def worker(index: int) -> None:
            barrier.wait()
            metadata = eu_banking_metadata if index % 2 else us_healthcare_metadata
            for n in range(per_thread):
                auditor.evaluate_and_record(f"tool-{index}-{n}", metadata)

        threads = [threading.Thread(target=worker, args=(i,)) for i in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        evidence = auditor.evidence
        assert len(evidence) == 8 * per_thread
        assert [e.sequence for e in evidence] == list(range(1, 8 * per_thread + 1))
        assert len({e.capability_name for e in evidence}) == 8 * per_thread


class TestNonStringKeys:
    """Tests for records and contexts with non-string keys."""

    def test_metadata_with_mixed_keys(self, sample_policy: PolicyCard) -> None:
        auditor = PolicyCardAuditor(sample_policy)
        recorded = auditor.evaluate_and_record("t", {"processing_locations": ["DE"], 2024: "x"})
        assert recorded.evidence.metadata_hash.startswith("sha256:")
        assert len(auditor) == 1

    def test_context_keys_stored_as_strings(
        self,
        sample_policy: PolicyCard,
        eu_banking_metadata: dict[str, Any],
    ) -> None:
        auditor = PolicyCardAuditor(sample_policy)
        evidence = auditor.evaluate_and_record(
            "t", eu_banking_metadata, context={"amount": 20000, 1: {2: "x"}}
        ).evidence
        assert evidence.context == {"amount": 20000, "1": {"2": "x"}}
        assert auditor.generate_report().summary.escalated == 1
