"""
End-to-end tests: discover tools, filter them under a policy card, record
evidence and verify the resulting report.
"""

from pathlib import Path
from typing import Any

import pytest

from policycard.audit import PolicyCardAuditor, compute_evidence_chain, verify_report
from policycard.discovery import (
    discover_capabilities,
    embed_compliance_metadata,
    filter_capabilities,
)
from policycard.policy import load_policy_card
from policycard.report import generate_json_report, load_json_report
from policycard.schema import KpiStatus

POLICY_CARDS_DIR = Path(__file__).resolve().parents[2] / "policy-cards"


@pytest.mark.parametrize("path", sorted(POLICY_CARDS_DIR.glob("*.yaml")), ids=lambda p: p.name)
def test_shipped_policy_cards_load(path: Path) -> None:
    card = load_policy_card(path)
    assert card.rules
    assert all(t.expression is not None for t in card.triggers)


class TestAuditFlow:
    """Tests for the full discovery-to-report flow."""

    def test_retail_banking_session(
        self,
        eu_banking_metadata: dict[str, Any],
        us_healthcare_metadata: dict[str, Any],
        offshore_metadata: dict[str, Any],
    ) -> None:
        card = load_policy_card(POLICY_CARDS_DIR / "retail-banking.yaml")
        tools = {
            "srv_eu_payment_processor": embed_compliance_metadata("EU payments.", eu_banking_metadata),
            "srv_us_clinical_analyzer": embed_compliance_metadata("Clinical.", us_healthcare_metadata),
            "srv_offshore_compute": embed_compliance_metadata("Compute.", offshore_metadata),
            "srv_echo": "Echo without metadata.",
        }
        capabilities = discover_capabilities(tools, namespace="srv")
        auditor = PolicyCardAuditor(card, audit_id="session-1")

        result = filter_capabilities(capabilities, card, auditor=auditor)
        assert [c.name for c in result.compliant] == ["eu_payment_processor"]
        assert {r.capability.name for r in result.rejected} == {
            "us_clinical_analyzer",
            "offshore_compute",
        }

        auditor.evaluate_and_record(
            "eu_payment_processor", eu_banking_metadata, context={"amount": 50000}
        )
        report = auditor.generate_report()

        assert report.summary.total == 4
        assert report.summary.compliant == 2
        assert report.summary.rejected == 2
        assert report.summary.escalated == 1
        kpis = {k.metric: k for k in report.kpi_results}
        assert kpis["compliance_rate"].status == KpiStatus.CRITICAL
        assert kpis["escalation_free_rate"].value == 0.75
        assert kpis["escalation_free_rate"].status == KpiStatus.CRITICAL
        assert report.assurance_coverage["DORA"] == ["Art.28"]

        archived = load_json_report(generate_json_report(report))
        assert verify_report(archived, strict=True)

    def test_reports_share_chain_prefix(self, eu_banking_metadata: dict[str, Any]) -> None:
        card = load_policy_card(POLICY_CARDS_DIR / "retail-banking.yaml")
        auditor = PolicyCardAuditor(card)
        auditor.evaluate_and_record("a", eu_banking_metadata)
        first = auditor.generate_report()
        auditor.evaluate_and_record("b", eu_banking_metadata)
        second = auditor.generate_report()

        assert first.audit_id == second.audit_id
        first_chain = compute_evidence_chain(first.policy_name, first.audit_id, first.evidence)
        second_chain = compute_evidence_chain(second.policy_name, second.audit_id, second.evidence)
        assert second_chain[:2] == first_chain
        assert verify_report(first) and verify_report(second)
