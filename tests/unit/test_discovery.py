"""
Unit tests for capability discovery.

Tests cover:
- Embedding and extracting the compliance metadata blob
- Lenient and strict handling of malformed blobs
- Namespace stripping and skipping tools without metadata
- Partitioning capabilities under a policy card
"""

from typing import Any

import pytest

from policycard.audit import PolicyCardAuditor
from policycard.discovery import (
    DiscoveredCapability,
    discover_capabilities,
    embed_compliance_metadata,
    extract_compliance_metadata,
    filter_capabilities,
    strip_compliance_metadata,
)
from policycard.errors import MetadataParseError
from policycard.schema import PolicyCard


class TestExtractComplianceMetadata:
    """Tests for decoding the metadata blob."""

    def test_embedded_blob_extracted(self, eu_banking_metadata: dict[str, Any]) -> None:
        description = embed_compliance_metadata("Processes EU payments.", eu_banking_metadata)
        assert extract_compliance_metadata(description) == eu_banking_metadata

    def test_nested_braces(self) -> None:
        description = 'Scanner.\n[PEC_COMPLIANCE:{"gdpr": {"dpa_registered": true}}]'
        assert extract_compliance_metadata(description) == {"gdpr": {"dpa_registered": True}}

    def test_trailing_whitespace_allowed(self) -> None:
        description = 'Tool [PEC_COMPLIANCE:{"a": 1}]  \n'
        assert extract_compliance_metadata(description) == {"a": 1}

    @pytest.mark.parametrize("description", ["", "Plain description", None])
    def test_no_blob(self, description: Any) -> None:
        assert extract_compliance_metadata(description) is None

    def test_malformed_blob_lenient(self) -> None:
        assert extract_compliance_metadata("Tool [PEC_COMPLIANCE:{not json}]") is None

    def test_malformed_blob_strict(self) -> None:
        with pytest.raises(MetadataParseError) as exc_info:
            extract_compliance_metadata("Tool [PEC_COMPLIANCE:{not json}]", "scanner", strict=True)
        assert exc_info.value.capability_name == "scanner"

    def test_strip(self) -> None:
        description = embed_compliance_metadata("Processes EU payments.", {"a": 1})
        assert strip_compliance_metadata(description) == "Processes EU payments."


class TestDiscoverCapabilities:
    """Tests for discover_capabilities()."""

    def test_namespace_stripped_and_plain_tools_skipped(
        self,
        eu_banking_metadata: dict[str, Any],
    ) -> None:
        tools = {
            "srv_eu_payment_processor": embed_compliance_metadata("Payments.", eu_banking_metadata),
            "srv_echo": "Echoes input.",
        }
        capabilities = discover_capabilities(tools, namespace="srv")

        assert capabilities == [
            DiscoveredCapability(
                name="eu_payment_processor",
                description="Payments.",
                compliance=eu_banking_metadata,
            )
        ]

    def test_accepts_pairs(self) -> None:
        pairs = [("b", embed_compliance_metadata("B", {"x": 1})), ("a", embed_compliance_metadata("A", {"x": 2}))]
        assert [c.name for c in discover_capabilities(pairs)] == ["b", "a"]

    def test_strict_raises(self) -> None:
        with pytest.raises(MetadataParseError):
            discover_capabilities({"bad": "X [PEC_COMPLIANCE:{oops}]"}, strict=True)


class TestFilterCapabilities:
    """Tests for filter_capabilities()."""

    def _capabilities(self, *pairs: tuple[str, dict[str, Any]]) -> list[DiscoveredCapability]:
        return [DiscoveredCapability(name=n, description=n, compliance=m) for n, m in pairs]

    def test_partition(
        self,
        sample_policy: PolicyCard,
        eu_banking_metadata: dict[str, Any],
        us_healthcare_metadata: dict[str, Any],
    ) -> None:
        capabilities = self._capabilities(
            ("eu_payment_processor", eu_banking_metadata),
            ("us_clinical_analyzer", us_healthcare_metadata),
        )
        result = filter_capabilities(capabilities, sample_policy)

        assert [c.name for c in result.compliant] == ["eu_payment_processor"]
        assert [r.capability.name for r in result.rejected] == ["us_clinical_analyzer"]
        assert result.rejected[0].violations == [
            "Processing must stay inside the EU",
            "A GDPR transfer mechanism is required",
        ]

    def test_records_with_auditor(
        self,
        sample_policy: PolicyCard,
        eu_banking_metadata: dict[str, Any],
        offshore_metadata: dict[str, Any],
    ) -> None:
        auditor = PolicyCardAuditor(sample_policy)
        capabilities = self._capabilities(
            ("eu_payment_processor", eu_banking_metadata),
            ("offshore_compute", offshore_metadata),
        )
        filter_capabilities(capabilities, sample_policy, auditor=auditor)

        assert [e.capability_name for e in auditor.evidence] == [
            "eu_payment_processor",
            "offshore_compute",
        ]


class TestNamePrefixes:
    """Tests for tool name handling without a namespace."""

    def test_names_kept_without_namespace(self) -> None:
        tools = {"srv_scanner": embed_compliance_metadata("S", {"a": 1})}
        assert [c.name for c in discover_capabilities(tools)] == ["srv_scanner"]

    def test_other_prefixes_untouched(self) -> None:
        tools = {"eu_payment_processor": embed_compliance_metadata("P", {"a": 1})}
        assert [c.name for c in discover_capabilities(tools, namespace="srv")] == [
            "eu_payment_processor"
        ]
