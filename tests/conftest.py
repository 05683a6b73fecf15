"""
Pytest configuration and fixtures for policycard tests.

This module provides shared fixtures used across unit and integration
tests: policy card YAML, sample compliance metadata for four capabilities,
and a fixed clock for reproducible evidence timestamps.
"""

import tempfile
from collections.abc import Callable, Generator
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any

import pytest

from policycard.policy import load_policy_card_from_string
from policycard.schema import PolicyCard


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def sample_policy_yaml() -> str:
    """Return a retail banking policy card YAML for testing."""
    return """
policy_card_version: "1.0"
name: Retail Banking EU
scope:
  ai_act_risk_level: limited
  geography: [EU]
  intended_uses: [payment_processing]
rules:
  - id: eu-data-residency
    effect: deny
    condition:
      field: processing_locations
      operator: not_any_of
      values: [DE, IE, NL, FR]
    reason: Processing must stay inside the EU
  - id: gdpr-transfer-mechanism
    effect: deny
    condition:
      field: gdpr.transfer_mechanisms
      operator: not_any_of
      values: [ADEQUACY, SCC]
    reason: A GDPR transfer mechanism is required
  - id: retention-limit
    effect: warn
    condition:
      field: data_retention_days
      operator: greater_than
      value: 365
    reason: Retention above one year
escalation:
  triggers:
    - condition: "amount > 10000"
      action: human_review
monitoring:
  detectors:
    - name: volume_spike
      threshold: 3
      action: alert
kpis_thresholds:
  thresholds:
    - metric: compliance_rate
      target: 1.0
      critical_threshold: 0.95
assurance_mapping:
  EU_AI_ACT: [Art.9, Art.12]
  ISO_42001: ["6.1"]
"""


@pytest.fixture
def empty_rules_policy_yaml() -> str:
    """Return a policy card YAML with no rules."""
    return """
policy_card_version: "1.0"
name: Open Sandbox
scope: {}
rules: []
"""


@pytest.fixture
def sample_policy(sample_policy_yaml: str) -> PolicyCard:
    """The retail banking policy card."""
    return load_policy_card_from_string(sample_policy_yaml)


@pytest.fixture
def eu_banking_metadata() -> dict[str, Any]:
    """Compliant EU payment processor metadata."""
    return {
        "pec_version": "1.0",
        "processing_locations": ["DE", "IE"],
        "data_retention_days": 90,
        "certifications": ["ISO_27001", "SOC2_TYPE_II", "PCI_DSS"],
        "ai_act_status": {"classification": "limited", "conformity_assessed": True},
        "gdpr": {
            "controller_processor_status": "processor",
            "transfer_mechanisms": ["ADEQUACY"],
            "dpa_registered": True,
            "special_categories_processed": False,
        },
        "suitable_for": ["payment_processing", "fraud_detection"],
        "unsuitable_for": ["healthcare"],
        "supply_chain_disclosure": True,
        "metadata_currency": {"last_updated": "2026-01-12T00:00:00Z", "update_frequency": "weekly"},
    }


@pytest.fixture
def us_healthcare_metadata() -> dict[str, Any]:
    """US clinical analyser metadata: fails EU residency and transfer rules."""
    return {
        "pec_version": "1.0",
        "processing_locations": ["US"],
        "data_retention_days": 2555,
        "certifications": ["HIPAA_COMPLIANT", "HITRUST"],
        "gdpr": {"transfer_mechanisms": [], "dpa_registered": False},
    }


@pytest.fixture
def offshore_metadata() -> dict[str, Any]:
    """Offshore compute metadata: fails residency and transfer rules."""
    return {
        "processing_locations": ["CN"],
        "data_retention_days": 365,
        "certifications": [],
        "gdpr": {"transfer_mechanisms": []},
    }


@pytest.fixture
def fixed_clock() -> Callable[[], datetime]:
    """A clock that advances one second per call from a fixed start."""
    start = datetime(2026, 1, 12, 9, 0, 0, tzinfo=UTC)
    ticks = iter(range(10_000))
    return lambda: start + timedelta(seconds=next(ticks))
