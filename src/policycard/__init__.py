"""
policycard - Policy card evaluation and audit engine.

Decides whether a capability (a tool, service or agent action) is permitted
under a declarative governance policy, and keeps a tamper-evident audit
trail of every decision.

It provides:
- Policy card loading with complete validation reports
- A small field-path/operator condition language over open metadata
- Escalation triggers over runtime context
- Append-only evidence with a chained SHA256 hash
- Reports with KPI health bands and assurance coverage

Example usage:
    $ policycard validate retail-banking.yaml
    $ policycard audit retail-banking.yaml tools.yaml --out report.json
    $ policycard verify report.json
"""

__version__ = "0.1.0"
__author__ = "policycard Contributors"

from policycard.audit import PolicyCardAuditor, generate_report, verify_report
from policycard.policy import (
    PolicyEngine,
    evaluate_policy_card,
    load_policy_card,
    load_policy_card_data,
    load_policy_card_from_string,
)

__all__ = [
    "PolicyCardAuditor",
    "PolicyEngine",
    "__author__",
    "__version__",
    "evaluate_policy_card",
    "generate_report",
    "load_policy_card",
    "load_policy_card_data",
    "load_policy_card_from_string",
    "verify_report",
]
