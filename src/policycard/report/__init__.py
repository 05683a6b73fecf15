"""
Reporting module for policycard.

Renders audit reports for people and for archives.

Output formats:
    - Console: Rich terminal output with KPI status icons
    - JSON: Structured output that round-trips and re-verifies

Example:
    from policycard.report import generate_json_report, print_console_report

    report = auditor.generate_report()
    print_console_report(report)
    archived = generate_json_report(report)
"""

from policycard.report.console import print_console_report, print_policy_card_summary
from policycard.report.json import (
    build_report_dict,
    generate_json_report,
    load_json_report,
    write_json_report,
)

__all__ = [
    "build_report_dict",
    "generate_json_report",
    "load_json_report",
    "print_console_report",
    "print_policy_card_summary",
    "write_json_report",
]
