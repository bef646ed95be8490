"""
Report module for Judgment Gate.

Two renderings of audit entries:
    - render_audit_table(): Rich table for terminals
    - generate_json_report(): JSON with a summary block
"""

from judgment_gate.report.console import render_audit_table
from judgment_gate.report.json import build_audit_report, generate_json_report

__all__ = [
    "build_audit_report",
    "generate_json_report",
    "render_audit_table",
]
