"""
JSON report for Judgment Gate audit entries.

Generates structured JSON for programmatic consumption: a summary block
followed by every entry in the audit record shape.
"""

import json
from collections import Counter
from collections.abc import Sequence
from typing import Any

from judgment_gate.schema import AuditEntry


def build_audit_report(entries: Sequence[AuditEntry]) -> dict[str, Any]:
    """
    Build a report dictionary.

    Args:
        entries: Entries in the order they were recorded

    Returns:
        Dict with ``summary`` and ``entries``
    """
    by_decision = Counter(e.decision or "<none>" for e in entries)
    return {
        "summary": {
            "total": len(entries),
            "executed": sum(1 for e in entries if e.executed),
            "blocked": sum(1 for e in entries if e.blocked),
            "by_decision": dict(sorted(by_decision.items())),
        },
        "entries": [e.to_record() for e in entries],
    }


def generate_json_report(entries: Sequence[AuditEntry], indent: int = 2) -> str:
    """Serialize build_audit_report() to a JSON string."""
    return json.dumps(build_audit_report(entries), indent=indent)
