"""
Judgment Gate - mandatory judgment boundary for autonomous agent actions.

Every side-effecting action an agent proposes (tool calls, shell commands,
file writes) is judged ALLOW, HOLD or STOP against an ordered policy, and
runs only through an execution boundary that accepts nothing but an exact,
fresh ALLOW.
It provides:
- Declarative first-match-wins policy rules (YAML)
- Fail-closed default: unmatched actions are held
- Default-deny execution boundary with version freshness checks
- Append-only audit of every outcome (memory, JSONL or SQLite)

Example usage:
    $ judgment-gate judge --policy policy.yaml --tool exec --args "rm -rf /"
    $ judgment-gate exec --policy policy.yaml -- ls /tmp
    $ judgment-gate audit --db audit.db
"""

__version__ = "0.1.0"
__author__ = "Judgment Gate Contributors"

from judgment_gate.boundary import ExecutionBoundary, VersionClock, execute_with_boundary
from judgment_gate.errors import BlockedError, ConfigurationDegradedError, StaleDecisionError
from judgment_gate.hook import JudgmentGate, normalize_event
from judgment_gate.policy import JudgmentEngine, judge, load_rule_set, matches
from judgment_gate.schema import (
    AuditEntry,
    BoundaryDecision,
    Decision,
    JudgmentContext,
    JudgmentResult,
    MatchCondition,
    PolicyRule,
    PolicyRuleSet,
    Proposal,
)

__all__ = [
    "__version__",
    "__author__",
    "AuditEntry",
    "BlockedError",
    "BoundaryDecision",
    "ConfigurationDegradedError",
    "Decision",
    "ExecutionBoundary",
    "JudgmentContext",
    "JudgmentEngine",
    "JudgmentGate",
    "JudgmentResult",
    "MatchCondition",
    "PolicyRule",
    "PolicyRuleSet",
    "Proposal",
    "StaleDecisionError",
    "VersionClock",
    "execute_with_boundary",
    "judge",
    "load_rule_set",
    "matches",
    "normalize_event",
]
