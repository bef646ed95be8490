"""
Policy module for Judgment Gate.

This module implements the classifier half of the gate: a declarative
pattern matcher over ordered rules.

Key concepts:
    - matches(): pure predicate over one rule's condition
    - judge(): first-match-wins scan with a fail-closed HOLD default
    - load_rule_set(): YAML loader that degrades to the empty rule set

An empty or broken policy never allows anything: unmatched actions are held.
"""

from judgment_gate.policy.engine import JudgmentEngine, judge
from judgment_gate.policy.loader import (
    LoadResult,
    load_rule_set,
    load_rule_set_from_string,
    load_rule_set_strict,
    parse_rule_set,
)
from judgment_gate.policy.matcher import matches

__all__ = [
    "JudgmentEngine",
    "LoadResult",
    "judge",
    "load_rule_set",
    "load_rule_set_from_string",
    "load_rule_set_strict",
    "matches",
    "parse_rule_set",
]
