"""
Unit tests for the Judgment Engine.

Tests cover:
- First-match-wins ordering
- Fail-closed HOLD default (including the empty rule set)
- Determinism
- Bounded evaluation (no chaining)
"""

from unittest.mock import patch

import pytest

from judgment_gate.policy import JudgmentEngine, judge
from judgment_gate.policy.matcher import matches
from judgment_gate.schema import (
    FAIL_CLOSED_REASON,
    Decision,
    JudgmentContext,
    JudgmentResult,
    PolicyRuleSet,
)


def _rules(*rules: dict) -> PolicyRuleSet:
    return PolicyRuleSet.model_validate({"rules": list(rules)})


# =============================================================================
# Sample Policy Scenarios
# =============================================================================


class TestSampleScenarios:
    """The sample policy applied to typical agent actions."""

    def test_destructive_command_stops(self, rule_set: PolicyRuleSet) -> None:
        """rm -rf against a production path is stopped."""
        ctx = JudgmentContext(
            tool="exec",
            action="execute",
            args="rm -rf /var/lib/production_db",
            risk_hints=("destructive",),
        )
        result = judge(ctx, rule_set)
        assert result.decision is Decision.STOP
        assert result.rule_id == "stop-destructive-args"

    def test_read_allowed(self, rule_set: PolicyRuleSet) -> None:
        """Reading a temp file is allowed."""
        ctx = JudgmentContext(tool="read_file", args="/tmp/test.txt")
        result = judge(ctx, rule_set)
        assert result.decision is Decision.ALLOW
        assert result.rule_id == "allow-read"

    def test_system_write_held(self, rule_set: PolicyRuleSet) -> None:
        """Writing under /etc is held."""
        ctx = JudgmentContext(tool="write_file", action="write", args="/etc/hosts")
        result = judge(ctx, rule_set)
        assert result.decision is Decision.HOLD
        assert result.rule_id == "hold-system-write"

    def test_unknown_tool_held(self, rule_set: PolicyRuleSet) -> None:
        """An unrecognized tool falls through to the default."""
        ctx = JudgmentContext(tool="unknown_tool_v2", action="unknown")
        result = judge(ctx, rule_set)
        assert result == JudgmentResult.fail_closed()
        assert result.reason == FAIL_CLOSED_REASON
        assert result.rule_id is None


# =============================================================================
# Ordering
# =============================================================================


class TestFirstMatchWins:
    """The earliest matching rule decides."""

    def test_earliest_rule_wins(self) -> None:
        """A later, also-matching rule is ignored."""
        rules = _rules(
            {"id": "first", "decision": "STOP", "reason": "first", "when": {"tool_in": ["exec"]}},
            {"id": "second", "decision": "ALLOW", "reason": "second", "when": {"tool_in": ["exec"]}},
        )
        result = judge(JudgmentContext(tool="exec"), rules)
        assert result.rule_id == "first"
        assert result.decision is Decision.STOP

    def test_order_reversed(self) -> None:
        """Reversing the rules reverses the outcome."""
        rules = _rules(
            {"id": "second", "decision": "ALLOW", "reason": "second", "when": {"tool_in": ["exec"]}},
            {"id": "first", "decision": "STOP", "reason": "first", "when": {"tool_in": ["exec"]}},
        )
        result = judge(JudgmentContext(tool="exec"), rules)
        assert result.rule_id == "second"
        assert result.decision is Decision.ALLOW

    def test_non_matching_rules_skipped(self) -> None:
        """Rules that do not match are passed over."""
        rules = _rules(
            {"id": "a", "decision": "STOP", "reason": "a", "when": {"tool_in": ["other"]}},
            {"id": "b", "decision": "HOLD", "reason": "b", "when": {"action_any": ["write"]}},
        )
        result = judge(JudgmentContext(tool="exec", action="write"), rules)
        assert result.rule_id == "b"

    def test_rule_without_when_skipped(self) -> None:
        """A rule with no condition never matches."""
        rules = _rules(
            {"id": "no-when", "decision": "ALLOW", "reason": "never"},
            {"id": "exec", "decision": "STOP", "reason": "exec", "when": {"tool_in": ["exec"]}},
        )
        result = judge(JudgmentContext(tool="exec"), rules)
        assert result.rule_id == "exec"


# =============================================================================
# Fail-closed Default
# =============================================================================


class TestFailClosedDefault:
    """No match yields HOLD."""

    def test_empty_rule_set_holds(self) -> None:
        """An empty rule set holds everything."""
        for ctx in (
            JudgmentContext(),
            JudgmentContext(tool="read_file", args="/tmp/x"),
            JudgmentContext(tool="exec", action="execute", args="ls"),
        ):
            result = judge(ctx, PolicyRuleSet.empty())
            assert result.decision is Decision.HOLD
            assert result.reason == FAIL_CLOSED_REASON
            assert result.rule_id is None

    def test_only_rule_without_when_holds(self) -> None:
        """A rule set whose only rule has no condition still holds."""
        rules = _rules({"id": "x", "decision": "ALLOW", "reason": "x"})
        assert judge(JudgmentContext(tool="exec"), rules).decision is Decision.HOLD


# =============================================================================
# Purity
# =============================================================================


class TestPurity:
    """judge is a pure function."""

    def test_deterministic(self, rule_set: PolicyRuleSet) -> None:
        """Same inputs, same result."""
        ctx = JudgmentContext(tool="exec", args="DROP TABLE users")
        results = {judge(ctx, rule_set) for _ in range(20)}
        assert len(results) == 1

    def test_inputs_unchanged(self, rule_set: PolicyRuleSet) -> None:
        """Neither the context nor the rule set is modified."""
        ctx = JudgmentContext(tool="exec", args="rm -rf /")
        ctx_before = ctx.model_dump()
        rules_before = rule_set.model_dump()
        judge(ctx, rule_set)
        assert ctx.model_dump() == ctx_before
        assert rule_set.model_dump() == rules_before

    def test_at_most_one_evaluation_per_rule(self, rule_set: PolicyRuleSet) -> None:
        """The scan stops at the first match and never revisits a rule."""
        ctx = JudgmentContext(tool="read_file", args="/tmp/x")
        with patch("judgment_gate.policy.engine.matches", wraps=matches) as spy:
            judge(ctx, rule_set)
        assert spy.call_count == len(rule_set)

    def test_unmatched_scans_every_rule_once(self, rule_set: PolicyRuleSet) -> None:
        """An unmatched context evaluates each rule exactly once."""
        ctx = JudgmentContext(tool="unknown_tool_v2")
        with patch("judgment_gate.policy.engine.matches", wraps=matches) as spy:
            judge(ctx, rule_set)
        assert spy.call_count == len(rule_set)


# =============================================================================
# Engine Object
# =============================================================================


class TestJudgmentEngine:
    """Tests for the JudgmentEngine wrapper."""

    def test_engine_matches_function(self, rule_set: PolicyRuleSet) -> None:
        """The object form gives the same answer as judge()."""
        engine = JudgmentEngine(rule_set)
        ctx = JudgmentContext(tool="read_file")
        assert engine.judge(ctx) == judge(ctx, rule_set)

    @pytest.mark.parametrize("tool", ["unknown_tool_v2", "", "READ_FILE"])
    def test_engine_default(self, rule_set: PolicyRuleSet, tool: str) -> None:
        """Unrecognized tools are held by the engine too."""
        assert JudgmentEngine(rule_set).judge(JudgmentContext(tool=tool)).decision is Decision.HOLD
