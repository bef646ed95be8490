"""
Unit tests for the rule matcher.

Tests cover:
- Each condition field on its own
- AND across fields
- None condition never matching
- Case-insensitive, unanchored regex search
"""

import pytest

from judgment_gate.policy.matcher import matches
from judgment_gate.schema import JudgmentContext, MatchCondition


@pytest.fixture
def exec_context() -> JudgmentContext:
    """A destructive shell command context."""
    return JudgmentContext(
        source="agent",
        tool="exec",
        action="execute",
        args="rm -rf /var/lib/production_db",
        risk_hints=("destructive", "filesystem"),
    )


class TestNoneCondition:
    """A missing condition never matches."""

    def test_none_never_matches(self, exec_context: JudgmentContext) -> None:
        """None is not a wildcard."""
        assert matches(None, exec_context) is False

    def test_none_never_matches_default_context(self) -> None:
        """Not even an empty context."""
        assert matches(None, JudgmentContext()) is False


class TestToolIn:
    """Tests for tool_in."""

    def test_member_matches(self, exec_context: JudgmentContext) -> None:
        """Tool in the set matches."""
        assert matches(MatchCondition(tool_in=["exec", "shell"]), exec_context)

    def test_non_member_fails(self, exec_context: JudgmentContext) -> None:
        """Tool outside the set fails."""
        assert not matches(MatchCondition(tool_in=["read_file"]), exec_context)

    def test_exact_membership(self, exec_context: JudgmentContext) -> None:
        """Membership is exact, not case-insensitive or prefix."""
        assert not matches(MatchCondition(tool_in=["EXEC"]), exec_context)
        assert not matches(MatchCondition(tool_in=["exe"]), exec_context)

    def test_empty_set_never_matches(self, exec_context: JudgmentContext) -> None:
        """A present but empty set cannot be satisfied."""
        assert not matches(MatchCondition(tool_in=[]), exec_context)


class TestSourceIn:
    """Tests for source_in."""

    def test_member_matches(self, exec_context: JudgmentContext) -> None:
        assert matches(MatchCondition(source_in=["agent"]), exec_context)

    def test_non_member_fails(self, exec_context: JudgmentContext) -> None:
        assert not matches(MatchCondition(source_in=["user"]), exec_context)


class TestAnyRegexInArgs:
    """Tests for any_regex_in_args."""

    def test_search_not_fullmatch(self, exec_context: JudgmentContext) -> None:
        """Patterns are searched anywhere in args."""
        assert matches(MatchCondition(any_regex_in_args=["production"]), exec_context)

    def test_case_insensitive(self, exec_context: JudgmentContext) -> None:
        """Pattern case does not matter."""
        assert matches(MatchCondition(any_regex_in_args=["RM\\s+-RF"]), exec_context)

    def test_any_pattern_suffices(self, exec_context: JudgmentContext) -> None:
        """One matching pattern out of several is enough."""
        cond = MatchCondition(any_regex_in_args=["mkfs", "drop table", "rm\\s+-rf"])
        assert matches(cond, exec_context)

    def test_no_pattern_matches(self, exec_context: JudgmentContext) -> None:
        """No pattern found means no match."""
        cond = MatchCondition(any_regex_in_args=["mkfs", "shutdown"])
        assert not matches(cond, exec_context)

    def test_anchors_respected(self, exec_context: JudgmentContext) -> None:
        """Explicit anchors in a pattern still apply."""
        assert matches(MatchCondition(any_regex_in_args=["^rm"]), exec_context)
        assert not matches(MatchCondition(any_regex_in_args=["^/var"]), exec_context)

    def test_empty_args(self) -> None:
        """Empty args only match patterns that match the empty string."""
        ctx = JudgmentContext(args="")
        assert not matches(MatchCondition(any_regex_in_args=["rm"]), ctx)
        assert matches(MatchCondition(any_regex_in_args=["^$"]), ctx)


class TestRiskHintsAny:
    """Tests for risk_hints_any."""

    def test_intersection_matches(self, exec_context: JudgmentContext) -> None:
        """Any shared hint matches."""
        assert matches(MatchCondition(risk_hints_any=["network", "destructive"]), exec_context)

    def test_disjoint_fails(self, exec_context: JudgmentContext) -> None:
        """No shared hint fails."""
        assert not matches(MatchCondition(risk_hints_any=["network"]), exec_context)

    def test_context_without_hints(self) -> None:
        """A context with no hints never satisfies the field."""
        assert not matches(MatchCondition(risk_hints_any=["destructive"]), JudgmentContext())


class TestActionAny:
    """Tests for action_any."""

    def test_member_matches(self, exec_context: JudgmentContext) -> None:
        assert matches(MatchCondition(action_any=["execute", "write"]), exec_context)

    def test_non_member_fails(self, exec_context: JudgmentContext) -> None:
        assert not matches(MatchCondition(action_any=["read"]), exec_context)


class TestCombinedFields:
    """Present fields are ANDed."""

    def test_all_satisfied(self, exec_context: JudgmentContext) -> None:
        """Every field satisfied means a match."""
        cond = MatchCondition(
            tool_in=["exec"],
            source_in=["agent"],
            any_regex_in_args=["rm"],
            risk_hints_any=["destructive"],
            action_any=["execute"],
        )
        assert matches(cond, exec_context)

    def test_one_field_fails(self, exec_context: JudgmentContext) -> None:
        """A single unsatisfied field fails the whole condition."""
        cond = MatchCondition(
            tool_in=["exec"],
            any_regex_in_args=["rm"],
            action_any=["read"],
        )
        assert not matches(cond, exec_context)

    def test_absent_fields_unconstrained(self, exec_context: JudgmentContext) -> None:
        """Only present fields are checked."""
        assert matches(MatchCondition(tool_in=["exec"]), exec_context)

    def test_does_not_mutate_context(self, exec_context: JudgmentContext) -> None:
        """Matching leaves the context untouched."""
        before = exec_context.model_dump()
        matches(MatchCondition(tool_in=["exec"], risk_hints_any=["destructive"]), exec_context)
        assert exec_context.model_dump() == before
