"""
Pytest configuration and fixtures for Judgment Gate tests.

This module provides shared fixtures used across unit, integration,
and security tests.
"""

import tempfile
from collections.abc import Callable
from pathlib import Path
from typing import Any, Generator

import pytest

from judgment_gate.policy import load_rule_set_from_string
from judgment_gate.schema import PolicyRuleSet, Proposal


SAMPLE_POLICY_YAML = r"""
version: "1"
name: sample
rules:
  - id: stop-destructive-args
    decision: STOP
    reason: Destructive command detected
    when:
      any_regex_in_args:
        - "rm\\s+-rf"
        - "drop\\s+table"
  - id: stop-destructive-hint
    decision: STOP
    reason: Caller flagged the action as destructive
    when:
      risk_hints_any: [destructive]
  - id: hold-system-write
    decision: HOLD
    reason: Writes to system paths need approval
    when:
      tool_in: [write_file]
      any_regex_in_args: ["^/etc/", "^/usr/"]
  - id: allow-read
    decision: ALLOW
    reason: Reads are safe
    when:
      tool_in: [read_file]
"""


class CountingAction:
    """Zero-argument action that counts how often it ran."""

    def __init__(self, result: Any = "done", error: BaseException | None = None) -> None:
        self.calls = 0
        self.result = result
        self.error = error

    def __call__(self) -> Any:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.result


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def sample_policy_yaml() -> str:
    """Return the sample policy YAML."""
    return SAMPLE_POLICY_YAML


@pytest.fixture
def sample_policy_file(temp_dir: Path) -> Path:
    """Write the sample policy to a file."""
    path = temp_dir / "policy.yaml"
    path.write_text(SAMPLE_POLICY_YAML)
    return path


@pytest.fixture
def rule_set() -> PolicyRuleSet:
    """The sample policy, loaded."""
    result = load_rule_set_from_string(SAMPLE_POLICY_YAML)
    assert not result.degraded
    return result.rule_set


@pytest.fixture
def make_proposal() -> Callable[..., tuple[Proposal, CountingAction]]:
    """Factory for proposals backed by a CountingAction."""

    def _make(
        proposal_id: str = "P-1",
        result: Any = "done",
        error: BaseException | None = None,
    ) -> tuple[Proposal, CountingAction]:
        action = CountingAction(result=result, error=error)
        return Proposal(id=proposal_id, action=action), action

    return _make
