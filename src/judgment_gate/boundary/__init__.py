"""
Boundary module for Judgment Gate.

This module implements the enforcement half of the gate: the single call
path through which a proposed action may run.

Key concepts:
    - can_execute(): exact-ALLOW test, the formal default-deny rule
    - ExecutionBoundary: freshness check, ALLOW check, one invocation, audit
    - VersionClock: authoritative version, locked across check and use
"""

from judgment_gate.boundary.executor import (
    ExecutionBoundary,
    VersionClock,
    coerce_decision,
    execute_with_boundary,
)
from judgment_gate.boundary.state_machine import (
    Phase,
    can_execute,
    is_valid_state,
    run_lifecycle,
    transition,
)

__all__ = [
    "ExecutionBoundary",
    "Phase",
    "VersionClock",
    "can_execute",
    "coerce_decision",
    "execute_with_boundary",
    "is_valid_state",
    "run_lifecycle",
    "transition",
]
