"""
Decision lifecycle state machine.

    PROPOSAL --any--> JUDGMENT --ALLOW--> EXECUTION
                               --other--> HALT

EXECUTION and HALT are terminal. HALT is reached by every input except the
exact ALLOW value, which is what default-deny means.
"""

from enum import Enum
from typing import Any

from judgment_gate.schema import Decision

ALLOW_VALUE = Decision.ALLOW.value


class Phase(str, Enum):
    """Phases of a proposal's lifecycle."""

    PROPOSAL = "PROPOSAL"
    JUDGMENT = "JUDGMENT"
    EXECUTION = "EXECUTION"
    HALT = "HALT"


TERMINAL_PHASES = frozenset({Phase.EXECUTION, Phase.HALT})


def can_execute(state: Any) -> bool:
    """
    Whether a decision state permits execution.

    Only the ``Decision.ALLOW`` member itself, or an object whose type is
    exactly ``str`` and equal to "ALLOW", passes. No trimming, no case
    folding, no truthiness, and no str subclasses (which could override
    equality).
    """
    if state is Decision.ALLOW:
        return True
    return type(state) is str and state == ALLOW_VALUE


def is_valid_state(state: Any) -> bool:
    """Whether a state is one of ALLOW/HOLD/STOP or None (no decision yet)."""
    if state is None or isinstance(state, Decision):
        return True
    return type(state) is str and state in {d.value for d in Decision}


def transition(phase: Phase, decision: Any = None) -> Phase:
    """
    Advance the lifecycle by one step.

    Args:
        phase: Current phase
        decision: Input for this step (only read in JUDGMENT)

    Returns:
        The next phase
    """
    if phase is Phase.PROPOSAL:
        return Phase.JUDGMENT
    if phase is Phase.JUDGMENT:
        return Phase.EXECUTION if can_execute(decision) else Phase.HALT
    return phase


def run_lifecycle(decision: Any) -> Phase:
    """Drive a fresh proposal to its terminal phase under ``decision``."""
    phase = transition(Phase.PROPOSAL)
    return transition(phase, decision)
