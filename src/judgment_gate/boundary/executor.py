"""
Execution boundary for Judgment Gate.

The boundary is the only legitimate call path to a proposal's action.
Any other call site is a bypass.

Execution Flow:
    1. If a version is in force, the decision's version must equal it
       exactly, else StaleDecisionError (time-of-check/time-of-use defence)
    2. The decision state must be exactly ALLOW, else BlockedError
    3. Otherwise the action is invoked exactly once; its result is returned
       and its failure propagated unchanged

Guarantees:
    - Exactly one audit entry per call, whatever the outcome
    - Zero invocations on any blocking path, at most one otherwise
    - No retries: a refused decision is never retried here

Concurrency:
    With a VersionClock attached, the version compare and the action run
    while holding the clock's lock. VersionClock.advance() takes the same
    lock, so the version cannot move between the check and the use.
"""

import logging
import threading
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from typing import Any, NoReturn

from judgment_gate.audit.sink import AuditSink, MemoryAuditSink
from judgment_gate.boundary.state_machine import can_execute
from judgment_gate.errors import BlockedError, BoundaryError, StaleDecisionError
from judgment_gate.schema import (
    AuditEntry,
    BoundaryDecision,
    ContextSummary,
    Decision,
    ExecutionOutcome,
    JudgmentContext,
    Proposal,
)

logger = logging.getLogger(__name__)


class VersionClock:
    """
    Authoritative decision version.

    Decisions are stamped with the version current when they were made.
    Advancing the clock invalidates every decision made before.

    Usage:
        clock = VersionClock()
        decision = BoundaryDecision(state=Decision.ALLOW, version=clock.current)
        clock.advance()   # state moved on; decision is now stale
    """

    def __init__(self, initial: int = 0) -> None:
        self._version = initial
        self._lock = threading.RLock()

    @property
    def current(self) -> int:
        """The current version."""
        with self._lock:
            return self._version

    def advance(self) -> int:
        """
        Move to the next version.

        Blocks while any execution checked against the clock is in flight.

        Returns:
            The new version
        """
        with self._lock:
            self._version += 1
            return self._version

    @contextmanager
    def hold(self) -> Iterator[int]:
        """Pin the current version for the duration of the block."""
        with self._lock:
            yield self._version


def coerce_decision(decision: Any) -> BoundaryDecision:
    """
    Accept a BoundaryDecision or a mapping with the same keys.

    Anything else becomes a decision with no state, which blocks.

    State and version pass through untouched; the boundary itself judges
    them. The descriptive fields end up in audit records, so any of them
    that is not a plain ``str`` (or, for ``context``, a JudgmentContext)
    is replaced by None.
    """
    if isinstance(decision, BoundaryDecision):
        if _metadata_ok(decision):
            return decision
        fields = vars(decision)
    elif isinstance(decision, Mapping):
        fields = decision
    else:
        return BoundaryDecision(state=None)

    context = fields.get("context")
    return BoundaryDecision(
        state=fields.get("state"),
        version=fields.get("version"),
        decision_id=_str_or_none(fields.get("decision_id")),
        rule_id=_str_or_none(fields.get("rule_id")),
        reason=_str_or_none(fields.get("reason")),
        context=context if isinstance(context, JudgmentContext) else None,
    )


def _str_or_none(value: Any) -> str | None:
    return value if type(value) is str else None


def _metadata_ok(decision: BoundaryDecision) -> bool:
    return (
        all(
            value is None or type(value) is str
            for value in (decision.decision_id, decision.rule_id, decision.reason)
        )
        and (decision.context is None or isinstance(decision.context, JudgmentContext))
    )


def describe_state(state: Any) -> str | None:
    """Text of a decision state for audit records."""
    if state is None:
        return None
    if isinstance(state, Decision):
        return state.value
    if type(state) is str:
        return state
    return repr(state)


def is_fresh(version: Any, current_version: int) -> bool:
    """Exact version match; bools and floats never match an int version."""
    return type(version) is int and version == current_version


class ExecutionBoundary:
    """
    The single enforced call path for proposals.

    Usage:
        boundary = ExecutionBoundary(sink)
        outcome = boundary.execute(proposal, BoundaryDecision.from_result(result))

    Attributes:
        sink: Audit sink receiving one entry per call
        clock: Optional authoritative version source
    """

    def __init__(
        self,
        sink: AuditSink | None = None,
        clock: VersionClock | None = None,
    ) -> None:
        """
        Initialize the boundary.

        Args:
            sink: Audit sink (defaults to a private in-memory sink)
            clock: Version clock used when no explicit version is passed
        """
        self.sink = sink if sink is not None else MemoryAuditSink()
        self.clock = clock

    def execute(
        self,
        proposal: Proposal,
        decision: BoundaryDecision | Mapping[str, Any] | None,
        current_version: int | None = None,
    ) -> ExecutionOutcome:
        """
        Execute a proposal if and only if the decision permits it.

        Args:
            proposal: The deferred action
            decision: Claimed decision (untrusted)
            current_version: Authoritative version; if omitted, the attached
                clock's version is used, and with no clock there is no
                freshness check

        Returns:
            ExecutionOutcome with the action's return value

        Raises:
            StaleDecisionError: Version mismatch
            BlockedError: State is not exactly ALLOW
            BaseException: Whatever the action itself raised
        """
        decision = coerce_decision(decision)
        if current_version is None and self.clock is not None:
            with self.clock.hold() as version:
                return self._execute(proposal, decision, version)
        return self._execute(proposal, decision, current_version)

    def _execute(
        self,
        proposal: Proposal,
        decision: BoundaryDecision,
        current_version: int | None,
    ) -> ExecutionOutcome:
        if current_version is not None and not is_fresh(decision.version, current_version):
            self._refuse(
                proposal,
                decision,
                StaleDecisionError(
                    decision_version=decision.version,
                    current_version=current_version,
                    proposal_id=proposal.id,
                ),
            )

        if not can_execute(decision.state):
            self._refuse(
                proposal,
                decision,
                BlockedError(
                    state=repr(decision.state),
                    rule_id=decision.rule_id,
                    proposal_id=proposal.id,
                ),
            )

        # BaseException: interrupts and exits raised by the action are recorded too
        try:
            value = proposal.action()
        except BaseException as e:
            self._record(
                proposal,
                decision,
                executed=True,
                error=f"{type(e).__name__}: {e}",
            )
            raise

        entry = self._record(proposal, decision, executed=True)
        return ExecutionOutcome(proposal_id=proposal.id, value=value, entry=entry)

    def _refuse(
        self,
        proposal: Proposal,
        decision: BoundaryDecision,
        error: BoundaryError,
    ) -> NoReturn:
        logger.info("proposal %s refused: %s", proposal.id, error.message)
        self._record(proposal, decision, blocked=True, error=error.message)
        raise error

    def _record(
        self,
        proposal: Proposal,
        decision: BoundaryDecision,
        executed: bool = False,
        blocked: bool = False,
        error: str | None = None,
    ) -> AuditEntry:
        entry = AuditEntry(
            decision=describe_state(decision.state),
            rule_id=decision.rule_id,
            reason=decision.reason,
            context=(
                ContextSummary.from_context(decision.context)
                if decision.context is not None
                else None
            ),
            executed=executed,
            blocked=blocked,
            proposal_id=proposal.id,
            error=error,
        )
        self.sink.record(entry)
        return entry


def execute_with_boundary(
    proposal: Proposal,
    decision: BoundaryDecision | Mapping[str, Any] | None,
    current_version: int | None = None,
    sink: AuditSink | None = None,
) -> ExecutionOutcome:
    """
    One-shot form of ExecutionBoundary.execute.

    Args:
        proposal: The deferred action
        decision: Claimed decision (untrusted)
        current_version: Authoritative version, if versioning is in use
        sink: Where to record the audit entry (a private sink if omitted)
    """
    return ExecutionBoundary(sink).execute(proposal, decision, current_version)
