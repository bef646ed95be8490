"""
Host integration for Judgment Gate.

Agent runtimes call a "before tool call" hook with a raw event and expect a
block/allow answer. This module is the narrow adapter between such hosts and
the gate: it normalizes raw events into JudgmentContext, judges them, records
the outcome, and answers in a host-neutral shape. It has no dependency on
any particular host's plugin or callback model.

Execution Flow:
    1. normalize_event(raw) -> JudgmentContext
    2. judge(context, rule_set) -> JudgmentResult
    3. record one AuditEntry
    4. HookResponse: allow (None to the host) or block with a reason
"""

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from judgment_gate.audit import JsonlAuditSink, MemoryAuditSink, SQLiteAuditSink
from judgment_gate.audit.sink import AuditSink
from judgment_gate.boundary.executor import ExecutionBoundary, VersionClock
from judgment_gate.config import GateConfig
from judgment_gate.policy.engine import judge
from judgment_gate.policy.loader import load_rule_set
from judgment_gate.schema import (
    AuditEntry,
    BoundaryDecision,
    ContextSummary,
    Decision,
    ExecutionOutcome,
    JudgmentContext,
    JudgmentResult,
    PolicyRuleSet,
    Proposal,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Event Normalization
# =============================================================================


def normalize_event(raw: Mapping[str, Any] | None) -> JudgmentContext:
    """
    Turn a raw host event into a JudgmentContext.

    Field lookup order:
        source:     source, else "tool"
        tool:       toolName, tool.name, tool (when a string), else "unknown"
        action:     action, tool.action, else "unknown"
        args:       args (string), params (command or JSON), tool.args, else ""
        risk_hints: risk_hints, riskHints, else ()

    Args:
        raw: Host event (anything that is not a mapping is treated as empty)

    Returns:
        Normalized context
    """
    if not isinstance(raw, Mapping):
        raw = {}
    tool_field = raw.get("tool")
    tool_obj = tool_field if isinstance(tool_field, Mapping) else {}

    tool = raw.get("toolName") or tool_obj.get("name")
    if not tool and isinstance(tool_field, str):
        tool = tool_field

    hints = raw.get("risk_hints")
    if hints is None:
        hints = raw.get("riskHints")

    return JudgmentContext(
        source=_text(raw.get("source")) or "tool",
        tool=_text(tool) or "unknown",
        action=_text(raw.get("action") or tool_obj.get("action")) or "unknown",
        args=_event_args(raw, tool_obj),
        risk_hints=_hints(hints),
    )


def _event_args(raw: Mapping[str, Any], tool_obj: Mapping[str, Any]) -> str:
    args = raw.get("args")
    if isinstance(args, str) and args:
        return args

    params = raw.get("params")
    if params:
        if isinstance(params, Mapping):
            command = params.get("command")
            if command:
                return str(command)
            return json.dumps(params, separators=(",", ":"), default=str)
        return str(params)

    tool_args = tool_obj.get("args")
    if tool_args:
        return tool_args if isinstance(tool_args, str) else json.dumps(tool_args, default=str)

    if args:
        return json.dumps(args, separators=(",", ":"), default=str)
    return ""


def _text(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def _hints(value: Any) -> tuple[str, ...]:
    if isinstance(value, str):
        return (value,)
    if isinstance(value, (list, tuple, set, frozenset)):
        return tuple(h for h in value if isinstance(h, str))
    return ()


# =============================================================================
# Host Responses
# =============================================================================


@dataclass(frozen=True)
class HookResponse:
    """
    Block/allow instruction for the host.

    Attributes:
        block: Whether the host must not run the tool call
        block_reason: Human-readable reason when blocked
    """

    block: bool
    block_reason: str | None = None

    @classmethod
    def allow(cls) -> "HookResponse":
        return cls(block=False)

    @classmethod
    def for_result(cls, result: JudgmentResult) -> "HookResponse":
        """Translate a judgment into a host instruction."""
        if result.decision is Decision.ALLOW:
            return cls.allow()
        if result.decision is Decision.STOP:
            return cls(block=True, block_reason=f"Judgment STOP: {result.reason}")
        return cls(
            block=True,
            block_reason=f"Judgment HOLD: {result.reason} (requires approval)",
        )

    def to_host(self) -> dict[str, Any] | None:
        """Host wire shape: None to proceed, a block dict otherwise."""
        if not self.block:
            return None
        return {"block": True, "blockReason": self.block_reason}


@dataclass(frozen=True)
class GateVerdict:
    """A judgment plus the host instruction derived from it."""

    context: JudgmentContext
    result: JudgmentResult
    response: HookResponse

    @property
    def blocked(self) -> bool:
        return self.response.block


# =============================================================================
# Gate
# =============================================================================


class JudgmentGate:
    """
    Rule set, audit sink and boundary wired together for one host.

    Usage:
        gate = JudgmentGate(load_rule_set("policy.yaml").rule_set)
        response = gate.before_tool_call(event)
        if response.block:
            refuse(response.block_reason)

        # or run the action through the boundary directly
        outcome = gate.execute(proposal, context)

    Attributes:
        rule_set: Rules judged against
        sink: Audit sink owned by this gate
        clock: Authoritative version for decisions made by this gate
        boundary: The execution boundary proposals go through
    """

    def __init__(
        self,
        rule_set: PolicyRuleSet | None = None,
        sink: AuditSink | None = None,
        clock: VersionClock | None = None,
    ) -> None:
        """
        Initialize the gate.

        Args:
            rule_set: Rules (defaults to empty, which holds everything)
            sink: Audit sink (defaults to an in-memory sink)
            clock: Version clock (defaults to a fresh clock at 0)
        """
        self.rule_set = rule_set if rule_set is not None else PolicyRuleSet.empty()
        self.sink = sink if sink is not None else MemoryAuditSink()
        self.clock = clock if clock is not None else VersionClock()
        self.boundary = ExecutionBoundary(self.sink, self.clock)

    @classmethod
    def from_config(cls, config: GateConfig) -> "JudgmentGate":
        """
        Build a gate from configuration.

        A missing or broken policy yields a gate with no rules (see
        policy.loader); storage errors opening the audit backend propagate.
        """
        if config.policy_path is not None:
            rule_set = load_rule_set(config.policy_path).rule_set
        else:
            logger.warning("no policy_path configured; every action will be held")
            rule_set = PolicyRuleSet.empty()
        return cls(rule_set=rule_set, sink=make_sink(config))

    def judge(self, context: JudgmentContext) -> JudgmentResult:
        """Judge a context without recording anything."""
        return judge(context, self.rule_set)

    def evaluate(self, context: JudgmentContext) -> GateVerdict:
        """
        Judge a context, record the outcome and build the host response.

        Nothing is executed here, so the entry has ``executed=False``.
        """
        result = self.judge(context)
        response = HookResponse.for_result(result)
        if response.block:
            logger.warning(
                "%s %s (rule: %s) tool=%s",
                result.decision.value,
                result.reason,
                result.rule_id,
                context.tool,
            )
        self.sink.record(
            AuditEntry(
                decision=result.decision.value,
                rule_id=result.rule_id,
                reason=result.reason,
                context=ContextSummary.from_context(context),
                executed=False,
                blocked=response.block,
            )
        )
        return GateVerdict(context=context, result=result, response=response)

    def before_tool_call(self, event: Mapping[str, Any] | None) -> HookResponse:
        """Host hook: normalize, judge, record, answer."""
        return self.evaluate(normalize_event(event)).response

    async def before_tool_call_async(self, event: Mapping[str, Any] | None) -> HookResponse:
        """Async form of before_tool_call for hosts with async hook APIs."""
        return self.before_tool_call(event)

    def decide(self, context: JudgmentContext) -> BoundaryDecision:
        """Judge a context and stamp the result with the current version."""
        result = self.judge(context)
        return BoundaryDecision.from_result(
            result,
            version=self.clock.current,
            context=context,
        )

    def execute(self, proposal: Proposal, context: JudgmentContext) -> ExecutionOutcome:
        """
        Judge a context and run the proposal through the boundary.

        The boundary records the single audit entry for this call.

        Raises:
            BlockedError: The judgment was not ALLOW
            StaleDecisionError: The clock advanced between judging and running
        """
        return self.boundary.execute(proposal, self.decide(context))

    def entries(self) -> list[AuditEntry]:
        """Snapshot of this gate's audit entries."""
        return self.sink.get_entries()


def make_sink(config: GateConfig) -> AuditSink:
    """Create the audit sink a config asks for."""
    if config.audit_backend == "sqlite":
        return SQLiteAuditSink(config.audit_path)
    if config.audit_backend == "jsonl":
        return JsonlAuditSink(config.audit_path)
    return MemoryAuditSink()
