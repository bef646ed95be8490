"""
Schema definitions for Judgment Gate.

This module defines the data types that flow through the gate:
- Decision: ALLOW / HOLD / STOP
- MatchCondition/PolicyRule/PolicyRuleSet: the declarative policy
- JudgmentContext/JudgmentResult: input and output of a judgment
- BoundaryDecision/Proposal/ExecutionOutcome: what the boundary consumes
- AuditEntry: one append-only record per judgment outcome

Design Decisions:
    - Policy data is validated once, at load time, by Pydantic
    - Policy models are frozen so a loaded rule set can be shared freely
    - BoundaryDecision is a plain dataclass: it must carry untrusted,
      possibly malformed decision values to the boundary unchanged
    - Regex patterns are compiled once when a condition is built
"""

import re
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    PrivateAttr,
    field_validator,
    model_validator,
)


FAIL_CLOSED_REASON = "Unclassified action (fail-closed default)"


# =============================================================================
# Enums
# =============================================================================


class Decision(str, Enum):
    """
    The three valid judgment outcomes.

    HOLD means blocked pending approval; STOP means blocked and not to be
    retried. Only ALLOW ever lets a proposal execute.
    """

    ALLOW = "ALLOW"
    HOLD = "HOLD"
    STOP = "STOP"


# =============================================================================
# Policy Models
# =============================================================================

CONDITION_FIELDS = (
    "tool_in",
    "source_in",
    "any_regex_in_args",
    "risk_hints_any",
    "action_any",
)


class MatchCondition(BaseModel):
    """
    The ``when`` clause of a policy rule.

    Every field is optional; a present field is a constraint and all present
    constraints must hold for the condition to match. At least one field
    must be set.

    Attributes:
        tool_in: Context tool must be one of these names
        source_in: Context source must be one of these values
        any_regex_in_args: At least one pattern must be found in the args
            (case-insensitive search)
        risk_hints_any: Context must carry at least one of these hints
        action_any: Context action must be one of these values
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    tool_in: frozenset[str] | None = Field(
        default=None,
        description="Allowed tool names",
    )
    source_in: frozenset[str] | None = Field(
        default=None,
        description="Allowed event sources",
    )
    any_regex_in_args: tuple[str, ...] | None = Field(
        default=None,
        description="Regex patterns searched case-insensitively in args",
    )
    risk_hints_any: frozenset[str] | None = Field(
        default=None,
        description="Risk hints, any of which triggers a match",
    )
    action_any: frozenset[str] | None = Field(
        default=None,
        description="Allowed action types",
    )

    _patterns: tuple[re.Pattern[str], ...] = PrivateAttr(default=())

    @field_validator("any_regex_in_args")
    @classmethod
    def validate_patterns(cls, v: tuple[str, ...] | None) -> tuple[str, ...] | None:
        """Reject patterns that do not compile."""
        if v is None:
            return v
        for pattern in v:
            try:
                re.compile(pattern, re.IGNORECASE)
            except re.error as e:
                msg = f"Invalid regex {pattern!r}: {e}"
                raise ValueError(msg) from e
        return v

    @model_validator(mode="after")
    def require_constraint(self) -> "MatchCondition":
        """An empty condition would match everything; refuse it."""
        if all(getattr(self, name) is None for name in CONDITION_FIELDS):
            msg = f"Condition must set at least one of: {', '.join(CONDITION_FIELDS)}"
            raise ValueError(msg)
        return self

    def model_post_init(self, __context: Any) -> None:
        if self.any_regex_in_args is not None:
            self._patterns = tuple(
                re.compile(pattern, re.IGNORECASE)
                for pattern in self.any_regex_in_args
            )

    @property
    def patterns(self) -> tuple[re.Pattern[str], ...]:
        """Compiled form of any_regex_in_args."""
        return self._patterns


class PolicyRule(BaseModel):
    """
    A single policy rule.

    Attributes:
        id: Unique identifier, used for audit correlation
        decision: Decision returned when the rule matches
        reason: Human-readable explanation
        when: Match condition; a rule without one never matches
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str = Field(..., description="Unique rule identifier", min_length=1)
    decision: Decision = Field(..., description="Decision when matched")
    reason: str = Field(..., description="Human-readable reason", min_length=1)
    when: MatchCondition | None = Field(
        default=None,
        description="Match condition (None never matches)",
    )


class PolicyRuleSet(BaseModel):
    """
    An ordered, immutable list of rules.

    Order is evaluation priority: the first matching rule wins.

    Attributes:
        version: Policy document version label
        rules: Rules in evaluation order
        name: Optional name for this policy
        description: Optional description
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    version: str = Field(default="1", description="Policy document version")
    rules: tuple[PolicyRule, ...] = Field(
        default=(),
        description="Rules in evaluation order",
    )
    name: str | None = Field(default=None, description="Optional policy name")
    description: str | None = Field(
        default=None,
        description="Optional description of what this policy guards",
    )

    @field_validator("version", mode="before")
    @classmethod
    def coerce_version(cls, v: Any) -> Any:
        """Accept ``version: 1`` as well as ``version: "1"``."""
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v

    @field_validator("rules")
    @classmethod
    def validate_unique_ids(cls, v: tuple[PolicyRule, ...]) -> tuple[PolicyRule, ...]:
        """Rule ids must be unique so audit records are unambiguous."""
        seen: set[str] = set()
        for rule in v:
            if rule.id in seen:
                msg = f"Duplicate rule id: {rule.id}"
                raise ValueError(msg)
            seen.add(rule.id)
        return v

    @classmethod
    def empty(cls) -> "PolicyRuleSet":
        """Create a rule set with no rules (everything is held)."""
        return cls()

    def __len__(self) -> int:
        return len(self.rules)

    def get(self, rule_id: str) -> PolicyRule | None:
        """Look up a rule by id."""
        for rule in self.rules:
            if rule.id == rule_id:
                return rule
        return None


# =============================================================================
# Judgment Models
# =============================================================================


class JudgmentContext(BaseModel):
    """
    Normalized description of a proposed action.

    Attributes:
        source: Where the event came from (e.g., "tool", "user")
        tool: Tool name (e.g., "exec", "read_file")
        action: Action type (e.g., "execute", "write")
        args: Flattened argument text, searched by regex conditions
        risk_hints: Caller-supplied risk tags
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    source: str = Field(default="tool", description="Event source")
    tool: str = Field(default="unknown", description="Tool name")
    action: str = Field(default="unknown", description="Action type")
    args: str = Field(default="", description="Argument text")
    risk_hints: tuple[str, ...] = Field(default=(), description="Risk tags")


class JudgmentResult(BaseModel):
    """
    Outcome of judging a context against a rule set.

    Attributes:
        decision: ALLOW, HOLD or STOP
        reason: Human-readable explanation
        rule_id: Id of the matching rule; None for the fail-closed default
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    decision: Decision = Field(..., description="Judgment decision")
    reason: str = Field(..., description="Human-readable reason")
    rule_id: str | None = Field(default=None, description="Matching rule id")

    @classmethod
    def fail_closed(cls) -> "JudgmentResult":
        """The result used when no rule matches."""
        return cls(decision=Decision.HOLD, reason=FAIL_CLOSED_REASON)

    @property
    def allowed(self) -> bool:
        """Whether this result permits execution."""
        return self.decision is Decision.ALLOW


# =============================================================================
# Boundary Models
# =============================================================================


@dataclass(frozen=True)
class Proposal:
    """
    A deferred side-effecting action.

    Attributes:
        id: Identifier for correlation in audit records
        action: Zero-argument callable performing the side effect
    """

    id: str
    action: Callable[[], Any]


@dataclass(frozen=True)
class BoundaryDecision:
    """
    What the execution boundary consumes.

    ``state`` is deliberately untyped: decisions can arrive from outside the
    engine, and malformed values must reach the boundary as-is so that the
    boundary can refuse them.

    Attributes:
        state: Claimed decision value (trusted only if exactly ALLOW)
        version: Version token the decision was made against
        decision_id: Optional correlation id
        rule_id: Rule that produced the decision, if known
        reason: Reason that came with the decision, if known
        context: Context the decision was made for, if known
    """

    state: Any
    version: int | None = None
    decision_id: str | None = None
    rule_id: str | None = None
    reason: str | None = None
    context: JudgmentContext | None = None

    @classmethod
    def from_result(
        cls,
        result: JudgmentResult,
        version: int | None = None,
        context: JudgmentContext | None = None,
    ) -> "BoundaryDecision":
        """Build a boundary decision from engine output."""
        return cls(
            state=result.decision,
            version=version,
            rule_id=result.rule_id,
            reason=result.reason,
            context=context,
        )


# =============================================================================
# Audit Models
# =============================================================================


class ContextSummary(BaseModel):
    """The part of a JudgmentContext kept in audit records (no args)."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    source: str
    tool: str
    action: str
    risk_hints: tuple[str, ...] = ()

    @classmethod
    def from_context(cls, context: JudgmentContext) -> "ContextSummary":
        return cls(
            source=context.source,
            tool=context.tool,
            action=context.action,
            risk_hints=context.risk_hints,
        )


class AuditEntry(BaseModel):
    """
    One append-only record of a judgment outcome.

    Attributes:
        ts: When the outcome was recorded (UTC)
        decision: Decision value as observed (may be an invalid value's text)
        rule_id: Rule that produced the decision, if any
        reason: Reason for the decision or the block
        context: Summary of the judged context, if known
        executed: Whether the proposal's action was invoked
        blocked: Whether the boundary refused to execute
        proposal_id: Proposal this entry is about, if any
        error: Block message, or the error raised by the action
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    ts: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        description="When the entry was recorded",
    )
    decision: str | None = Field(default=None, description="Observed decision")
    rule_id: str | None = Field(default=None, description="Matching rule id")
    reason: str | None = Field(default=None, description="Decision reason")
    context: ContextSummary | None = Field(default=None, description="Context summary")
    executed: bool = Field(default=False, description="Action was invoked")
    blocked: bool = Field(default=False, description="Boundary refused")
    proposal_id: str | None = Field(default=None, description="Proposal id")
    error: str | None = Field(default=None, description="Block or failure message")

    def to_record(self) -> dict[str, Any]:
        """Convert to a JSON-serializable dict."""
        return self.model_dump(mode="json")


@dataclass(frozen=True)
class ExecutionOutcome:
    """
    Result of a successful pass through the boundary.

    Attributes:
        proposal_id: ID of the executed proposal
        value: Whatever the action returned
        entry: The audit entry recorded for this execution
    """

    proposal_id: str
    value: Any
    entry: AuditEntry
