"""
Judgment Engine for Judgment Gate.

The engine turns a JudgmentContext into a JudgmentResult by scanning an
ordered rule set. It is the classifier half of the gate; the execution
boundary is the enforcement half.

Design Principles:
    - First match wins: rule order is the only priority mechanism
    - Fail-closed: no match yields HOLD, never ALLOW
    - Pure: same (context, rule set) always yields the same result
    - No chaining: a rule's evaluation never depends on another rule

How it works:
    1. Walk the rules in stored order
    2. Test each rule's condition with the matcher
    3. Return the first matching rule's decision, reason and id
    4. If nothing matched, return the fail-closed default
"""

import logging

from judgment_gate.policy.matcher import matches
from judgment_gate.schema import JudgmentContext, JudgmentResult, PolicyRuleSet

logger = logging.getLogger(__name__)


def judge(context: JudgmentContext, rule_set: PolicyRuleSet) -> JudgmentResult:
    """
    Judge a context against a rule set.

    Args:
        context: The normalized action context
        rule_set: Rules in evaluation order

    Returns:
        The first matching rule's result, or the HOLD default
    """
    for rule in rule_set.rules:
        if matches(rule.when, context):
            logger.debug(
                "rule %s matched tool=%s action=%s -> %s",
                rule.id,
                context.tool,
                context.action,
                rule.decision.value,
            )
            return JudgmentResult(
                decision=rule.decision,
                reason=rule.reason,
                rule_id=rule.id,
            )

    logger.debug(
        "no rule matched tool=%s action=%s -> fail-closed HOLD",
        context.tool,
        context.action,
    )
    return JudgmentResult.fail_closed()


class JudgmentEngine:
    """
    Judgment engine bound to one rule set.

    Usage:
        engine = JudgmentEngine(rule_set)
        result = engine.judge(context)
        if result.allowed:
            # hand the result to the execution boundary

    Attributes:
        rule_set: The rule set this engine evaluates against
    """

    def __init__(self, rule_set: PolicyRuleSet) -> None:
        self.rule_set = rule_set

    def judge(self, context: JudgmentContext) -> JudgmentResult:
        """Judge a context against this engine's rule set."""
        return judge(context, self.rule_set)
