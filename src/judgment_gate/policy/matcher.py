"""
Rule matcher for Judgment Gate.

A pure predicate: given one rule's condition and a context, decide whether
the condition holds. Present fields are ANDed together; absent fields impose
no constraint. A missing condition never matches.

Matcher semantics per field:
    - tool_in: context.tool is in the set
    - source_in: context.source is in the set
    - any_regex_in_args: any pattern is found in context.args
      (case-insensitive search, not anchored)
    - risk_hints_any: at least one context risk hint is in the set
    - action_any: context.action is in the set
"""

from judgment_gate.schema import JudgmentContext, MatchCondition


def matches(condition: MatchCondition | None, context: JudgmentContext) -> bool:
    """
    Evaluate a match condition against a context.

    Args:
        condition: The rule's ``when`` clause (None never matches)
        context: The normalized action context

    Returns:
        True only if every present field is satisfied
    """
    if condition is None:
        return False

    if condition.tool_in is not None and context.tool not in condition.tool_in:
        return False

    if condition.source_in is not None and context.source not in condition.source_in:
        return False

    if condition.any_regex_in_args is not None:
        if not any(p.search(context.args) for p in condition.patterns):
            return False

    if condition.risk_hints_any is not None:
        if condition.risk_hints_any.isdisjoint(context.risk_hints):
            return False

    if condition.action_any is not None and context.action not in condition.action_any:
        return False

    return True
