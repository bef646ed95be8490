"""
Policy loader for Judgment Gate.

Reads a YAML policy document and turns it into a PolicyRuleSet:

    version: "1"
    rules:
      - id: stop-destructive
        decision: STOP
        reason: Destructive command
        when:
          any_regex_in_args: ["rm\\s+-rf"]

Degradation rules:
    - A missing, unreadable or unparsable document degrades to the empty
      rule set plus a warning. It never raises and never produces a rule
      set that allows more than the document would have.
    - One invalid rule invalidates the whole document. Dropping only the bad
      rule could let a later, more permissive rule match first.
    - The empty rule set holds everything, so a broken policy file makes
      the gate stricter, not looser.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from judgment_gate.errors import ConfigurationDegradedError
from judgment_gate.schema import PolicyRuleSet

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LoadResult:
    """
    Outcome of loading a policy document.

    Attributes:
        rule_set: The loaded rules (empty when degraded)
        warnings: Non-fatal problems found while loading
        source: Path or label the rules came from
    """

    rule_set: PolicyRuleSet
    warnings: tuple[str, ...] = ()
    source: str | None = None

    @property
    def degraded(self) -> bool:
        """Whether loading fell back to the empty rule set."""
        return bool(self.warnings)


def parse_rule_set(data: Any, source: str | None = None) -> PolicyRuleSet:
    """
    Validate a parsed policy document.

    Args:
        data: Result of YAML parsing
        source: Label used in error messages

    Returns:
        Validated PolicyRuleSet

    Raises:
        ConfigurationDegradedError: If the document is not a valid policy
    """
    if not isinstance(data, dict):
        raise ConfigurationDegradedError(
            source=source,
            underlying_error=f"policy document must be a mapping, got {type(data).__name__}",
        )
    if "rules" not in data:
        raise ConfigurationDegradedError(
            source=source,
            underlying_error="policy document has no 'rules' field",
        )
    if not isinstance(data["rules"], list):
        raise ConfigurationDegradedError(
            source=source,
            underlying_error="'rules' must be a list",
        )

    try:
        return PolicyRuleSet.model_validate(data)
    except ValidationError as e:
        raise ConfigurationDegradedError(
            source=source,
            underlying_error=f"invalid policy: {e.error_count()} error(s): {_first_error(e)}",
        ) from e


def load_rule_set_strict(path: Path | str) -> PolicyRuleSet:
    """
    Load a policy file, raising on any problem.

    Raises:
        ConfigurationDegradedError: If the file is missing or invalid
    """
    path = Path(path)
    try:
        with path.open(encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigurationDegradedError(
            source=str(path),
            underlying_error=str(e),
        ) from e
    except yaml.YAMLError as e:
        raise ConfigurationDegradedError(
            source=str(path),
            underlying_error=f"YAML error: {e}",
        ) from e

    return parse_rule_set(data, source=str(path))


def load_rule_set(path: Path | str) -> LoadResult:
    """
    Load a policy file, degrading to the empty rule set on any problem.

    Args:
        path: Path to the YAML policy file

    Returns:
        LoadResult; check ``degraded`` to see whether rules were lost
    """
    try:
        rule_set = load_rule_set_strict(path)
    except ConfigurationDegradedError as e:
        return _degraded(e, source=str(path))

    logger.info("loaded %d rule(s) from %s", len(rule_set), path)
    return LoadResult(rule_set=rule_set, source=str(path))


def load_rule_set_from_string(content: str, source: str | None = None) -> LoadResult:
    """Load a policy from a YAML string, degrading like load_rule_set."""
    try:
        data = yaml.safe_load(content)
        rule_set = parse_rule_set(data, source=source)
    except yaml.YAMLError as e:
        return _degraded(
            ConfigurationDegradedError(source=source, underlying_error=f"YAML error: {e}"),
            source=source,
        )
    except ConfigurationDegradedError as e:
        return _degraded(e, source=source)

    return LoadResult(rule_set=rule_set, source=source)


def _degraded(error: ConfigurationDegradedError, source: str | None) -> LoadResult:
    warning = str(error)
    logger.warning("policy degraded to empty rule set: %s", error.message)
    return LoadResult(
        rule_set=PolicyRuleSet.empty(),
        warnings=(warning,),
        source=source,
    )


def _first_error(error: ValidationError) -> str:
    first = error.errors()[0]
    loc = ".".join(str(part) for part in first["loc"])
    return f"{loc}: {first['msg']}"
