"""
Configuration for Judgment Gate.

A gate is configured with a small YAML document:

    policy_path: ./policy.yaml
    audit_backend: sqlite
    audit_path: ./audit.db
    log_level: INFO

Relative paths are resolved against the config file's directory.
"""

import logging
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from judgment_gate.errors import ConfigurationDegradedError

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class GateConfig(BaseModel):
    """
    Gate configuration.

    Attributes:
        policy_path: YAML policy file (None means no rules, everything held)
        audit_backend: Where audit entries go: memory, jsonl or sqlite
        audit_path: File for the jsonl or sqlite backend
        log_level: Logging level used by the CLI
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    policy_path: Path | None = Field(default=None, description="Policy YAML file")
    audit_backend: Literal["memory", "jsonl", "sqlite"] = Field(
        default="memory",
        description="Audit storage backend",
    )
    audit_path: Path | None = Field(
        default=None,
        description="Audit file for the jsonl/sqlite backends",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="WARNING",
        description="Logging level",
    )

    @model_validator(mode="after")
    def require_audit_path(self) -> "GateConfig":
        """File backends need a file."""
        if self.audit_backend != "memory" and self.audit_path is None:
            msg = f"audit_path is required for the {self.audit_backend} backend"
            raise ValueError(msg)
        return self

    def resolve_paths(self, base_dir: Path) -> "GateConfig":
        """Return a copy with relative paths resolved against base_dir."""
        updates = {}
        if self.policy_path is not None and not self.policy_path.is_absolute():
            updates["policy_path"] = base_dir / self.policy_path
        if self.audit_path is not None and not self.audit_path.is_absolute():
            updates["audit_path"] = base_dir / self.audit_path
        return self.model_copy(update=updates)


def load_config_from_string(content: str, source: str | None = None) -> GateConfig:
    """
    Parse a config from a YAML string.

    Raises:
        ConfigurationDegradedError: If the YAML or its contents are invalid
    """
    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ConfigurationDegradedError(
            source=source,
            underlying_error=f"YAML error: {e}",
        ) from e

    try:
        return GateConfig.model_validate(data or {})
    except ValidationError as e:
        raise ConfigurationDegradedError(
            source=source,
            underlying_error=f"invalid config: {e.error_count()} error(s)",
        ) from e


def load_config(path: Path | str) -> GateConfig:
    """
    Load a config file.

    Args:
        path: Path to the YAML config

    Returns:
        GateConfig with relative paths resolved against the file's directory

    Raises:
        ConfigurationDegradedError: If the file is missing or invalid
    """
    path = Path(path)
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigurationDegradedError(
            source=str(path),
            underlying_error=str(e),
        ) from e

    config = load_config_from_string(content, source=str(path))
    return config.resolve_paths(path.resolve().parent)


def configure_logging(level: str = "WARNING") -> None:
    """Configure root logging for command line use."""
    logging.basicConfig(level=getattr(logging, level.upper(), logging.WARNING), format=LOG_FORMAT)
