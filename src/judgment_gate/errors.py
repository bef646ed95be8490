"""
Exception hierarchy for Judgment Gate.

All Judgment Gate exceptions inherit from GateError, allowing callers to catch
every gate-specific exception with a single except clause.

Exception Categories:
    - BlockedError: Decision state was not exactly ALLOW
    - StaleDecisionError: Decision version no longer matches the current one
    - ConfigurationDegradedError: Policy or config source failed to load
    - StorageError: Audit storage operation failed

Boundary errors are part of normal control flow, not bugs. Their messages
start with a stable prefix (AEBS_BLOCKED, AEBS_STALE_DECISION) so callers
can tell failure kinds apart without importing the classes.
"""

from dataclasses import dataclass, field
from typing import Any


# =============================================================================
# Error Codes
# =============================================================================

# Boundary errors: 1xxx
ERROR_BOUNDARY_BLOCKED = 1001
ERROR_BOUNDARY_STALE_DECISION = 1002

# Configuration errors: 11xx
ERROR_CONFIG_DEGRADED = 1101

# Storage errors: 5xxx
ERROR_STORAGE_CONNECTION = 5001
ERROR_STORAGE_WRITE = 5002
ERROR_STORAGE_READ = 5003

# Machine-parseable message prefixes
BLOCKED_PREFIX = "AEBS_BLOCKED"
STALE_DECISION_PREFIX = "AEBS_STALE_DECISION"


# =============================================================================
# Base Exception
# =============================================================================


@dataclass
class GateError(Exception):
    """
    Base exception for all Judgment Gate errors.

    Attributes:
        message: Human-readable error description
        code: Numeric error code for programmatic handling
        suggestion: Optional hint for how to resolve the error
        context: Optional dict with additional debugging info
    """

    message: str = ""
    code: int = 0
    suggestion: str | None = None
    context: dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        """Format error for display."""
        parts = [f"[E{self.code}] {self.message}"]
        if self.suggestion:
            parts.append(f"\nSuggestion: {self.suggestion}")
        return "".join(parts)

    def __repr__(self) -> str:
        """Format error for debugging."""
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"code={self.code}, "
            f"context={self.context!r})"
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "code": self.code,
            "suggestion": self.suggestion,
            "context": self.context,
        }


# =============================================================================
# Boundary Errors
# =============================================================================


@dataclass
class BoundaryError(GateError):
    """
    Base class for errors raised by the execution boundary.

    The string form is the bare prefixed message, so that
    ``str(err).startswith("AEBS_BLOCKED:")`` holds for callers that only
    see the text.

    Attributes:
        proposal_id: ID of the proposal that was refused
    """

    proposal_id: str | None = None

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        self.context["proposal_id"] = self.proposal_id

    def __str__(self) -> str:
        """Format error with its stable prefix first."""
        return self.message


@dataclass
class BlockedError(BoundaryError):
    """
    Raised when a decision state is anything other than the exact ALLOW value.

    Recoverable only by obtaining a new judgment. The boundary never
    retries on its own.

    Attributes:
        state: repr() of the offending decision state
        rule_id: Rule that produced the decision, when known
    """

    state: str = ""
    rule_id: str | None = None

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"{BLOCKED_PREFIX}: decision_state={self.state}"
        if self.code == 0:
            self.code = ERROR_BOUNDARY_BLOCKED
        if not self.suggestion:
            self.suggestion = "Obtain a new judgment; only an exact ALLOW executes"
        super().__post_init__()
        self.context.update({
            "state": self.state,
            "rule_id": self.rule_id,
        })


@dataclass
class StaleDecisionError(BoundaryError):
    """
    Raised when a decision's version does not match the current version.

    Signals a time-of-check/time-of-use risk: the caller must re-judge,
    not retry with the same decision.

    Attributes:
        decision_version: Version carried by the decision (may be None)
        current_version: Authoritative version at the time of the check
    """

    decision_version: int | None = None
    current_version: int | None = None

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = (
                f"{STALE_DECISION_PREFIX}: "
                f"decision_version={self.decision_version} "
                f"current={self.current_version}"
            )
        if self.code == 0:
            self.code = ERROR_BOUNDARY_STALE_DECISION
        if not self.suggestion:
            self.suggestion = "Re-judge the action against the current state"
        super().__post_init__()
        self.context.update({
            "decision_version": self.decision_version,
            "current_version": self.current_version,
        })


# =============================================================================
# Configuration Errors
# =============================================================================


@dataclass
class ConfigurationDegradedError(GateError):
    """
    Raised (or recorded as a warning) when a policy or config source fails.

    The lenient policy loader never raises this; it records the message and
    falls back to an empty rule set, which blocks everything unclassified.

    Attributes:
        source: Path or label of the source that failed
        underlying_error: Description of the underlying failure
    """

    source: str | None = None
    underlying_error: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            where = self.source or "<string>"
            self.message = f"Failed to load {where}: {self.underlying_error}"
        if self.code == 0:
            self.code = ERROR_CONFIG_DEGRADED
        if not self.suggestion:
            self.suggestion = "Fix the file; until then every action is held"
        self.context.update({
            "source": self.source,
            "underlying_error": self.underlying_error,
        })


# =============================================================================
# Storage Errors
# =============================================================================



@dataclass
class StorageError(GateError):
    """
    Base class for audit storage failures.

    ``AuditSink.record`` swallows these and counts them as dropped entries,
    so they only reach callers from sink construction and history reads.

    Attributes:
        operation: Sink step that failed (e.g., "connect", "insert_entry")
        underlying_error: Text of the sqlite3 or OS error, if any
    """

    operation: str = ""
    underlying_error: str = ""

    def __post_init__(self) -> None:
        """Record the failing step in context."""
        self.context.update({
            "operation": self.operation,
            "underlying_error": self.underlying_error,
        })


@dataclass
class StorageConnectionError(StorageError):
    """Raised when the audit database file cannot be opened."""

    db_path: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            cause = self.underlying_error or "unknown error"
            self.message = f"Cannot open audit database {self.db_path}: {cause}"
        if self.code == 0:
            self.code = ERROR_STORAGE_CONNECTION
        if not self.suggestion:
            self.suggestion = "Check that the audit_path directory exists and is writable"
        super().__post_init__()
        self.context["db_path"] = self.db_path


@dataclass
class StorageWriteError(StorageError):
    """Raised when an audit entry or the audit schema cannot be written."""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Audit entry not stored ({self.operation}): {self.underlying_error}"
        if self.code == 0:
            self.code = ERROR_STORAGE_WRITE
        if not self.suggestion:
            self.suggestion = "The sink's dropped count shows how many entries were lost"
        super().__post_init__()


@dataclass
class StorageReadError(StorageError):
    """Raised when recorded audit history cannot be read back."""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Audit history unreadable ({self.operation}): {self.underlying_error}"
        if self.code == 0:
            self.code = ERROR_STORAGE_READ
        if not self.suggestion:
            self.suggestion = "Reopen the audit database; a closed sink cannot be read"
        super().__post_init__()
