"""
Audit sinks for Judgment Gate.

Every judgment outcome is recorded as an AuditEntry. A sink is append-only:
entries are immutable once written, insertion order is preserved, and
read-back returns a snapshot that callers cannot use to rewrite history.

Recording never raises. A storage failure is degraded observability, not a
gate: it must not block an allowed action or unblock a refused one. Failed
writes are logged and counted in ``dropped``.

Sinks:
    - MemoryAuditSink: in-process list, scoped to the owning gate/session
    - JsonlAuditSink: one JSON object per line in a file
    - SQLiteAuditSink (audit.db): single-file database, see that module
"""

import json
import logging
import threading
from abc import ABC, abstractmethod
from pathlib import Path

from judgment_gate.schema import AuditEntry

logger = logging.getLogger(__name__)


class AuditSink(ABC):
    """
    Abstract base class for audit sinks.

    Subclasses implement ``_write`` and ``get_entries``; ``record`` wraps
    ``_write`` with serialization and failure handling.

    Attributes:
        dropped: Number of entries that could not be stored
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.dropped = 0

    def record(self, entry: AuditEntry) -> None:
        """
        Append an entry. Never raises.

        Args:
            entry: The entry to append
        """
        with self._lock:
            try:
                self._write(entry)
            except Exception as e:
                self.dropped += 1
                logger.warning(
                    "%s failed to record audit entry (%s): %s",
                    type(self).__name__,
                    type(e).__name__,
                    e,
                )

    @abstractmethod
    def _write(self, entry: AuditEntry) -> None:
        """Store one entry. Called with the sink lock held."""
        ...

    @abstractmethod
    def get_entries(self) -> list[AuditEntry]:
        """Return a snapshot of all entries in insertion order."""
        ...


class MemoryAuditSink(AuditSink):
    """In-memory sink. Lifetime is that of the object that owns it."""

    def __init__(self) -> None:
        super().__init__()
        self._entries: list[AuditEntry] = []

    def _write(self, entry: AuditEntry) -> None:
        self._entries.append(entry)

    def get_entries(self) -> list[AuditEntry]:
        with self._lock:
            return list(self._entries)


class JsonlAuditSink(AuditSink):
    """
    Append-only JSONL file sink.

    Each entry is ``AuditEntry.to_record()`` serialized on its own line.
    Writes are serialized by the sink lock so lines never interleave.

    Attributes:
        path: Path to the JSONL file (created on first write)
    """

    def __init__(self, path: Path | str) -> None:
        super().__init__()
        self.path = Path(path)

    def _write(self, entry: AuditEntry) -> None:
        line = json.dumps(entry.to_record(), separators=(",", ":")) + "\n"
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("a", encoding="utf-8") as fh:
            fh.write(line)

    def get_entries(self) -> list[AuditEntry]:
        with self._lock:
            if not self.path.exists():
                return []
            entries = []
            with self.path.open(encoding="utf-8") as fh:
                for lineno, raw in enumerate(fh, start=1):
                    line = raw.strip()
                    if not line:
                        continue
                    try:
                        entries.append(AuditEntry.model_validate_json(line))
                    except ValueError as e:
                        logger.warning(
                            "corrupted audit line %d in %s skipped: %s",
                            lineno,
                            self.path,
                            e,
                        )
            return entries
