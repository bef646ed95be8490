"""
SQLite audit storage for Judgment Gate.

Persists audit entries in a single SQLite database file so that judgment
history survives the process that produced it.

Design Principles:
    - Append-only: rows are inserted, never updated or deleted
    - Ordered: an autoincrement sequence preserves insertion order
    - Self-contained: one .db file holds the whole history

Tables:
    - schema_version: Applied schema version
    - audit_entries: One row per judgment outcome
"""

import json
import sqlite3
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from judgment_gate.audit.sink import AuditSink
from judgment_gate.errors import (
    StorageConnectionError,
    StorageReadError,
    StorageWriteError,
)
from judgment_gate.schema import AuditEntry, ContextSummary

# Schema version for migrations
SCHEMA_VERSION = 1

CREATE_TABLES_SQL = """
-- Schema version tracking
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY,
    applied_at TEXT NOT NULL
);

-- Audit entries: one row per judgment outcome
CREATE TABLE IF NOT EXISTS audit_entries (
    seq INTEGER PRIMARY KEY AUTOINCREMENT,
    ts TEXT NOT NULL,
    decision TEXT,
    rule_id TEXT,
    reason TEXT,
    context_json TEXT,
    executed INTEGER NOT NULL,
    blocked INTEGER NOT NULL,
    proposal_id TEXT,
    error TEXT
);

CREATE INDEX IF NOT EXISTS idx_audit_entries_rule_id ON audit_entries(rule_id);
CREATE INDEX IF NOT EXISTS idx_audit_entries_ts ON audit_entries(ts);
"""


def now_iso() -> str:
    """Get current UTC time in ISO format."""
    return datetime.now(UTC).isoformat()


class SQLiteAuditSink(AuditSink):
    """
    Audit sink backed by a SQLite database.

    Usage:
        with SQLiteAuditSink("audit.db") as sink:
            boundary = ExecutionBoundary(sink)
            ...
            for entry in sink.get_entries():
                print(entry.decision)

    Attributes:
        db_path: Path to the database file (created if missing)
    """

    def __init__(self, db_path: str | Path) -> None:
        """
        Open (or create) the audit database.

        Raises:
            StorageConnectionError: If the database cannot be opened
            StorageWriteError: If the schema cannot be created
        """
        super().__init__()
        self.db_path = Path(db_path)
        self._conn: sqlite3.Connection | None = None
        self._connect()
        self._init_schema()

    def _connect(self) -> None:
        """Establish database connection."""
        try:
            self._conn = sqlite3.connect(
                str(self.db_path),
                check_same_thread=False,
            )
            self._conn.row_factory = sqlite3.Row
        except sqlite3.Error as e:
            raise StorageConnectionError(
                db_path=str(self.db_path),
                operation="connect",
                underlying_error=str(e),
            ) from e

    def _init_schema(self) -> None:
        """Initialize database schema if needed."""
        try:
            cursor = self._conn.executescript(CREATE_TABLES_SQL)
            cursor.close()

            cursor = self._conn.execute(
                "SELECT version FROM schema_version ORDER BY version DESC LIMIT 1"
            )
            if cursor.fetchone() is None:
                self._conn.execute(
                    "INSERT INTO schema_version (version, applied_at) VALUES (?, ?)",
                    (SCHEMA_VERSION, now_iso()),
                )
            self._conn.commit()
        except sqlite3.Error as e:
            raise StorageWriteError(
                operation="init_schema",
                underlying_error=str(e),
            ) from e

    def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            if self._conn:
                self._conn.close()
                self._conn = None

    def __enter__(self) -> "SQLiteAuditSink":
        """Enter context manager."""
        return self

    def __exit__(self, *args: Any) -> None:
        """Exit context manager."""
        self.close()

    def _write(self, entry: AuditEntry) -> None:
        if self._conn is None:
            raise StorageWriteError(
                operation="insert_entry",
                underlying_error="database is closed",
            )
        context_json = (
            entry.context.model_dump_json() if entry.context is not None else None
        )
        try:
            self._conn.execute(
                """
                INSERT INTO audit_entries (
                    ts, decision, rule_id, reason, context_json,
                    executed, blocked, proposal_id, error
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    entry.ts.isoformat(),
                    entry.decision,
                    entry.rule_id,
                    entry.reason,
                    context_json,
                    int(entry.executed),
                    int(entry.blocked),
                    entry.proposal_id,
                    entry.error,
                ),
            )
            self._conn.commit()
        except sqlite3.Error as e:
            raise StorageWriteError(
                operation="insert_entry",
                underlying_error=str(e),
            ) from e

    def get_entries(self, limit: int | None = None) -> list[AuditEntry]:
        """
        Read entries back in insertion order.

        Args:
            limit: Only return the most recent ``limit`` entries

        Raises:
            StorageReadError: If the query fails
        """
        with self._lock:
            if self._conn is None:
                raise StorageReadError(
                    operation="get_entries",
                    underlying_error="database is closed",
                )
            try:
                if limit is None:
                    cursor = self._conn.execute(
                        "SELECT * FROM audit_entries ORDER BY seq ASC"
                    )
                else:
                    cursor = self._conn.execute(
                        """
                        SELECT * FROM (
                            SELECT * FROM audit_entries ORDER BY seq DESC LIMIT ?
                        ) ORDER BY seq ASC
                        """,
                        (limit,),
                    )
                return [self._row_to_entry(row) for row in cursor]
            except sqlite3.Error as e:
                raise StorageReadError(
                    operation="get_entries",
                    underlying_error=str(e),
                ) from e

    def count(self) -> int:
        """Number of stored entries."""
        with self._lock:
            if self._conn is None:
                raise StorageReadError(
                    operation="count",
                    underlying_error="database is closed",
                )
            try:
                cursor = self._conn.execute("SELECT COUNT(*) FROM audit_entries")
                return cursor.fetchone()[0]
            except sqlite3.Error as e:
                raise StorageReadError(
                    operation="count",
                    underlying_error=str(e),
                ) from e

    def _row_to_entry(self, row: sqlite3.Row) -> AuditEntry:
        context = None
        if row["context_json"]:
            context = ContextSummary.model_validate(json.loads(row["context_json"]))
        return AuditEntry(
            ts=datetime.fromisoformat(row["ts"]),
            decision=row["decision"],
            rule_id=row["rule_id"],
            reason=row["reason"],
            context=context,
            executed=bool(row["executed"]),
            blocked=bool(row["blocked"]),
            proposal_id=row["proposal_id"],
            error=row["error"],
        )
