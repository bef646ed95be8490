"""
Audit module for Judgment Gate.

One AuditEntry is recorded per judgment outcome. Sinks are explicitly owned
by the boundary or gate that writes to them; there is no process-wide log.

Sinks:
    - MemoryAuditSink: in-process, per gate or session
    - JsonlAuditSink: append-only JSON lines file
    - SQLiteAuditSink: single-file SQLite database
"""

from judgment_gate.audit.db import SQLiteAuditSink
from judgment_gate.audit.sink import AuditSink, JsonlAuditSink, MemoryAuditSink

__all__ = [
    "AuditSink",
    "JsonlAuditSink",
    "MemoryAuditSink",
    "SQLiteAuditSink",
]
