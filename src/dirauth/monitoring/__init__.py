"""
dirauth Monitoring Module

Audit trail for directory login attempts.

Components:
- audit: AuditSink protocol, AuditEvent and the in-memory / structlog sinks
"""

from dirauth.monitoring.audit import (
    AuditSink,
    AuditSubject,
    AuditEvent,
    AuditEventType,
    InMemoryAuditLog,
    StructlogAuditSink,
    CompositeAuditSink,
)

__all__ = [
    "AuditSink",
    "AuditSubject",
    "AuditEvent",
    "AuditEventType",
    "InMemoryAuditLog",
    "StructlogAuditSink",
    "CompositeAuditSink",
]
