"""
dirauth Authentication Audit Trail

Records every directory login attempt, successful or not.

Failure reasons never reach the caller of ``authenticate``; the audit
trail is the only place they are visible.

Usage:
    audit = InMemoryAuditLog()
    authenticator = LDAPAuthenticator(config, user_store=store, audit_sink=audit)

    authenticator.authenticate("jdoe@example.com", "password", "10.0.0.5")

    for event in audit.failures():
        print(event.subject, event.tag, event.client_ip)

    audit.export_json("audit.json")
"""

from __future__ import annotations

import csv
import json
import threading
import uuid
from datetime import datetime, timezone
from enum import Enum, auto
from typing import Any, Dict, List, Optional, Protocol, Sequence, Union, runtime_checkable

import attrs
import structlog

from dirauth.core.types import ClientContext, LocalUser

AuditSubject = Union[LocalUser, str]


# =============================================================================
# AUDIT SINK PROTOCOL
# =============================================================================


@runtime_checkable
class AuditSink(Protocol):
    """
    Receiver of authentication audit events.

    ``subject`` is the local user record when one exists, otherwise the raw
    identifier that was typed in.
    """

    def record_success(self, subject: AuditSubject, tag: str, client_context: ClientContext) -> None:
        ...

    def record_failure(self, subject: AuditSubject, tag: str, client_context: ClientContext) -> None:
        ...


# =============================================================================
# EVENT TYPES
# =============================================================================


class AuditEventType(Enum):
    """Outcome recorded by an audit event."""

    SUCCESS = auto()
    FAILURE = auto()


@attrs.define(frozen=True, slots=True)
class AuditEvent:
    """Immutable record of one login outcome."""

    event_id: str
    event_type: AuditEventType
    timestamp: datetime
    subject: str
    tag: str
    user_id: Optional[int] = None
    client_ip: str = ""
    user_agent: str = ""

    @classmethod
    def create(
        cls,
        event_type: AuditEventType,
        subject: AuditSubject,
        tag: str,
        client_context: ClientContext,
    ) -> AuditEvent:
        return cls(
            event_id=str(uuid.uuid4()),
            event_type=event_type,
            timestamp=datetime.now(timezone.utc),
            subject=subject.email if isinstance(subject, LocalUser) else str(subject),
            tag=tag,
            user_id=subject.id if isinstance(subject, LocalUser) else None,
            client_ip=client_context.ip_address,
            user_agent=client_context.user_agent,
        )

    @property
    def success(self) -> bool:
        return self.event_type is AuditEventType.SUCCESS

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "event_id": self.event_id,
            "event_type": self.event_type.name,
            "timestamp": self.timestamp.isoformat(),
            "subject": self.subject,
            "tag": self.tag,
            "user_id": self.user_id,
            "client_ip": self.client_ip,
            "user_agent": self.user_agent,
        }


# =============================================================================
# SINKS
# =============================================================================


@attrs.define
class InMemoryAuditLog:
    """
    Thread-safe AuditSink that keeps events in memory.

    Supports querying by outcome and subject, plus JSON/CSV export.
    """

    _events: List[AuditEvent] = attrs.Factory(list)
    _lock: threading.RLock = attrs.Factory(threading.RLock)
    _logger: Any = attrs.Factory(lambda: structlog.get_logger())

    def record_success(self, subject: AuditSubject, tag: str, client_context: ClientContext) -> None:
        self._append(AuditEvent.create(AuditEventType.SUCCESS, subject, tag, client_context))

    def record_failure(self, subject: AuditSubject, tag: str, client_context: ClientContext) -> None:
        self._append(AuditEvent.create(AuditEventType.FAILURE, subject, tag, client_context))

    def _append(self, event: AuditEvent) -> None:
        with self._lock:
            self._events.append(event)

    @property
    def events(self) -> List[AuditEvent]:
        with self._lock:
            return list(self._events)

    def successes(self) -> List[AuditEvent]:
        return [e for e in self.events if e.success]

    def failures(self) -> List[AuditEvent]:
        return [e for e in self.events if not e.success]

    def for_subject(self, subject: str) -> List[AuditEvent]:
        """Events recorded against an email address."""
        return [e for e in self.events if e.subject == subject]

    def get_statistics(self) -> Dict[str, Any]:
        events = self.events
        failures_by_tag: Dict[str, int] = {}
        for event in events:
            if not event.success:
                failures_by_tag[event.tag] = failures_by_tag.get(event.tag, 0) + 1
        return {
            "total_events": len(events),
            "successes": sum(1 for e in events if e.success),
            "failures": sum(1 for e in events if not e.success),
            "failures_by_tag": failures_by_tag,
            "unique_subjects": len({e.subject for e in events}),
        }

    def export_json(self, filepath: str) -> None:
        """
        Export all audit events to a JSON file.

        Args:
            filepath: Path to output JSON file
        """
        events = self.events
        data = {
            "export_timestamp": datetime.now(timezone.utc).isoformat(),
            "statistics": self.get_statistics(),
            "events": [e.to_dict() for e in events],
        }

        with open(filepath, "w") as f:
            json.dump(data, f, indent=2, default=str)

        self._logger.info("exported_audit_events", filepath=filepath, count=len(events))

    def export_csv(self, filepath: str) -> None:
        """
        Export audit events to a CSV file.

        Args:
            filepath: Path to output CSV file
        """
        fieldnames = [
            "event_id", "event_type", "timestamp", "subject", "tag",
            "user_id", "client_ip", "user_agent",
        ]
        events = self.events

        with open(filepath, "w", newline="") as f:
            writer = csv.DictWriter(f, fieldnames=fieldnames)
            writer.writeheader()
            for event in events:
                writer.writerow(event.to_dict())

        self._logger.info("exported_audit_csv", filepath=filepath, count=len(events))

    def clear(self) -> int:
        with self._lock:
            count = len(self._events)
            self._events.clear()
            return count


@attrs.define
class StructlogAuditSink:
    """AuditSink that writes each event as an ``auth_audit`` log line."""

    _logger: Any = attrs.Factory(lambda: structlog.get_logger("dirauth.audit"))

    def record_success(self, subject: AuditSubject, tag: str, client_context: ClientContext) -> None:
        event = AuditEvent.create(AuditEventType.SUCCESS, subject, tag, client_context)
        self._logger.info("auth_audit", **_log_fields(event))

    def record_failure(self, subject: AuditSubject, tag: str, client_context: ClientContext) -> None:
        event = AuditEvent.create(AuditEventType.FAILURE, subject, tag, client_context)
        self._logger.warning("auth_audit", **_log_fields(event))


def _log_fields(event: AuditEvent) -> Dict[str, Any]:
    # "timestamp" belongs to structlog's TimeStamper; keep the event time apart.
    fields = event.to_dict()
    fields["occurred_at"] = fields.pop("timestamp")
    return fields


@attrs.define
class CompositeAuditSink:
    """Fans every event out to several sinks, in order."""

    sinks: Sequence[AuditSink] = attrs.Factory(list)

    def record_success(self, subject: AuditSubject, tag: str, client_context: ClientContext) -> None:
        for sink in self.sinks:
            sink.record_success(subject, tag, client_context)

    def record_failure(self, subject: AuditSubject, tag: str, client_context: ClientContext) -> None:
        for sink in self.sinks:
            sink.record_failure(subject, tag, client_context)
