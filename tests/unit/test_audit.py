"""
Unit tests for dirauth.monitoring.audit module.
"""

import csv
import json

import pytest
from structlog.testing import capture_logs

from dirauth.core.types import SUCCESS_TAG, ClientContext, FailureReason, LocalUser
from dirauth.monitoring.audit import (
    AuditEvent,
    AuditEventType,
    AuditSink,
    CompositeAuditSink,
    InMemoryAuditLog,
    StructlogAuditSink,
)


@pytest.fixture
def user() -> LocalUser:
    return LocalUser(id=7, email="euler@ldap.forumsys.com", name="Leonhard Euler", activated=True)


@pytest.fixture
def populated_log(audit_log, user, client_context) -> InMemoryAuditLog:
    audit_log.record_failure(user, FailureReason.INVALID_PASSWORD.tag, client_context)
    audit_log.record_failure("euler@ldap.forumsys.com", FailureReason.INVALID_EMAIL.tag, client_context)
    audit_log.record_success(user, SUCCESS_TAG, client_context)
    audit_log.record_failure("nobody@example.com", FailureReason.INVALID_EMAIL.tag, ClientContext())
    return audit_log


class TestAuditEvent:
    """Tests for AuditEvent."""

    def test_from_local_user(self, user, client_context):
        event = AuditEvent.create(AuditEventType.SUCCESS, user, SUCCESS_TAG, client_context)
        assert event.subject == user.email
        assert event.user_id == 7
        assert event.success
        assert event.client_ip == "127.0.0.1"

    def test_from_raw_email(self, client_context):
        event = AuditEvent.create(
            AuditEventType.FAILURE, "x@example.com", FailureReason.INVALID_EMAIL.tag, client_context
        )
        assert event.subject == "x@example.com"
        assert event.user_id is None
        assert not event.success

    def test_to_dict(self, user, client_context):
        data = AuditEvent.create(AuditEventType.FAILURE, user, "t", client_context).to_dict()
        assert data["event_type"] == "FAILURE"
        assert data["user_agent"] == "pytest"
        assert "T" in data["timestamp"]


class TestInMemoryAuditLog:
    """Tests for InMemoryAuditLog queries and exports."""

    def test_implements_protocol(self, audit_log):
        assert isinstance(audit_log, AuditSink)

    def test_queries(self, populated_log):
        assert len(populated_log.events) == 4
        assert len(populated_log.successes()) == 1
        assert len(populated_log.failures()) == 3
        assert len(populated_log.for_subject("euler@ldap.forumsys.com")) == 3

    def test_statistics(self, populated_log):
        stats = populated_log.get_statistics()
        assert stats["total_events"] == 4
        assert stats["successes"] == 1
        assert stats["failures"] == 3
        assert stats["failures_by_tag"] == {
            FailureReason.INVALID_PASSWORD.tag: 1,
            FailureReason.INVALID_EMAIL.tag: 2,
        }
        assert stats["unique_subjects"] == 2

    def test_export_json(self, populated_log, tmp_path):
        path = tmp_path / "audit.json"
        populated_log.export_json(str(path))
        data = json.loads(path.read_text())
        assert len(data["events"]) == 4
        assert data["statistics"]["successes"] == 1

    def test_export_csv(self, populated_log, tmp_path):
        path = tmp_path / "audit.csv"
        populated_log.export_csv(str(path))
        with open(path, newline="") as f:
            rows = list(csv.DictReader(f))
        assert len(rows) == 4
        assert rows[2]["tag"] == SUCCESS_TAG

    def test_clear(self, populated_log):
        assert populated_log.clear() == 4
        assert populated_log.events == []


class TestStructlogAuditSink:
    """Tests for StructlogAuditSink."""

    def test_levels(self, user, client_context):
        sink = StructlogAuditSink()
        with capture_logs() as logs:
            sink.record_success(user, SUCCESS_TAG, client_context)
            sink.record_failure("x@example.com", FailureReason.INVALID_EMAIL.tag, client_context)

        assert [entry["event"] for entry in logs] == ["auth_audit", "auth_audit"]
        assert [entry["log_level"] for entry in logs] == ["info", "warning"]
        assert logs[1]["tag"] == FailureReason.INVALID_EMAIL.tag
        assert logs[1]["subject"] == "x@example.com"

    def test_event_time_does_not_collide_with_log_timestamp(self, user, client_context):
        sink = StructlogAuditSink()
        with capture_logs() as logs:
            sink.record_success(user, SUCCESS_TAG, client_context)

        assert "timestamp" not in logs[0]
        assert logs[0]["occurred_at"].endswith("+00:00")


class TestCompositeAuditSink:
    """Tests for CompositeAuditSink."""

    def test_fans_out(self, user, client_context):
        first, second = InMemoryAuditLog(), InMemoryAuditLog()
        sink = CompositeAuditSink([first, second])
        sink.record_success(user, SUCCESS_TAG, client_context)
        sink.record_failure(user, FailureReason.ACCOUNT_DISABLED.tag, client_context)
        assert len(first.events) == len(second.events) == 2
        assert isinstance(sink, AuditSink)
