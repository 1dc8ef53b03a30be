"""Tests for alert lifecycle management."""
import pytest
from datetime import datetime, timedelta, timezone
from pydantic import ValidationError

from alerts.errors import AlertNotFoundError, InvalidRequestError, InvalidTransitionError
from alerts.manager import AlertManager, range_start
from models.alerts import Alert, AlertDetectionResult
from models.enums import AlertSeverity, AlertSource, AlertStatus, AlertType


@pytest.fixture
def manager(store):
    return AlertManager(store)


def _detection(severity="critical", type_="consumption", title="Critical Consumption Spike"):
    return AlertDetectionResult(
        severity=AlertSeverity(severity), type=AlertType(type_), title=title,
        description="Consumption 375.0 kW", confidence=0.95, affected_component="grid_load",
        metadata={"detection_method": "threshold"},
    )


class TestCreate:
    def test_create_from_detection(self, manager, store):
        alert = manager.create(_detection())
        assert alert.status == AlertStatus.ACTIVE
        assert alert.source == AlertSource.SYSTEM
        assert alert.type == AlertType.CONSUMPTION
        assert alert.metadata["confidence"] == 0.95
        assert alert.metadata["affected_component"] == "grid_load"
        assert store.get_alert(alert.id) is alert

    def test_title_override(self, manager):
        alert = manager.create(_detection(), title="Test Alert: Spike")
        assert alert.title == "Test Alert: Spike"

    def test_title_from_type_when_missing(self, manager):
        alert = manager.create(_detection(type_="device_fault", title=""))
        assert alert.title == "Device Fault Alert"

    def test_recurring_issue_creates_new_alert(self, manager, store):
        manager.create(_detection())
        manager.create(_detection())
        assert len(store.get_alerts()) == 2

    def test_manual_alert(self, manager):
        alert = manager.create_manual({
            "title": "  Inverter smoking ", "description": "Seen on site visit",
            "type": "device_fault", "severity": "critical", "deviceId": "inv-3",
        })
        assert alert.source == AlertSource.MANUAL
        assert alert.title == "Inverter smoking"
        assert alert.device_id == "inv-3"
        assert alert.severity == AlertSeverity.CRITICAL

    def test_manual_alert_defaults_to_warning(self, manager):
        alert = manager.create_manual({"title": "t", "description": "d", "type": "storage"})
        assert alert.severity == AlertSeverity.WARNING

    @pytest.mark.parametrize("payload", [
        {},
        {"title": "", "description": "d", "type": "storage"},
        {"title": "t", "description": "d", "type": "weather"},
        {"title": "t", "description": "d", "type": "storage", "severity": "urgent"},
        {"title": "x" * 201, "description": "d", "type": "storage"},
    ])
    def test_manual_alert_rejected(self, manager, store, payload):
        with pytest.raises(ValidationError):
            manager.create_manual(payload)
        assert store.get_alerts() == []


class TestTransitions:
    def test_acknowledge_then_resolve(self, manager, store):
        alert = manager.create(_detection())
        manager.acknowledge(alert.id, "alice")
        resolved = manager.resolve(alert.id, "alice", "Replaced breaker")

        assert resolved.status == AlertStatus.RESOLVED
        assert resolved.resolved_by == "alice"
        assert resolved.acknowledged_by == "alice"
        assert resolved.resolution_notes == "Replaced breaker"
        interactions = store.get_interactions(alert.id)
        assert [i.action for i in interactions] == ["acknowledge", "resolve"]
        assert interactions[1].metadata == {"from": "acknowledged", "to": "resolved"}

    def test_resolve_from_active(self, manager):
        alert = manager.create(_detection())
        assert manager.resolve(alert.id, "bob").status == AlertStatus.RESOLVED

    def test_dismiss(self, manager):
        alert = manager.create(_detection())
        dismissed = manager.dismiss(alert.id, "bob")
        assert dismissed.status == AlertStatus.DISMISSED
        assert dismissed.dismissed_by == "bob"
        assert dismissed.dismissed_at is not None

    @pytest.mark.parametrize("first,second", [
        ("resolve", "acknowledge"),
        ("resolve", "resolve"),
        ("dismiss", "resolve"),
        ("dismiss", "acknowledge"),
        ("acknowledge", "acknowledge"),
    ])
    def test_illegal_transitions(self, manager, store, first, second):
        alert = manager.create(_detection())
        getattr(manager, first)(alert.id, "alice")
        status = alert.status
        with pytest.raises(InvalidTransitionError) as exc:
            getattr(manager, second)(alert.id, "alice")
        assert exc.value.current == status.value
        assert alert.status == status
        assert len(store.get_interactions(alert.id)) == 1

    def test_unknown_alert(self, manager):
        with pytest.raises(AlertNotFoundError):
            manager.acknowledge("missing", "alice")

    def test_add_notes(self, manager, store):
        alert = manager.create(_detection())
        manager.add_notes(alert.id, "carol", "Crew dispatched")
        assert alert.status == AlertStatus.ACTIVE
        assert store.get_interactions(alert.id)[0].action == "add_notes"

    def test_add_notes_requires_text(self, manager):
        alert = manager.create(_detection())
        with pytest.raises(InvalidRequestError):
            manager.add_notes(alert.id, "carol", "   ")

    def test_get_interactions_unknown_alert(self, manager):
        with pytest.raises(AlertNotFoundError):
            manager.get_interactions("missing")


class TestQueries:
    def _seed(self, manager, store):
        now = datetime.now(timezone.utc)
        a = manager.create(_detection("critical", "consumption", "Consumption spike"))
        b = manager.create(_detection("warning", "generation", "Solar degraded"))
        c = manager.create(_detection("info", "storage", "Storage note"))
        old = store.save_alert(Alert(title="Old storage issue", type=AlertType.STORAGE,
                                     timestamp=now - timedelta(days=10)))
        manager.acknowledge(b.id, "alice")
        return a, b, c, old

    def test_range_start(self):
        now = datetime(2025, 1, 10, tzinfo=timezone.utc)
        assert range_start("24h", now) == datetime(2025, 1, 9, tzinfo=timezone.utc)
        assert range_start("all") is None
        assert range_start(None) is None
        with pytest.raises(InvalidRequestError):
            range_start("1y")

    def test_filters(self, manager, store):
        a, b, c, old = self._seed(manager, store)
        page, total = manager.query(severity="critical")
        assert [x.id for x in page] == [a.id]
        page, total = manager.query(status="acknowledged")
        assert [x.id for x in page] == [b.id]
        page, total = manager.query(type="storage")
        assert total == 2
        page, total = manager.query(type="storage", date_range="7d")
        assert [x.id for x in page] == [c.id]

    def test_search_case_insensitive(self, manager, store):
        self._seed(manager, store)
        page, _ = manager.query(search="SOLAR")
        assert [x.title for x in page] == ["Solar degraded"]

    def test_pagination(self, manager, store):
        self._seed(manager, store)
        page, total = manager.query(limit=2, offset=1)
        assert total == 4
        assert len(page) == 2

    def test_get_active(self, manager, store):
        a, b, c, old = self._seed(manager, store)
        manager.resolve(a.id, "alice")
        assert {x.id for x in manager.get_active()} == {b.id, c.id, old.id}

    def test_stats(self, manager, store):
        a, b, c, old = self._seed(manager, store)
        manager.resolve(a.id, "alice")
        manager.dismiss(c.id, "alice")
        stats = manager.stats("7d")
        assert stats["total"] == 3
        assert stats["resolved"] == 1
        assert stats["dismissed"] == 1
        assert stats["acknowledged"] == 1
        assert stats["active"] == 0
        assert stats["critical"] == 1
        assert stats["falsePositiveRate"] == 50.0
        assert stats["averageResponseTime"] >= 0.0
        assert {t["type"] for t in stats["topTypes"]} == {"consumption", "generation", "storage"}

    def test_stats_all_time(self, manager, store):
        self._seed(manager, store)
        stats = manager.stats("all")
        assert stats["total"] == 4
        assert stats["falsePositiveRate"] == 0.0

    def test_get_by_ids_skips_unknown(self, manager):
        a = manager.create(_detection())
        assert [x.id for x in manager.get_by_ids([a.id, "missing"])] == [a.id]
