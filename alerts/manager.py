"""Alert lifecycle: creation, state transitions, queries, and statistics."""
import logging
from collections import Counter
from datetime import datetime, timedelta, timezone

from alerts.errors import AlertNotFoundError, InvalidRequestError, InvalidTransitionError
from alerts.schema import ManualAlertRequest
from models.alerts import Alert, AlertInteraction
from models.enums import AlertSeverity, AlertSource, AlertStatus, AlertType, InteractionAction

logger = logging.getLogger("microgrid.alerts.manager")

TRANSITIONS = {
    AlertStatus.ACTIVE: {AlertStatus.ACKNOWLEDGED, AlertStatus.RESOLVED, AlertStatus.DISMISSED},
    AlertStatus.ACKNOWLEDGED: {AlertStatus.RESOLVED, AlertStatus.DISMISSED},
    AlertStatus.RESOLVED: set(),
    AlertStatus.DISMISSED: set(),
}

DATE_RANGES = {
    "24h": timedelta(hours=24),
    "7d": timedelta(days=7),
    "30d": timedelta(days=30),
}


def range_start(date_range, now=None):
    """Cutoff for a date-range keyword; None means no cutoff."""
    if not date_range or date_range == "all":
        return None
    if date_range not in DATE_RANGES:
        raise InvalidRequestError(f"Unknown date range: {date_range}")
    return (now or datetime.now(timezone.utc)) - DATE_RANGES[date_range]


class AlertManager:
    def __init__(self, store):
        self.store = store

    # ─── Creation ────────────────────────────────────────

    def create(self, result, source=AlertSource.SYSTEM, title=None, anomaly_id=None, extra_metadata=None) -> Alert:
        """Persist a detection result as a new active alert."""
        metadata = dict(result.metadata)
        metadata.setdefault("confidence", result.confidence)
        metadata.setdefault("affected_component", result.affected_component)
        if extra_metadata:
            metadata.update(extra_metadata)
        alert = Alert(
            title=title or result.title or f"{AlertType(result.type).value.replace('_', ' ').title()} Alert",
            description=result.description,
            type=AlertType(result.type),
            severity=AlertSeverity(result.severity),
            source=AlertSource(source),
            anomaly_id=anomaly_id,
            metadata=metadata,
        )
        self.store.save_alert(alert)
        logger.info(f"Alert created [{alert.severity.value}] {alert.title} ({alert.id})")
        return alert

    def create_manual(self, payload: dict) -> Alert:
        """Validate an operator submission and store it; raises pydantic.ValidationError."""
        req = ManualAlertRequest.model_validate(payload or {})
        alert = Alert(
            title=req.title,
            description=req.description,
            type=req.type,
            severity=req.severity,
            source=AlertSource.MANUAL,
            location=req.location,
            device_id=req.device_id,
            metadata=req.metadata,
        )
        self.store.save_alert(alert)
        logger.info(f"Manual alert created [{alert.severity.value}] {alert.title} ({alert.id})")
        return alert

    # ─── Lookup ──────────────────────────────────────────

    def get(self, alert_id) -> Alert:
        alert = self.store.get_alert(alert_id)
        if alert is None:
            raise AlertNotFoundError(alert_id)
        return alert

    def get_by_ids(self, alert_ids):
        return [a for a in (self.store.get_alert(i) for i in alert_ids) if a is not None]

    def get_interactions(self, alert_id):
        self.get(alert_id)
        return self.store.get_interactions(alert_id)

    def get_active(self):
        """Open alerts (active or acknowledged), newest first."""
        return [a for a in self.store.get_alerts() if a.is_open]

    # ─── Transitions ─────────────────────────────────────

    def acknowledge(self, alert_id, user_id="system", notes=None) -> Alert:
        return self._transition(alert_id, AlertStatus.ACKNOWLEDGED, InteractionAction.ACKNOWLEDGE, user_id, notes)

    def resolve(self, alert_id, user_id="system", notes=None) -> Alert:
        return self._transition(alert_id, AlertStatus.RESOLVED, InteractionAction.RESOLVE, user_id, notes)

    def dismiss(self, alert_id, user_id="system", notes=None) -> Alert:
        return self._transition(alert_id, AlertStatus.DISMISSED, InteractionAction.DISMISS, user_id, notes)

    def _transition(self, alert_id, target, action, user_id, notes):
        with self.store.lock:
            alert = self.get(alert_id)
            if target not in TRANSITIONS[alert.status]:
                raise InvalidTransitionError(alert_id, alert.status, target)

            now = datetime.now(timezone.utc)
            if target == AlertStatus.ACKNOWLEDGED:
                alert.acknowledged_at, alert.acknowledged_by = now, user_id
            elif target == AlertStatus.RESOLVED:
                alert.resolved_at, alert.resolved_by = now, user_id
                alert.resolution_notes = notes
            elif target == AlertStatus.DISMISSED:
                alert.dismissed_at, alert.dismissed_by = now, user_id
            previous = alert.status
            alert.status = target

            self.record_interaction(alert_id, user_id, action, notes,
                                    {"from": previous.value, "to": target.value}, timestamp=now)
        logger.info(f"Alert {alert_id}: {previous.value} → {target.value} by {user_id}")
        return alert

    def add_notes(self, alert_id, user_id="system", notes=None):
        if not notes or not str(notes).strip():
            raise InvalidRequestError("Notes are required")
        with self.store.lock:
            self.get(alert_id)
            return self.record_interaction(alert_id, user_id, InteractionAction.ADD_NOTES, notes)

    def record_interaction(self, alert_id, user_id, action, notes=None, metadata=None, timestamp=None):
        interaction = AlertInteraction(
            alert_id=alert_id,
            user_id=user_id,
            action=InteractionAction(action).value,
            notes=notes,
            metadata=metadata or {},
        )
        if timestamp:
            interaction.timestamp = timestamp
        return self.store.save_interaction(interaction)

    # ─── Queries ─────────────────────────────────────────

    def query(self, severity=None, type=None, status=None, search=None, date_range="all",
              limit=50, offset=0):
        """Filter alerts, newest first. Returns (page, total_matching)."""
        cutoff = range_start(date_range)
        alerts = self.store.get_alerts()
        if severity and severity != "all":
            alerts = [a for a in alerts if a.severity.value == severity]
        if type and type != "all":
            alerts = [a for a in alerts if a.type.value == type]
        if status and status != "all":
            alerts = [a for a in alerts if a.status.value == status]
        if search:
            term = search.lower()
            alerts = [a for a in alerts if term in a.title.lower() or term in a.description.lower()]
        if cutoff:
            alerts = [a for a in alerts if a.timestamp >= cutoff]
        return alerts[offset:offset + limit], len(alerts)

    def stats(self, period="7d"):
        cutoff = range_start(period)
        alerts = [a for a in self.store.get_alerts() if cutoff is None or a.timestamp >= cutoff]
        by_status = Counter(a.status for a in alerts)
        by_severity = Counter(a.severity for a in alerts)

        response_minutes = []
        for a in alerts:
            touched = [t for t in (a.acknowledged_at, a.resolved_at, a.dismissed_at) if t]
            if touched:
                response_minutes.append((min(touched) - a.timestamp).total_seconds() / 60)

        closed = by_status[AlertStatus.RESOLVED] + by_status[AlertStatus.DISMISSED]
        fp_rate = by_status[AlertStatus.DISMISSED] / closed * 100 if closed else 0.0

        return {
            "period": period,
            "total": len(alerts),
            "active": by_status[AlertStatus.ACTIVE],
            "acknowledged": by_status[AlertStatus.ACKNOWLEDGED],
            "resolved": by_status[AlertStatus.RESOLVED],
            "dismissed": by_status[AlertStatus.DISMISSED],
            "critical": by_severity[AlertSeverity.CRITICAL],
            "warning": by_severity[AlertSeverity.WARNING],
            "info": by_severity[AlertSeverity.INFO],
            "averageResponseTime": round(sum(response_minutes) / len(response_minutes), 1) if response_minutes else 0.0,
            "falsePositiveRate": round(fp_rate, 1),
            "topTypes": [
                {"type": t.value, "count": n}
                for t, n in Counter(a.type for a in alerts).most_common(5)
            ],
        }
