"""In-memory storage for metrics, alerts, anomalies, and audit records.

State lives for the lifetime of the process only. Every public method runs
under one re-entrant lock; callers that need a compound read-modify-write
(the lifecycle manager) hold ``store.lock`` around the whole operation.
"""
import bisect
import logging
import threading
from datetime import datetime, timezone

logger = logging.getLogger("microgrid.models.store")


class MemoryStore:
    def __init__(self, max_metrics=2000):
        self.max_metrics = max_metrics
        self.lock = threading.RLock()
        self._metrics = []
        self._alerts = {}
        self._anomalies = {}
        self._interactions = []
        self._notifications = []

    # ─── Metrics ─────────────────────────────────────────

    def save_metric(self, metric):
        with self.lock:
            if not self._metrics or metric.timestamp >= self._metrics[-1].timestamp:
                self._metrics.append(metric)
            else:
                bisect.insort(self._metrics, metric, key=lambda m: m.timestamp)
            overflow = len(self._metrics) - self.max_metrics
            if overflow > 0:
                del self._metrics[:overflow]
            return metric

    def get_latest_metric(self):
        with self.lock:
            return self._metrics[-1] if self._metrics else None

    def get_recent_metrics(self, limit=24):
        """Trailing window of readings, oldest first."""
        with self.lock:
            if limit <= 0:
                return []
            return list(self._metrics[-limit:])

    def get_metric_count(self):
        with self.lock:
            return len(self._metrics)

    # ─── Alerts ──────────────────────────────────────────

    def save_alert(self, alert):
        with self.lock:
            self._alerts[alert.id] = alert
            return alert

    def get_alert(self, alert_id):
        with self.lock:
            return self._alerts.get(alert_id)

    def get_alerts(self):
        """All alerts, newest first."""
        with self.lock:
            return sorted(self._alerts.values(), key=lambda a: a.timestamp, reverse=True)

    # ─── Interactions ────────────────────────────────────

    def save_interaction(self, interaction):
        with self.lock:
            self._interactions.append(interaction)
            return interaction

    def get_interactions(self, alert_id=None):
        with self.lock:
            if alert_id is None:
                return list(self._interactions)
            return [i for i in self._interactions if i.alert_id == alert_id]

    # ─── Anomalies ───────────────────────────────────────

    def save_anomaly(self, anomaly):
        with self.lock:
            self._anomalies[anomaly.id] = anomaly
            return anomaly

    def get_anomaly(self, anomaly_id):
        with self.lock:
            return self._anomalies.get(anomaly_id)

    def resolve_anomaly(self, anomaly_id):
        with self.lock:
            anomaly = self._anomalies.get(anomaly_id)
            if anomaly is not None and not anomaly.resolved:
                anomaly.resolved = True
                anomaly.resolved_at = datetime.now(timezone.utc)
            return anomaly

    def get_anomalies(self, limit=50, include_resolved=True):
        with self.lock:
            items = sorted(self._anomalies.values(), key=lambda a: a.timestamp, reverse=True)
            if not include_resolved:
                items = [a for a in items if not a.resolved]
            return items[:limit]

    # ─── Notifications ───────────────────────────────────

    def save_notification(self, record):
        with self.lock:
            self._notifications.append(record)
            return record

    def get_notifications(self, alert_id=None, limit=100):
        with self.lock:
            items = self._notifications
            if alert_id is not None:
                items = [n for n in items if n.alert_id == alert_id]
            return list(reversed(items))[:limit]

    def clear(self):
        with self.lock:
            self._metrics.clear()
            self._alerts.clear()
            self._anomalies.clear()
            self._interactions.clear()
            self._notifications.clear()
        logger.info("Store cleared")
