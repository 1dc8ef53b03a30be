"""Alert notification channels.

Each channel returns one NotificationRecord per delivery attempt. A channel
that has no transport configured logs the message and records it as
``logged`` instead of failing.
"""
import json
import queue
import logging
import threading
from datetime import datetime, timezone
from typing import Protocol, runtime_checkable

from models.alerts import NotificationRecord
from models.enums import AlertSeverity, Channel, DeliveryStatus

logger = logging.getLogger("microgrid.alerts.channels")


@runtime_checkable
class AlertChannel(Protocol):
    name: Channel

    def send(self, alert, recipients) -> list: ...


def _record(alert, channel, status, recipient=None, error=None):
    return NotificationRecord(
        alert_id=alert.id,
        channel=channel.value,
        recipient=recipient,
        status=status,
        error_message=error,
    )


class LiveFeed:
    """Fan-out hub for live alert events.

    Each subscriber gets its own bounded queue; a subscriber that stops
    draining loses its oldest events rather than blocking publishers.
    """

    def __init__(self, max_queue=100):
        self.max_queue = max_queue
        self._subscribers = {}
        self._lock = threading.Lock()

    def subscribe(self, client_id):
        q = queue.Queue(maxsize=self.max_queue)
        with self._lock:
            self._subscribers[client_id] = q
        logger.debug(f"Live feed subscriber added: {client_id}")
        return q

    def unsubscribe(self, client_id, q=None):
        """Drop a subscriber; with ``q`` given, only if that queue is still the registered one."""
        with self._lock:
            if q is not None and self._subscribers.get(client_id) is not q:
                return
            self._subscribers.pop(client_id, None)
        logger.debug(f"Live feed subscriber removed: {client_id}")

    def subscriber_ids(self):
        with self._lock:
            return list(self._subscribers)

    def publish(self, event: dict):
        """Deliver to every subscriber; returns the ids that received it."""
        payload = json.dumps(event)
        with self._lock:
            subscribers = list(self._subscribers.items())
        delivered = []
        for client_id, q in subscribers:
            try:
                q.put_nowait(payload)
            except queue.Full:
                try:
                    q.get_nowait()
                except queue.Empty:
                    pass
                q.put_nowait(payload)
            delivered.append(client_id)
        return delivered


class DashboardChannel:
    """In-app alerts; the UI reads them from the alert list, so this only records."""

    name = Channel.DASHBOARD

    def send(self, alert, recipients):
        logger.info(f"Dashboard notification: {alert.title} ({alert.severity.value})")
        return [_record(alert, self.name, DeliveryStatus.SENT)]


class WebSocketChannel:
    """Pushes an alert event to every live feed subscriber."""

    name = Channel.WEBSOCKET

    def __init__(self, feed: LiveFeed):
        self.feed = feed

    def send(self, alert, recipients):
        event = {
            "type": "alert",
            "data": {
                "id": alert.id,
                "title": alert.title,
                "description": alert.description,
                "severity": alert.severity.value,
                "type": alert.type.value,
                "timestamp": alert.timestamp.isoformat(),
                "source": alert.source.value,
                "deviceId": alert.device_id,
                "location": alert.location,
            },
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        delivered = self.feed.publish(event)
        if not delivered:
            return [_record(alert, self.name, DeliveryStatus.SKIPPED, error="no live subscribers")]
        return [_record(alert, self.name, DeliveryStatus.SENT, recipient=cid) for cid in delivered]


class EmailChannel:
    """Email for warning and critical alerts to recipients who opted in."""

    name = Channel.EMAIL

    def __init__(self, sender):
        self.sender = sender

    def send(self, alert, recipients):
        if alert.severity not in (AlertSeverity.CRITICAL, AlertSeverity.WARNING):
            return []
        records = []
        for r in recipients:
            if not r.email or not r.wants(self.name):
                continue
            if not self.sender.is_configured():
                logger.info(f"Email (not configured) to {r.email}: [{alert.severity.value.upper()}] {alert.title}")
                records.append(_record(alert, self.name, DeliveryStatus.LOGGED, r.email))
            elif self.sender.send_alert(alert, r.email):
                records.append(_record(alert, self.name, DeliveryStatus.SENT, r.email))
            else:
                records.append(_record(alert, self.name, DeliveryStatus.FAILED, r.email, "SMTP send failed"))
        return records


class SMSChannel:
    """Text messages, critical alerts only."""

    name = Channel.SMS

    def __init__(self, sender):
        self.sender = sender

    def send(self, alert, recipients):
        if alert.severity != AlertSeverity.CRITICAL:
            return []
        records = []
        for r in recipients:
            if not r.phone or not r.wants(self.name):
                continue
            if not self.sender.is_configured():
                logger.info(f"SMS (not configured) to {r.phone}: {alert.title}")
                records.append(_record(alert, self.name, DeliveryStatus.LOGGED, r.phone))
            elif self.sender.send_alert(alert, r.phone):
                records.append(_record(alert, self.name, DeliveryStatus.SENT, r.phone))
            else:
                records.append(_record(alert, self.name, DeliveryStatus.FAILED, r.phone, "SMS gateway error"))
        return records


class PushChannel:
    """Push notifications are logged per opted-in user; no push provider is wired."""

    name = Channel.PUSH

    def send(self, alert, recipients):
        records = []
        for r in recipients:
            if not r.wants(self.name):
                continue
            logger.info(f"Push to {r.user_id}: Energy Alert: {alert.title}")
            records.append(_record(alert, self.name, DeliveryStatus.LOGGED, r.user_id))
        return records
