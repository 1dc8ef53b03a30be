"""Severity-driven notification fan-out."""
import logging
from concurrent.futures import ThreadPoolExecutor

from models.alerts import NotificationRecord, Recipient
from models.enums import AlertSeverity, Channel, DeliveryStatus

logger = logging.getLogger("microgrid.alerts.dispatcher")

BASE_CHANNELS = (Channel.DASHBOARD, Channel.WEBSOCKET)

SEVERITY_CHANNELS = {
    AlertSeverity.CRITICAL: (Channel.EMAIL, Channel.SMS, Channel.PUSH),
    AlertSeverity.WARNING: (Channel.EMAIL, Channel.PUSH),
    AlertSeverity.INFO: (Channel.PUSH,),
}


def select_channels(severity, requested=None):
    """Channels for an alert: base set, severity set, then any extra requested ones."""
    selected = list(BASE_CHANNELS) + list(SEVERITY_CHANNELS[AlertSeverity(severity)])
    for name in requested or []:
        try:
            channel = Channel(name)
        except ValueError:
            logger.warning(f"Unknown notification channel: {name}")
            continue
        if channel not in selected:
            selected.append(channel)
    return selected


def load_recipients(config: dict):
    return [
        Recipient(
            user_id=r["user_id"],
            email=r.get("email"),
            phone=r.get("phone"),
            preferences={**Recipient().preferences, **(r.get("preferences") or {})},
        )
        for r in config.get("notifications", {}).get("recipients", [])
    ]


class NotificationDispatcher:
    def __init__(self, channels, recipients, store=None, max_workers=5):
        self.channels = {Channel(c.name): c for c in channels}
        self.recipients = list(recipients)
        self.store = store
        self.max_workers = max_workers

    def dispatch(self, alert, requested=None):
        """Send through every selected channel and wait for all of them.

        A failing channel becomes a ``failed`` record; it never raises.
        """
        selected = [c for c in select_channels(alert.severity, requested) if c in self.channels]

        records = []
        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            futures = [
                (channel, executor.submit(self.channels[channel].send, alert, self.recipients))
                for channel in selected
            ]
            for channel, future in futures:
                try:
                    records.extend(future.result())
                except Exception as e:
                    logger.warning(f"Failed to send notification via {channel.value}: {e}")
                    records.append(NotificationRecord(
                        alert_id=alert.id,
                        channel=channel.value,
                        status=DeliveryStatus.FAILED,
                        error_message=str(e),
                    ))

        if self.store is not None:
            for record in records:
                self.store.save_notification(record)
        logger.debug(f"Alert {alert.id} dispatched: {len(records)} record(s) via {[c.value for c in selected]}")
        return records
