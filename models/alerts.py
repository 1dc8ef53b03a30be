"""Dataclasses for alerts, detection results, rules, and audit records."""
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from models.enums import (
    AlertSeverity, AlertStatus, AlertSource, AlertType, RuleType,
    RuleActionType, Operator, DeliveryStatus,
)


def _new_id():
    return uuid.uuid4().hex


def _now():
    return datetime.now(timezone.utc)


def _iso(dt):
    return dt.isoformat() if dt else None


@dataclass
class AnomalyResult:
    is_anomaly: bool = False
    score: float = 0.0
    type: Optional[str] = None
    severity: Optional[str] = None
    description: str = ""
    affected_component: Optional[str] = None

    @classmethod
    def none(cls):
        return cls(is_anomaly=False, score=0.0)

    def to_dict(self):
        return {
            "isAnomaly": self.is_anomaly,
            "score": self.score,
            "type": self.type,
            "severity": self.severity,
            "description": self.description,
            "affectedComponent": self.affected_component,
        }


@dataclass
class AlertDetectionResult:
    severity: AlertSeverity = AlertSeverity.WARNING
    type: AlertType = AlertType.ANOMALY
    title: str = ""
    description: str = ""
    confidence: float = 0.0
    affected_component: str = ""
    metadata: dict = field(default_factory=dict)
    should_alert: bool = True

    @property
    def dedup_key(self):
        return f"{AlertType(self.type).value}-{AlertSeverity(self.severity).value}-{self.affected_component}"

    def to_dict(self):
        return {
            "shouldAlert": self.should_alert,
            "severity": AlertSeverity(self.severity).value,
            "type": AlertType(self.type).value,
            "title": self.title,
            "description": self.description,
            "confidence": self.confidence,
            "affectedComponent": self.affected_component,
            "metadata": self.metadata,
        }


@dataclass
class Alert:
    title: str = ""
    description: str = ""
    type: AlertType = AlertType.ANOMALY
    severity: AlertSeverity = AlertSeverity.WARNING
    status: AlertStatus = AlertStatus.ACTIVE
    source: AlertSource = AlertSource.SYSTEM
    device_id: Optional[str] = None
    location: Optional[str] = None
    anomaly_id: Optional[str] = None
    metadata: dict = field(default_factory=dict)
    timestamp: datetime = field(default_factory=_now)
    acknowledged_at: Optional[datetime] = None
    acknowledged_by: Optional[str] = None
    resolved_at: Optional[datetime] = None
    resolved_by: Optional[str] = None
    resolution_notes: Optional[str] = None
    dismissed_at: Optional[datetime] = None
    dismissed_by: Optional[str] = None
    id: str = field(default_factory=_new_id)

    def __setattr__(self, name, value):
        # Severity is fixed once the alert exists
        if name == "severity" and "severity" in self.__dict__:
            raise AttributeError("Alert severity cannot be changed after creation")
        super().__setattr__(name, value)

    @property
    def is_open(self):
        return self.status in (AlertStatus.ACTIVE, AlertStatus.ACKNOWLEDGED)

    def to_dict(self):
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "type": AlertType(self.type).value,
            "severity": AlertSeverity(self.severity).value,
            "status": AlertStatus(self.status).value,
            "source": AlertSource(self.source).value,
            "deviceId": self.device_id,
            "location": self.location,
            "anomalyId": self.anomaly_id,
            "metadata": self.metadata,
            "timestamp": _iso(self.timestamp),
            "acknowledgedAt": _iso(self.acknowledged_at),
            "acknowledgedBy": self.acknowledged_by,
            "resolvedAt": _iso(self.resolved_at),
            "resolvedBy": self.resolved_by,
            "resolutionNotes": self.resolution_notes,
            "dismissedAt": _iso(self.dismissed_at),
            "dismissedBy": self.dismissed_by,
        }


@dataclass
class Anomaly:
    type: str = ""
    severity: str = "medium"
    score: float = 0.0
    description: str = ""
    affected_component: Optional[str] = None
    resolved: bool = False
    resolved_at: Optional[datetime] = None
    timestamp: datetime = field(default_factory=_now)
    id: str = field(default_factory=_new_id)

    def to_dict(self):
        return {
            "id": self.id,
            "timestamp": _iso(self.timestamp),
            "type": self.type,
            "severity": self.severity,
            "score": self.score,
            "description": self.description,
            "affectedComponent": self.affected_component,
            "resolved": self.resolved,
            "resolvedAt": _iso(self.resolved_at),
        }


@dataclass
class AlertInteraction:
    alert_id: str = ""
    user_id: str = ""
    action: str = ""
    notes: Optional[str] = None
    metadata: dict = field(default_factory=dict)
    timestamp: datetime = field(default_factory=_now)
    id: str = field(default_factory=_new_id)

    def to_dict(self):
        return {
            "id": self.id,
            "alertId": self.alert_id,
            "userId": self.user_id,
            "action": getattr(self.action, "value", self.action),
            "notes": self.notes,
            "metadata": self.metadata,
            "timestamp": _iso(self.timestamp),
        }


@dataclass
class RuleCondition:
    metric: str = ""
    operator: Operator = Operator.GT
    value: float = 0.0
    duration: Optional[int] = None      # minutes, parsed but not evaluated
    confidence: Optional[float] = None  # parsed but not evaluated


@dataclass
class RuleAction:
    type: RuleActionType = RuleActionType.CREATE_ALERT
    config: dict = field(default_factory=dict)


@dataclass
class AlertRule:
    id: str = ""
    name: str = ""
    description: str = ""
    type: RuleType = RuleType.THRESHOLD
    severity: AlertSeverity = AlertSeverity.WARNING
    conditions: list = field(default_factory=list)
    actions: list = field(default_factory=list)
    enabled: bool = True
    alert_type: Optional[AlertType] = None
    component: Optional[str] = None

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "type": RuleType(self.type).value,
            "severity": AlertSeverity(self.severity).value,
            "enabled": self.enabled,
            "conditions": [
                {"metric": c.metric, "operator": Operator(c.operator).value, "value": c.value,
                 "duration": c.duration, "confidence": c.confidence}
                for c in self.conditions
            ],
            "actions": [{"type": RuleActionType(a.type).value, "config": a.config} for a in self.actions],
        }


@dataclass
class Recipient:
    user_id: str = ""
    email: Optional[str] = None
    phone: Optional[str] = None
    preferences: dict = field(default_factory=lambda: {
        "email": True, "sms": False, "push": True, "dashboard": True,
    })

    def wants(self, channel):
        return bool(self.preferences.get(getattr(channel, "value", channel), False))


@dataclass
class NotificationRecord:
    alert_id: str = ""
    channel: str = ""
    recipient: Optional[str] = None
    status: DeliveryStatus = DeliveryStatus.SENT
    error_message: Optional[str] = None
    sent_at: datetime = field(default_factory=_now)
    id: str = field(default_factory=_new_id)

    def to_dict(self):
        return {
            "id": self.id,
            "alertId": self.alert_id,
            "channel": getattr(self.channel, "value", self.channel),
            "recipient": self.recipient,
            "status": DeliveryStatus(self.status).value,
            "errorMessage": self.error_message,
            "sentAt": _iso(self.sent_at),
        }
